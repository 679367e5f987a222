"""Dagster Ops - Reusable Computation Units."""

from .import_ops import ImportPageConfig, import_page

__all__ = [
    "ImportPageConfig",
    "import_page",
]
