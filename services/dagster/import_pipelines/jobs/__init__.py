"""Dagster Jobs - Executable Workflows."""

from .import_page_job import import_page_job

__all__ = ["import_page_job"]
