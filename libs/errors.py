# =============================================================================
# Import Pipeline Errors
# =============================================================================
# Exception taxonomy shared by the decoder, provisioning, insertion and
# orchestration layers.
# =============================================================================

"""Exceptions raised (and non-fatal failure records kept) by the import pipeline."""

from dataclasses import dataclass
from typing import Any

__all__ = [
    "ImportPipelineError",
    "InputError",
    "EmptyInput",
    "UnsupportedFormat",
    "MissingHeader",
    "SchemaUnavailable",
    "InfrastructureError",
    "ProvenanceConflict",
    "PartialInsertFailure",
]


class ImportPipelineError(Exception):
    """Base class for every error raised by the import pipeline."""


class InputError(ImportPipelineError, ValueError):
    """The source could not be turned into records. Fatal for the page."""


class EmptyInput(InputError):
    """Zero-byte source."""


class UnsupportedFormat(InputError):
    """Unknown file extension or format identifier."""


class MissingHeader(InputError):
    """No header row could be found in the source."""


class SchemaUnavailable(ImportPipelineError):
    """No schema descriptor was supplied and none could be proposed."""


class InfrastructureError(ImportPipelineError, RuntimeError):
    """The datastore (or another backing service) is unreachable."""


class ProvenanceConflict(InfrastructureError):
    """
    A provenance record changed underneath a page update.

    Raised when the optimistic ``version`` check on the record fails, which
    means another caller updated the same import concurrently.
    """


@dataclass(frozen=True)
class PartialInsertFailure:
    """
    One document rejected during batch or per-record insertion.

    Never raised: collected by the insertion engine and logged, and the
    document is excluded from the inserted count.
    """

    index: int
    error: str
    document_preview: Any = None
