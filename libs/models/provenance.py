# =============================================================================
# Provenance Models
# =============================================================================
# Bookkeeping for one import session: which user imported which source into
# which collection, and how far the paged import has progressed.
# Persisted in the "data_sources" collection (see migration 001).
# =============================================================================

"""
Provenance Models (SourceRef, SchemaMetadata, ProvenanceRecord)

One ProvenanceRecord exists per (user, source). It is created on the first
page of an import, updated on every page, and never deleted by the import
pipeline.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

__all__ = [
    "ImportState",
    "SourceKind",
    "SourceRef",
    "SchemaMetadata",
    "ProvenanceRecord",
    "compute_progress",
]


class SourceKind(str, Enum):
    """Where the imported rows come from."""

    UPLOAD = "upload"
    SPREADSHEET = "spreadsheet"


class ImportState(str, Enum):
    """
    Lifecycle of an import session.

    FAILED is an annotation on top of NOT_STARTED/IN_PROGRESS: a later retry
    of the same page can still move the import forward.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"


class SourceRef(BaseModel):
    """
    Identity of an import source.

    Either an uploaded file (``upload_id``) or a spreadsheet tab
    (``spreadsheet_id`` + ``sheet_name``).
    """

    kind: SourceKind = Field(..., description="Source kind")
    upload_id: Optional[str] = Field(None, description="Upload object key")
    spreadsheet_id: Optional[str] = Field(None, description="Spreadsheet id")
    sheet_name: Optional[str] = Field(None, description="Sheet (tab) name")

    @model_validator(mode="after")
    def check_identity(self) -> "SourceRef":
        if self.kind == SourceKind.UPLOAD:
            if not self.upload_id:
                raise ValueError("upload sources require upload_id")
        elif not (self.spreadsheet_id and self.sheet_name):
            raise ValueError(
                "spreadsheet sources require both spreadsheet_id and sheet_name"
            )
        return self

    @classmethod
    def upload(cls, upload_id: str) -> "SourceRef":
        return cls(kind=SourceKind.UPLOAD, upload_id=upload_id)

    @classmethod
    def spreadsheet(cls, spreadsheet_id: str, sheet_name: str) -> "SourceRef":
        return cls(
            kind=SourceKind.SPREADSHEET,
            spreadsheet_id=spreadsheet_id,
            sheet_name=sheet_name,
        )

    def describe(self) -> str:
        if self.kind == SourceKind.UPLOAD:
            return f"upload:{self.upload_id}"
        return f"spreadsheet:{self.spreadsheet_id}/{self.sheet_name}"


def compute_progress(imported_count: int, total_rows: int) -> int:
    """Percentage of rows imported, rounded half up. Empty datasets are 100%."""
    if total_rows <= 0:
        return 100
    return int(imported_count * 100 / total_rows + 0.5)


class SchemaMetadata(BaseModel):
    """Import progress stored under ``schema_metadata`` on the record."""

    fields: list[str] = Field(default_factory=list, description="Declared field names")
    imported_count: int = Field(0, ge=0)
    total_rows: int = Field(0, ge=0)
    import_progress: int = Field(0, ge=0, le=100)
    import_complete: bool = False
    import_completed_at: Optional[datetime] = None
    import_error: Optional[str] = None
    descriptor: Optional[str] = Field(
        None, description="Schema descriptor applied on page 1, as JSON"
    )

    @model_validator(mode="after")
    def check_counts(self) -> "SchemaMetadata":
        if self.imported_count > self.total_rows:
            raise ValueError(
                f"imported_count ({self.imported_count}) exceeds total_rows ({self.total_rows})"
            )
        return self


class ProvenanceRecord(BaseModel):
    """
    Persisted import job state.

    Attributes:
        user_id: Owner of the import
        source_ref: Imported source
        collection_name: Target collection (stable across pages)
        row_count: Rows in the target collection once complete; adjusted down
            to the imported count when the final page inserted fewer rows
        schema_metadata: Progress counters and status
        version: Optimistic concurrency counter, incremented on every update
        created_at: First page timestamp
        last_updated: Timestamp of the latest update
    """

    user_id: str = Field(..., min_length=1)
    source_ref: SourceRef
    collection_name: str = Field(..., min_length=1)
    row_count: int = Field(0, ge=0)
    schema_metadata: SchemaMetadata = Field(default_factory=SchemaMetadata)
    version: int = Field(0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def state(self) -> ImportState:
        meta = self.schema_metadata
        if meta.import_complete:
            return ImportState.COMPLETE
        if meta.import_error:
            return ImportState.FAILED
        if meta.imported_count > 0:
            return ImportState.IN_PROGRESS
        return ImportState.NOT_STARTED

    def to_document(self) -> dict[str, Any]:
        """
        Serialize for MongoDB.

        Uses model_dump() without mode="json" so datetimes stay native and
        are stored as BSON dates.
        """
        document = self.model_dump()
        document["source_ref"] = self.source_ref.model_dump(mode="json", exclude_none=True)
        return document
