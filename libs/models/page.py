# =============================================================================
# Page Import Models
# =============================================================================
# Input and output contracts of one page-import call.
# =============================================================================

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .provenance import SourceRef
from .schema import SchemaDescriptor

__all__ = ["PageImportRequest", "PageImportResult"]


class PageImportRequest(BaseModel):
    """
    One page of an import session, as requested by the caller.

    Attributes:
        source_ref: Source to import
        schema_descriptor: Target shape (alias ``schema``). When omitted the
            orchestrator asks its schema proposer, if it has one.
        collection_name: Overrides the descriptor's collection name
        drop_collection: Drop the target collection first (page 1 only)
        current_page: 1-based page number
        page_size: Rows per page
        user_id: Owner; provenance is only tracked when set
    """

    model_config = ConfigDict(populate_by_name=True)

    source_ref: SourceRef = Field(..., alias="sourceRef")
    schema_descriptor: Optional[SchemaDescriptor] = Field(None, alias="schema")
    collection_name: Optional[str] = Field(None, alias="collectionName")
    drop_collection: bool = Field(False, alias="dropCollection")
    current_page: int = Field(1, ge=1, alias="currentPage")
    page_size: int = Field(1000, ge=1, alias="pageSize")
    user_id: Optional[str] = Field(None, alias="userId")

    @property
    def slice_start(self) -> int:
        return (self.current_page - 1) * self.page_size

    @property
    def slice_end(self) -> int:
        return self.current_page * self.page_size


class PageImportResult(BaseModel):
    """Outcome of one page. Always produced, even under partial failure."""

    collection_name: str
    total_rows: int = Field(..., ge=0)
    inserted_count: int = Field(..., ge=0)
    has_more_data: bool
    schema_fields: list[str] = Field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        return {
            "collectionName": self.collection_name,
            "totalRows": self.total_rows,
            "insertedCount": self.inserted_count,
            "hasMoreData": self.has_more_data,
            "schema": {"fields": list(self.schema_fields)},
        }
