# =============================================================================
# Column Metadata Models
# =============================================================================
# Advisory per-column profile produced by the decoder. Handed to the schema
# inference collaborator; never used as the authoritative coercion type.
# =============================================================================

from typing import Any, Literal

from pydantic import BaseModel, Field

__all__ = ["InferredType", "ColumnProfile", "TabularMetadata"]

InferredType = Literal["null", "int", "double", "boolean", "date", "string"]


class ColumnProfile(BaseModel):
    """Profile of one decoded column."""

    name: str = Field(..., description="Normalized column name")
    data_type: InferredType = Field("null", description="Advisory inferred type")
    null_count: int = Field(0, ge=0, description="Null/empty cells across all rows")
    samples: list[Any] = Field(
        default_factory=list, description="A few non-empty sample values"
    )


class TabularMetadata(BaseModel):
    """
    Dataset-level metadata for a decoded source.

    Attributes:
        total_rows: Rows kept after dropping fully empty rows
        columns: Column profiles in source order
        sample_size: Number of rows in ``sample_data``
        sample_data: First rows of the dataset
    """

    total_rows: int = Field(0, ge=0)
    columns: list[ColumnProfile] = Field(default_factory=list)
    sample_size: int = Field(0, ge=0)
    sample_data: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def to_collaborator_payload(self) -> dict[str, Any]:
        """
        Shape expected by the schema-inference collaborator.

        Returns:
            Dict with totalRows, columns, dataTypes, nullCounts, sampleSize
            and sampleData.
        """
        return {
            "totalRows": self.total_rows,
            "columns": self.column_names,
            "dataTypes": {c.name: c.data_type for c in self.columns},
            "nullCounts": {c.name: c.null_count for c in self.columns},
            "sampleSize": self.sample_size,
            "sampleData": self.sample_data,
        }
