# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models and settings for the tabular import pipeline.
# =============================================================================

"""
Data models for the import pipeline.

This library provides:
- SchemaDescriptor: Target collection shape
- TabularMetadata: Advisory column profile of a decoded source
- ProvenanceRecord: Persisted import job state
- PageImportRequest / PageImportResult: Page-import contract
- Configuration models
"""

__version__ = "0.1.0"

# Schema models
from .schema import (
    FieldType,
    FieldSpec,
    IndexSpec,
    SchemaDescriptor,
    resolve_field_type,
)

# Column metadata
from .metadata import (
    InferredType,
    ColumnProfile,
    TabularMetadata,
)

# Provenance models
from .provenance import (
    ImportState,
    SourceKind,
    SourceRef,
    SchemaMetadata,
    ProvenanceRecord,
    compute_progress,
)

# Page import contract
from .page import (
    PageImportRequest,
    PageImportResult,
)

# Configuration models
from .config import (
    MongoSettings,
    ImportSettings,
)

__all__ = [
    # Schema models
    "FieldType",
    "FieldSpec",
    "IndexSpec",
    "SchemaDescriptor",
    "resolve_field_type",
    # Column metadata
    "InferredType",
    "ColumnProfile",
    "TabularMetadata",
    # Provenance models
    "ImportState",
    "SourceKind",
    "SourceRef",
    "SchemaMetadata",
    "ProvenanceRecord",
    "compute_progress",
    # Page import contract
    "PageImportRequest",
    "PageImportResult",
    # Configuration models
    "MongoSettings",
    "ImportSettings",
]
