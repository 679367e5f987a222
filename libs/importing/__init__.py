"""Collection provisioning, batch insertion and page-import orchestration."""

from .batch_insert import DEFAULT_BATCH_SIZE, BatchInserter
from .orchestrator import ImportOrchestrator, ProvenanceStore
from .schema_applier import IndexPlan, SchemaApplier
from .schema_response import (
    ProposedSchema,
    SchemaProposer,
    coerce_proposed_schema,
    extract_json_object,
    parse_schema_response,
)
from .sources import SourceLoader, SpreadsheetClient, UploadStore

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "BatchInserter",
    "ImportOrchestrator",
    "ProvenanceStore",
    "IndexPlan",
    "SchemaApplier",
    "ProposedSchema",
    "SchemaProposer",
    "coerce_proposed_schema",
    "extract_json_object",
    "parse_schema_response",
    "SourceLoader",
    "SpreadsheetClient",
    "UploadStore",
]
