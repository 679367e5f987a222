# =============================================================================
# Import Orchestrator
# =============================================================================
# Drives one page of an import end-to-end:
#   drop (page 1, on request) -> provision (page 1) -> slice -> coerce ->
#   insert -> provenance update
# Paging is driven by the caller; there is no scheduler, queue or retry here.
# =============================================================================

import logging
from typing import List, Optional, Protocol

from pymongo.database import Database

from libs.errors import SchemaUnavailable
from libs.models import (
    PageImportRequest,
    PageImportResult,
    ProvenanceRecord,
    SchemaDescriptor,
    SourceRef,
)
from libs.tabular import DecodedTable, coerce_records

from .batch_insert import BatchInserter
from .schema_applier import SchemaApplier
from .schema_response import SchemaProposer, coerce_proposed_schema
from .sources import SourceLoader

__all__ = ["ProvenanceStore", "ImportOrchestrator"]


class ProvenanceStore(Protocol):
    """Persistence of ProvenanceRecords (implemented by MongoDBResource)."""

    def get_import(self, user_id: str, source_ref: SourceRef) -> Optional[ProvenanceRecord]: ...

    def start_import(
        self,
        user_id: str,
        source_ref: SourceRef,
        *,
        collection_name: str,
        fields: List[str],
        total_rows: int,
        descriptor: Optional[SchemaDescriptor] = None,
    ) -> ProvenanceRecord: ...

    def record_page_progress(
        self,
        user_id: str,
        source_ref: SourceRef,
        *,
        expected_version: int,
        imported_count: int,
        total_rows: int,
        row_count: int,
        complete: bool,
    ) -> ProvenanceRecord: ...

    def record_import_error(self, user_id: str, source_ref: SourceRef, message: str) -> None: ...


class ImportOrchestrator:
    """
    Runs page imports against injected collaborators.

    Args:
        database: Database holding the target collections
        source_loader: Decodes the dataset behind a SourceRef
        schema_applier: Provisions/drops target collections
        inserter: Chunked best-effort inserter
        provenance: Provenance record persistence
        schema_proposer: Optional collaborator used when a request carries
            no schema
        log: Logger (Dagster ops pass ``context.log``)
    """

    def __init__(
        self,
        database: Database,
        source_loader: SourceLoader,
        schema_applier: SchemaApplier,
        inserter: BatchInserter,
        provenance: ProvenanceStore,
        *,
        schema_proposer: Optional[SchemaProposer] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.database = database
        self.source_loader = source_loader
        self.schema_applier = schema_applier
        self.inserter = inserter
        self.provenance = provenance
        self.schema_proposer = schema_proposer
        self.log = log or logging.getLogger(__name__)

    def import_page(self, request: PageImportRequest) -> PageImportResult:
        """
        Import one page.

        Any exception is recorded as ``import_error`` on the provenance
        record (best effort) and then re-raised.
        """
        try:
            return self._import_page(request)
        except Exception as e:
            self.log.error(
                f"Error importing page {request.current_page} of "
                f"{request.source_ref.describe()}: {e}"
            )
            self._record_error(request, e)
            raise

    # ------------------------------------------------------------------
    # Page flow
    # ------------------------------------------------------------------

    def _import_page(self, request: PageImportRequest) -> PageImportResult:
        source_ref = request.source_ref
        first_page = request.current_page == 1
        tracked = request.user_id is not None
        if not tracked:
            self.log.warning(
                f"No user_id for {source_ref.describe()}; import progress will not be tracked"
            )

        table = self.source_loader.load(source_ref)
        total_rows = table.total_rows

        record: Optional[ProvenanceRecord] = None
        if tracked and not first_page:
            record = self.provenance.get_import(request.user_id, source_ref)

        descriptor = self._resolve_schema(request, table, record)
        collection_name = descriptor.collection_name

        if request.drop_collection:
            if first_page:
                self.log.info(f"Dropping collection {collection_name} as requested")
                self.schema_applier.drop_if_exists(collection_name)
            else:
                self.log.info(
                    f"Ignoring drop request for {collection_name} on page {request.current_page}"
                )

        if first_page:
            collection = self.schema_applier.provision(descriptor)
        else:
            collection = self.database[collection_name]

        if tracked and (first_page or record is None):
            if record is None and not first_page:
                self.log.warning(
                    f"No provenance record for {source_ref.describe()} on page "
                    f"{request.current_page}; starting one"
                )
            record = self.provenance.start_import(
                request.user_id,
                source_ref,
                collection_name=collection_name,
                fields=descriptor.field_names(),
                total_rows=total_rows,
                descriptor=descriptor,
            )

        start, end = request.slice_start, request.slice_end
        page_records = table.records[start:end]
        has_more_data = end < total_rows

        inserted_count = 0
        if page_records:
            documents = coerce_records(page_records, descriptor)
            inserted_count = self.inserter.insert(collection, documents)
        self.log.info(
            f"Page {request.current_page}: inserted {inserted_count} of "
            f"{len(page_records)} rows into {collection_name}"
        )

        if record is not None:
            self._record_progress(
                request, record, start + inserted_count, total_rows, has_more_data
            )

        return PageImportResult(
            collection_name=collection_name,
            total_rows=total_rows,
            inserted_count=inserted_count,
            has_more_data=has_more_data,
            schema_fields=descriptor.field_names(),
        )

    def _resolve_schema(
        self,
        request: PageImportRequest,
        table: DecodedTable,
        record: Optional[ProvenanceRecord],
    ) -> SchemaDescriptor:
        descriptor = request.schema_descriptor
        if descriptor is None and request.current_page > 1:
            descriptor = self._stored_schema(request, record)
        elif descriptor is None:
            if self.schema_proposer is None:
                raise SchemaUnavailable(
                    f"No schema supplied for {request.source_ref.describe()} "
                    "and no schema proposer configured"
                )
            self.log.info("No schema supplied, requesting one from the schema proposer")
            descriptor = coerce_proposed_schema(
                self.schema_proposer.propose_schema(table.metadata.to_collaborator_payload())
            )

        # Later pages stay on the collection recorded on page 1
        collection_name = request.collection_name or (
            record.collection_name if record is not None else None
        )
        if collection_name and collection_name != descriptor.collection_name:
            descriptor = descriptor.with_collection_name(collection_name)
        return descriptor

    def _stored_schema(
        self, request: PageImportRequest, record: Optional[ProvenanceRecord]
    ) -> SchemaDescriptor:
        stored = record.schema_metadata.descriptor if record is not None else None
        if stored is None:
            raise SchemaUnavailable(
                f"No schema supplied for page {request.current_page} of "
                f"{request.source_ref.describe()} and none stored from page 1"
            )
        self.log.info("Reusing the schema stored on page 1")
        return SchemaDescriptor.model_validate_json(stored)

    def _record_progress(
        self,
        request: PageImportRequest,
        record: ProvenanceRecord,
        imported_so_far: int,
        total_rows: int,
        has_more_data: bool,
    ) -> None:
        imported_count = min(imported_so_far, total_rows)
        row_count = total_rows
        progress_total = total_rows

        if not has_more_data and imported_count != total_rows:
            self.log.warning(
                f"Import completed for {request.source_ref.describe()}, but imported count "
                f"{imported_count} does not match total rows {total_rows}"
            )
            row_count = imported_count
            progress_total = imported_count

        updated = self.provenance.record_page_progress(
            request.user_id,
            request.source_ref,
            expected_version=record.version,
            imported_count=imported_count,
            total_rows=progress_total,
            row_count=row_count,
            complete=not has_more_data,
        )
        self.log.info(
            f"Updated import progress for {request.source_ref.describe()}: "
            f"{imported_count}/{progress_total} rows "
            f"({updated.schema_metadata.import_progress}%)"
        )

    def _record_error(self, request: PageImportRequest, error: Exception) -> None:
        if request.user_id is None:
            return
        try:
            self.provenance.record_import_error(request.user_id, request.source_ref, str(error))
        except Exception as e:
            self.log.error(f"Failed to record import error on provenance record: {e}")
