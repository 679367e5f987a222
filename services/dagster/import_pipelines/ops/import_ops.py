# =============================================================================
# Import Ops - Paged Tabular Import into MongoDB
# =============================================================================
# Runs one page of an import: decode the upload, provision the target
# collection on page 1, insert the page's rows and update provenance.
# The caller drives paging by launching one run per page.
# =============================================================================

from typing import Any, Dict, Optional

from dagster import Config, OpExecutionContext, Out, op

from libs.importing import (
    BatchInserter,
    ImportOrchestrator,
    SchemaApplier,
    SchemaProposer,
    SourceLoader,
    SpreadsheetClient,
)
from libs.models import ImportSettings, PageImportRequest

__all__ = ["ImportPageConfig", "import_page"]


class ImportPageConfig(Config):
    """
    Run config for one page import.

    ``request`` takes the page-import request in either camelCase
    (``sourceRef``, ``currentPage``...) or snake_case keys.
    """

    request: Dict[str, Any]


def _import_page(
    mongodb,
    minio,
    request: Dict[str, Any],
    log,
    settings: Optional[ImportSettings] = None,
    schema_proposer: Optional[SchemaProposer] = None,
    spreadsheet_client: Optional[SpreadsheetClient] = None,
) -> Dict[str, Any]:
    """
    Core logic for importing one page.

    This function is extracted for easier unit testing.

    Args:
        mongodb: MongoDBResource instance (database + provenance store)
        minio: MinIOResource instance (upload store)
        request: Page-import request dict
        log: Logger instance
        settings: Import defaults; read from the environment when omitted
        schema_proposer: Optional schema-inference collaborator
        spreadsheet_client: Optional client for spreadsheet sources

    Returns:
        Page result dict (collectionName, totalRows, insertedCount,
        hasMoreData, schema)

    Raises:
        pydantic.ValidationError: If the request is malformed
        InputError: If the source cannot be decoded
        SchemaUnavailable: If no schema is supplied or proposed
        InfrastructureError: If the datastore fails
    """
    settings = settings or ImportSettings()
    if "pageSize" not in request and "page_size" not in request:
        request = {**request, "pageSize": settings.page_size}
    page_request = PageImportRequest.model_validate(request)

    log.info(
        f"Importing page {page_request.current_page} "
        f"(page size {page_request.page_size}) of {page_request.source_ref.describe()}"
    )

    database = mongodb.get_database()
    orchestrator = ImportOrchestrator(
        database=database,
        source_loader=SourceLoader(
            upload_store=minio,
            spreadsheet_client=spreadsheet_client,
            sample_size=settings.sample_size,
            log=log,
        ),
        schema_applier=SchemaApplier(
            database,
            validation_level=settings.validation_level,
            log=log,
        ),
        inserter=BatchInserter(batch_size=settings.batch_size, log=log),
        provenance=mongodb,
        schema_proposer=schema_proposer,
        log=log,
    )

    result = orchestrator.import_page(page_request)
    log.info(
        f"Page {page_request.current_page} done: {result.inserted_count} inserted, "
        f"{result.total_rows} total rows, has more data: {result.has_more_data}"
    )
    return result.to_response()


@op(
    out={"page_result": Out(dagster_type=dict)},
    required_resource_keys={"mongodb", "minio", "spreadsheet_client", "schema_proposer"},
)
def import_page(context: OpExecutionContext, config: ImportPageConfig) -> dict:
    """
    Import one page of an uploaded file or spreadsheet tab into MongoDB.

    ``spreadsheet_client`` and ``schema_proposer`` may be bound to None
    resources; spreadsheet sources and schema-less requests then fail with
    InputError and SchemaUnavailable respectively.

    Args:
        context: Dagster op execution context
        config: Page-import request

    Returns:
        Page result dict; ``hasMoreData`` tells the caller whether to
        request the next page
    """
    return _import_page(
        mongodb=context.resources.mongodb,
        minio=context.resources.minio,
        request=config.request,
        log=context.log,
        schema_proposer=context.resources.schema_proposer,
        spreadsheet_client=context.resources.spreadsheet_client,
    )
