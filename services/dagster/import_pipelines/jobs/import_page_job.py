"""Page import job for uploaded tabular data."""

from dagster import job

from ..ops.import_ops import import_page


@job(
    name="import_page_job",
    description="Import one page of an uploaded CSV/TSV/Excel file into a MongoDB collection and update its provenance record.",
)
def import_page_job():
    """
    Page import pipeline.

    Flow:
    1. Decode the upload and resolve the target schema
    2. On page 1, drop (if requested) and provision the collection
    3. Insert the page's rows and record progress

    The request comes from run_config; callers launch one run per page until
    the result reports no more data.
    """
    import_page()
