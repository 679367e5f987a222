"""Dagster Definitions - Repository Configuration.

Defines jobs and resources for the paged tabular import pipeline.
"""

from dagster import Definitions, EnvVar, ResourceDefinition

from .jobs import import_page_job
from .resources import MinIOResource, MongoDBResource


# =============================================================================
# Definitions
# =============================================================================

defs = Definitions(
    jobs=[
        import_page_job,
    ],
    resources={
        "minio": MinIOResource(
            endpoint=EnvVar("MINIO_ENDPOINT"),
            access_key=EnvVar("MINIO_ROOT_USER"),
            secret_key=EnvVar("MINIO_ROOT_PASSWORD"),
            use_ssl=False,
            uploads_bucket="uploads",
        ),
        "mongodb": MongoDBResource(
            connection_string=EnvVar("MONGO_CONNECTION_STRING"),
            database="data_warehouse",
        ),
        # Bind real clients here to import spreadsheet tabs or propose schemas
        "spreadsheet_client": ResourceDefinition.none_resource(),
        "schema_proposer": ResourceDefinition.none_resource(),
    },
    schedules=[],
    sensors=[],
)
