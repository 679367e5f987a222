"""Dagster Resources - External Service Connections."""

from .minio_resource import MinIOResource
from .mongodb_resource import MongoDBResource

__all__ = [
    "MinIOResource",
    "MongoDBResource",
]
