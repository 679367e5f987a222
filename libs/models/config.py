# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for all service configurations:
# - MongoSettings: MongoDB data warehouse configuration
# - ImportSettings: Paging, batching and provisioning defaults
# =============================================================================

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "MongoSettings",
    "ImportSettings",
]


# =============================================================================
# MongoDB Settings (Data Warehouse + Provenance Ledger)
# =============================================================================

class MongoSettings(BaseSettings):
    """
    Configuration for MongoDB.

    Imported collections and the ``data_sources`` provenance ledger live in
    the same database.

    Maps environment variables:
    - MONGO_HOST → host
    - MONGO_PORT → port
    - MONGO_INITDB_ROOT_USERNAME → username
    - MONGO_INITDB_ROOT_PASSWORD → password
    - MONGO_DATABASE → database
    - MONGO_AUTH_SOURCE → auth_source
    """

    host: str = Field("mongodb", validation_alias="MONGO_HOST", description="MongoDB host")
    port: int = Field(27017, validation_alias="MONGO_PORT", description="MongoDB port")
    username: str = Field(..., validation_alias="MONGO_INITDB_ROOT_USERNAME", description="MongoDB username")
    password: str = Field(..., validation_alias="MONGO_INITDB_ROOT_PASSWORD", description="MongoDB password")
    database: str = Field("data_warehouse", validation_alias="MONGO_DATABASE", description="Database name")
    auth_source: str = Field("admin", validation_alias="MONGO_AUTH_SOURCE", description="Authentication source")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )

    @property
    def connection_string(self) -> str:
        """
        Build MongoDB connection URI.

        Format: mongodb://[username]:[password]@[host]:[port]/[database]?authSource=[auth_source]
        """
        return (
            f"mongodb://{self.username}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?authSource={self.auth_source}"
        )


# =============================================================================
# Import Settings
# =============================================================================

class ImportSettings(BaseSettings):
    """
    Defaults for the paged import.

    Maps environment variables:
    - IMPORT_BATCH_SIZE → batch_size (documents per insert_many call)
    - IMPORT_PAGE_SIZE → page_size (rows per page when the caller omits it)
    - IMPORT_SAMPLE_SIZE → sample_size (rows profiled for type inference)
    - IMPORT_VALIDATION_LEVEL → validation_level
    """

    batch_size: int = Field(1000, ge=1, validation_alias="IMPORT_BATCH_SIZE")
    page_size: int = Field(1000, ge=1, validation_alias="IMPORT_PAGE_SIZE")
    sample_size: int = Field(100, ge=1, validation_alias="IMPORT_SAMPLE_SIZE")
    validation_level: Literal["off", "moderate", "strict"] = Field(
        "moderate", validation_alias="IMPORT_VALIDATION_LEVEL"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )
