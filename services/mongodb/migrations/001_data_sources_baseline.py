"""
Migration 001: Data Sources Baseline

Creates the ``data_sources`` provenance ledger: one document per
(user, source) import session, updated on every imported page.

Schema constants are FROZEN - do not modify. Create new migration for changes.
"""

from pymongo.database import Database
from pymongo.errors import CollectionInvalid

VERSION = "001"

# =============================================================================
# FROZEN SCHEMA CONSTANTS - DO NOT MODIFY
# Mirrors libs.models.provenance.ProvenanceRecord
# =============================================================================

DATA_SOURCES_SCHEMA_V001 = {
    "$jsonSchema": {
        "bsonType": "object",
        "required": [
            "user_id",
            "source_ref",
            "collection_name",
            "row_count",
            "schema_metadata",
            "version",
            "created_at",
            "last_updated",
        ],
        "properties": {
            "user_id": {"bsonType": "string"},
            "source_ref": {
                "bsonType": "object",
                "required": ["kind"],
                "properties": {
                    "kind": {"enum": ["upload", "spreadsheet"]},
                    "upload_id": {"bsonType": "string"},
                    "spreadsheet_id": {"bsonType": "string"},
                    "sheet_name": {"bsonType": "string"},
                },
            },
            "collection_name": {"bsonType": "string"},
            "row_count": {"bsonType": ["int", "long"], "minimum": 0},
            "schema_metadata": {
                "bsonType": "object",
                "properties": {
                    "fields": {"bsonType": "array", "items": {"bsonType": "string"}},
                    "imported_count": {"bsonType": ["int", "long"], "minimum": 0},
                    "total_rows": {"bsonType": ["int", "long"], "minimum": 0},
                    "import_progress": {"bsonType": "int", "minimum": 0, "maximum": 100},
                    "import_complete": {"bsonType": "bool"},
                    "import_completed_at": {"bsonType": ["date", "null"]},
                    "import_error": {"bsonType": ["string", "null"]},
                    "descriptor": {"bsonType": ["string", "null"]},
                },
            },
            "version": {"bsonType": ["int", "long"], "minimum": 1},
            "created_at": {"bsonType": "date"},
            "last_updated": {"bsonType": "date"},
        },
    }
}


def up(db: Database) -> None:
    """Apply data_sources baseline migration."""

    try:
        db.create_collection(
            "data_sources",
            validator=DATA_SOURCES_SCHEMA_V001,
            validationLevel="strict",
            validationAction="error",
        )
    except CollectionInvalid:
        db.command(
            "collMod",
            "data_sources",
            validator=DATA_SOURCES_SCHEMA_V001,
            validationLevel="strict",
            validationAction="error",
        )

    db.data_sources.create_index([("user_id", 1)])
    db.data_sources.create_index([("collection_name", 1)])
    db.data_sources.create_index([("user_id", 1), ("source_ref", 1)], unique=True)
    db.data_sources.create_index([("last_updated", -1)])
