"""MongoDB Resource - Data warehouse access and import provenance ledger."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import cached_property
from typing import Any, ClassVar, Dict, List

from dagster import ConfigurableResource
from pydantic import Field
from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from libs.errors import ProvenanceConflict
from libs.models import ProvenanceRecord, SchemaDescriptor, SourceRef, compute_progress

__all__ = ["MongoDBResource"]

log = logging.getLogger(__name__)


class MongoDBResource(ConfigurableResource):
    """
    Dagster resource for MongoDB.

    Imported collections and the ``data_sources`` provenance ledger share one
    database. All provenance reads and writes go through this resource so the
    import orchestrator only sees the ProvenanceStore methods.
    """

    connection_string: str = Field(..., description="MongoDB connection URI")
    database: str = Field("data_warehouse", description="MongoDB database name")

    DATA_SOURCES: ClassVar[str] = "data_sources"

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(self.connection_string)

    def _get_db(self) -> Database:
        return self._client[self.database]

    def _get_collection(self, name: str) -> Collection:
        return self._get_db()[name]

    @staticmethod
    def _strip_object_id(doc: Dict) -> Dict:
        stripped = dict(doc)
        stripped.pop("_id", None)
        return stripped

    @staticmethod
    def _identity(user_id: str, source_ref: SourceRef) -> Dict[str, Any]:
        # source_ref is always serialized the same way, so whole-document
        # equality matches the unique (user_id, source_ref) index
        return {
            "user_id": user_id,
            "source_ref": source_ref.model_dump(mode="json", exclude_none=True),
        }

    def get_database(self) -> Database:
        """Database holding imported collections."""
        return self._get_db()

    # ------------------------------------------------------------------
    # Provenance operations
    # ------------------------------------------------------------------

    def get_import(self, user_id: str, source_ref: SourceRef) -> ProvenanceRecord | None:
        """
        Load the provenance record for a (user, source) pair.
        """
        collection = self._get_collection(self.DATA_SOURCES)
        document = collection.find_one(self._identity(user_id, source_ref))
        if not document:
            return None
        return ProvenanceRecord(**self._strip_object_id(document))

    def list_imports(self, user_id: str) -> List[ProvenanceRecord]:
        """
        All provenance records owned by a user, most recently updated first.
        """
        collection = self._get_collection(self.DATA_SOURCES)
        cursor = collection.find({"user_id": user_id}).sort("last_updated", -1)
        return [ProvenanceRecord(**self._strip_object_id(doc)) for doc in cursor]

    def start_import(
        self,
        user_id: str,
        source_ref: SourceRef,
        *,
        collection_name: str,
        fields: List[str],
        total_rows: int,
        descriptor: SchemaDescriptor | None = None,
    ) -> ProvenanceRecord:
        """
        Create or reset the provenance record at the start of an import.

        Upserts by (user_id, source_ref). Progress counters, completion and
        any previous error are reset; ``created_at`` is only set on insert.
        The descriptor is kept so later pages coerce with the same schema.
        """
        collection = self._get_collection(self.DATA_SOURCES)
        now = datetime.now(timezone.utc)
        identity = self._identity(user_id, source_ref)
        document = collection.find_one_and_update(
            identity,
            {
                "$set": {
                    "collection_name": collection_name,
                    "row_count": total_rows,
                    "schema_metadata": {
                        "fields": list(fields),
                        "imported_count": 0,
                        "total_rows": total_rows,
                        "import_progress": 0,
                        "import_complete": False,
                        "import_completed_at": None,
                        "import_error": None,
                        "descriptor": descriptor.model_dump_json() if descriptor else None,
                    },
                    "last_updated": now,
                },
                "$setOnInsert": {**identity, "created_at": now},
                "$inc": {"version": 1},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        log.info(
            f"Started import of {source_ref.describe()} for user {user_id} "
            f"into {collection_name} ({total_rows} rows)"
        )
        return ProvenanceRecord(**self._strip_object_id(document))

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
    ) -> ProvenanceRecord:
        """
        Write page progress, guarded by the record version.

        Raises:
            ProvenanceConflict: If the record changed since ``expected_version``
                was read (or no longer exists)
        """
        collection = self._get_collection(self.DATA_SOURCES)
        now = datetime.now(timezone.utc)
        update_doc: Dict[str, Any] = {
            "row_count": row_count,
            "schema_metadata.imported_count": imported_count,
            "schema_metadata.total_rows": total_rows,
            "schema_metadata.import_progress": compute_progress(imported_count, total_rows),
            "schema_metadata.import_complete": complete,
            "schema_metadata.import_error": None,
            "last_updated": now,
        }
        if complete:
            update_doc["schema_metadata.import_completed_at"] = now

        query = {**self._identity(user_id, source_ref), "version": expected_version}
        document = collection.find_one_and_update(
            query,
            {"$set": update_doc, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise ProvenanceConflict(
                f"Provenance record for {source_ref.describe()} (user {user_id}) "
                f"is no longer at version {expected_version}"
            )
        return ProvenanceRecord(**self._strip_object_id(document))

    def record_import_error(self, user_id: str, source_ref: SourceRef, message: str) -> None:
        """
        Annotate the provenance record with an import error.
        """
        collection = self._get_collection(self.DATA_SOURCES)
        result = collection.update_one(
            self._identity(user_id, source_ref),
            {
                "$set": {
                    "schema_metadata.import_error": message,
                    "schema_metadata.import_complete": False,
                    "last_updated": datetime.now(timezone.utc),
                },
                "$inc": {"version": 1},
            },
        )
        if result.matched_count == 0:
            log.warning(f"No provenance record for {source_ref.describe()} to annotate with error")
