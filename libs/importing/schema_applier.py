# =============================================================================
# Schema Applier
# =============================================================================
# Provisions the target collection for an import: reuses it when it already
# exists, otherwise creates it with advisory validation and its indexes.
# =============================================================================

import logging
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, GEOSPHERE, HASHED, TEXT
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import CollectionInvalid

from libs.models import IndexSpec, SchemaDescriptor

__all__ = ["SchemaApplier", "IndexPlan"]

IndexPlan = Tuple[List[Tuple[str, Any]], Dict[str, Any]]

_INDEX_DIRECTIONS: Dict[str, Any] = {
    "ascending": ASCENDING,
    "asc": ASCENDING,
    "1": ASCENDING,
    "single": ASCENDING,
    "compound": ASCENDING,
    "index": ASCENDING,
    "btree": ASCENDING,
    "unique": ASCENDING,
    "descending": DESCENDING,
    "desc": DESCENDING,
    "-1": DESCENDING,
    "text": TEXT,
    "hashed": HASHED,
    "2dsphere": GEOSPHERE,
}


class SchemaApplier:
    """
    Creates or reuses the collection described by a SchemaDescriptor.

    An existing collection is never modified: validators and indexes are only
    applied when the collection is created. Callers wanting a clean slate
    drop the collection first (see ``drop_if_exists``).

    Validation never rejects writes (action "warn") and the level defaults
    to moderate, so imperfectly typed sources are still ingested with
    violations logged by the server.
    """

    VALIDATION_ACTION = "warn"

    def __init__(
        self,
        database: Database,
        *,
        validation_level: str = "moderate",
        log: Optional[logging.Logger] = None,
    ):
        self._database = database
        self.validation_level = validation_level
        self.log = log or logging.getLogger(__name__)

    def collection_exists(self, name: str) -> bool:
        return name in self._database.list_collection_names()

    def drop_if_exists(self, name: str) -> bool:
        """Drop ``name`` if it exists. Returns True when a collection was dropped."""
        if not self.collection_exists(name):
            self.log.info(f"Collection {name} does not exist, nothing to drop")
            return False
        self._database.drop_collection(name)
        self.log.info(f"Collection {name} dropped")
        return True

    def provision(self, descriptor: SchemaDescriptor) -> Collection:
        """
        Return the target collection, creating it if absent.

        Args:
            descriptor: Target collection shape

        Returns:
            The pymongo Collection
        """
        name = descriptor.collection_name

        if self.collection_exists(name):
            self.log.info(f"Collection {name} already exists, using existing collection")
            return self._database[name]

        options: Dict[str, Any] = {
            "validationLevel": self.validation_level,
            "validationAction": self.VALIDATION_ACTION,
        }
        if descriptor.validation_rules:
            options["validator"] = descriptor.validation_rules

        self.log.info(
            f"Creating collection {name} "
            f"(validationLevel={self.validation_level}, validationAction={self.VALIDATION_ACTION})"
        )
        try:
            collection = self._database.create_collection(name, **options)
        except CollectionInvalid:
            # Created by someone else between the existence check and now
            self.log.warning(f"Collection {name} appeared concurrently, using it as-is")
            return self._database[name]

        for keys, kwargs in self.plan_indexes(descriptor):
            index_name = collection.create_index(keys, **kwargs)
            self.log.info(f"Created index {index_name} on {name}")

        return collection

    def plan_indexes(self, descriptor: SchemaDescriptor) -> List[IndexPlan]:
        """
        Index definitions for a descriptor.

        Declared indexes come first, in order. Fields flagged ``indexed`` or
        ``unique`` that no declared index starts with get a single-field
        ascending index. Only an index of kind "unique" enforces uniqueness;
        field-level ``unique`` flags stay advisory.
        """
        plans: List[IndexPlan] = []
        leading_fields = set()

        for index in descriptor.indexes:
            keys = self._index_keys(index)
            unknown = [f for f in index.fields if descriptor.get_field(f) is None]
            if unknown:
                self.log.warning(
                    f"Index on {index.fields} references undeclared fields {unknown}"
                )
            kwargs: Dict[str, Any] = {}
            if index.kind == "unique":
                kwargs["unique"] = True
            plans.append((keys, kwargs))
            leading_fields.add(index.fields[0])

        for spec in descriptor.fields:
            if (spec.indexed or spec.unique) and spec.name not in leading_fields:
                plans.append(([(spec.name, ASCENDING)], {}))
                leading_fields.add(spec.name)

        return plans

    def _index_keys(self, index: IndexSpec) -> List[Tuple[str, Any]]:
        direction = _INDEX_DIRECTIONS.get(index.kind)
        if direction is None:
            self.log.warning(f"Unknown index kind '{index.kind}', using ascending")
            direction = ASCENDING
        return [(field_name, direction) for field_name in index.fields]
