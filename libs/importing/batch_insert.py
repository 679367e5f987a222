# =============================================================================
# Batch Insertion Engine
# =============================================================================
# Writes coerced documents in fixed-size chunks with unordered insert_many,
# degrading to one-at-a-time inserts when a chunk fails. Salvages as many
# documents as possible; only infrastructure faults propagate.
# =============================================================================

import logging
from typing import Any, Dict, List, Optional, Sequence

from pymongo.collection import Collection
from pymongo.errors import (
    BulkWriteError,
    ConnectionFailure,
    DuplicateKeyError,
    PyMongoError,
)

from libs.errors import InfrastructureError, PartialInsertFailure

__all__ = ["BatchInserter", "DEFAULT_BATCH_SIZE"]

DEFAULT_BATCH_SIZE = 1000

_PREVIEW_CHARS = 100


def _preview(document: Dict[str, Any]) -> str:
    text = repr(document)
    if len(text) > _PREVIEW_CHARS:
        return text[:_PREVIEW_CHARS] + "..."
    return text


class BatchInserter:
    """
    Best-effort chunked inserter.

    ``insert`` never raises on rejected documents; they are logged, recorded
    in ``last_failures`` and left out of the returned count. Connection
    failures are raised as InfrastructureError.
    """

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        log: Optional[logging.Logger] = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self.log = log or logging.getLogger(__name__)
        self.last_failures: List[PartialInsertFailure] = []

    def insert(self, collection: Collection, documents: Sequence[Dict[str, Any]]) -> int:
        """
        Insert ``documents`` into ``collection``.

        Returns:
            Number of documents actually inserted (may be less than
            ``len(documents)``, including zero)

        Raises:
            InfrastructureError: If the datastore connection fails
        """
        self.last_failures = []
        total = len(documents)
        inserted_count = 0

        for start in range(0, total, self.batch_size):
            chunk = [dict(doc) for doc in documents[start : start + self.batch_size]]
            inserted_count += self._insert_chunk(collection, chunk, start)

        if self.last_failures:
            self.log.warning(
                f"{len(self.last_failures)} of {total} documents rejected "
                f"while inserting into {collection.name}"
            )
        self.log.info(
            f"Inserted {inserted_count} of {total} documents into {collection.name}"
        )
        return inserted_count

    def _insert_chunk(
        self, collection: Collection, chunk: List[Dict[str, Any]], offset: int
    ) -> int:
        if not chunk:
            return 0

        try:
            result = collection.insert_many(chunk, ordered=False)
            self.log.info(f"Inserted {len(result.inserted_ids)} documents in batch")
            return len(result.inserted_ids)
        except ConnectionFailure as e:
            raise InfrastructureError(f"Lost connection while inserting batch: {e}") from e
        except BulkWriteError as e:
            details = e.details or {}
            inserted = int(details.get("nInserted", 0))
            failed_indexes = sorted(
                {err["index"] for err in details.get("writeErrors", []) if "index" in err}
            )
            self.log.error(
                f"Batch insert at offset {offset} rejected {len(failed_indexes)} documents; "
                f"{inserted} inserted before fallback"
            )
            # Documents outside writeErrors were already written by the
            # unordered insert; only the rejected ones are retried
            retry = [(idx, chunk[idx]) for idx in failed_indexes if idx < len(chunk)]
            if not failed_indexes:
                retry = list(enumerate(chunk))
                inserted = 0
            return inserted + self._insert_one_by_one(collection, retry, offset)
        except PyMongoError as e:
            self.log.error(f"Error inserting batch at offset {offset}: {e}")
            return self._insert_one_by_one(collection, list(enumerate(chunk)), offset)

    def _insert_one_by_one(
        self,
        collection: Collection,
        indexed_docs: List[tuple[int, Dict[str, Any]]],
        offset: int,
    ) -> int:
        inserted = 0
        for idx, doc in indexed_docs:
            # Documents keep the _id assigned by insert_many, so a retry of an
            # already written document hits a duplicate _id instead of a copy
            try:
                result = collection.insert_one(doc)
            except ConnectionFailure as e:
                raise InfrastructureError(
                    f"Lost connection while inserting document {offset + idx}: {e}"
                ) from e
            except DuplicateKeyError as e:
                if self._already_written(collection, doc):
                    self.log.info(f"Document {offset + idx} was already written by the batch")
                    inserted += 1
                    continue
                self._record_failure(offset + idx, doc, e)
                continue
            except PyMongoError as e:
                self._record_failure(offset + idx, doc, e)
                continue
            if result.acknowledged:
                inserted += 1
        return inserted

    @staticmethod
    def _already_written(collection: Collection, doc: Dict[str, Any]) -> bool:
        if "_id" not in doc:
            return False
        return collection.find_one({"_id": doc["_id"]}, {"_id": 1}) is not None

    def _record_failure(self, index: int, doc: Dict[str, Any], error: Exception) -> None:
        failure = PartialInsertFailure(
            index=index, error=str(error), document_preview=_preview(doc)
        )
        self.last_failures.append(failure)
        self.log.warning(
            f"Failed to insert document {failure.index}: {failure.document_preview} ({error})"
        )
