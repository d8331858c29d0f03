"""
# Hierarchical Document Store

The admin services address data as **containers of documents**, each document optionally
owning sub-containers (`reflections/{date}/challenges/{challengeId}`). This module defines
that contract (`DocumentStore`) and implements it on MongoDB (`MongoDocumentStore`).

## MongoDB Mapping

One MongoDB collection per top-level container. Every stored document carries three
bookkeeping fields, stripped again on read:

| Field     | Value                                   |
|-----------|-----------------------------------------|
| `_id`     | full document path                      |
| `_parent` | path of the container holding it        |
| `_key`    | last path segment (the document's name) |

Listing a container is then a single indexed query on `_parent`, and every write is a
single-document operation, so `merge()` (an upsert with `$setOnInsert`) is atomic.

## Primitives

- `get(path)` / `set(path, data)` / `merge(path, data, on_insert)` / `update(path, data)` / `delete(path)`
- `list_documents(container, where, order_by, descending, limit)`

There is no cross-container query: callers that need data from many
containers fan out over `list_documents()`.

## Errors

Any `PyMongoError` (or a missing connection) is re-raised as `StoreError` with the
original exception chained.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from pulse_admin.database.manager import DatabaseManager, db_manager
from pulse_admin.database.paths import StoragePath
from pulse_admin.errors import StoreError
from pulse_admin.managers.logging_manager import get_logger

logger = get_logger(prefix="[DocumentStore]")

META_FIELDS = ("_id", "_parent", "_key")

Document = Dict[str, Any]
KeyedDocument = Tuple[str, Document]


class DocumentStore(ABC):
    """Contract for a hierarchical key-value document store."""

    @abstractmethod
    async def get(self, path: StoragePath) -> Optional[Document]:
        """Return the document at `path`, or `None` if absent."""

    @abstractmethod
    async def set(self, path: StoragePath, data: Document) -> None:
        """Write `data` at `path`, replacing any existing document entirely."""

    @abstractmethod
    async def merge(self, path: StoragePath, data: Document, on_insert: Optional[Document] = None) -> None:
        """
        Upsert: write the fields of `data` onto the document at `path`, creating it if absent.

        Fields in `on_insert` are written only when the document is created; a key present
        in both is treated as insert-only.
        """

    @abstractmethod
    async def update(self, path: StoragePath, data: Document) -> bool:
        """Write the fields of `data` onto an existing document. Returns `False` if absent."""

    @abstractmethod
    async def delete(self, path: StoragePath) -> bool:
        """Delete the document at `path`. Returns whether a document was removed."""

    @abstractmethod
    async def list_documents(
        self,
        container: StoragePath,
        where: Optional[Document] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[KeyedDocument]:
        """
        List `(key, data)` pairs of the documents directly inside `container`.

        `where` is an equality filter on document fields. Ordering defaults to the
        document key.
        """


def _require_document(path: StoragePath) -> None:
    if not path.is_document:
        raise ValueError(f"{path} is a container path, expected a document path")


def _require_container(path: StoragePath) -> None:
    if not path.is_container:
        raise ValueError(f"{path} is a document path, expected a container path")


class MongoDocumentStore(DocumentStore):
    """`DocumentStore` backed by MongoDB through the shared `DatabaseManager`."""

    def __init__(self, database: Optional[DatabaseManager] = None):
        self._db = database or db_manager

    def _collection(self, path: StoragePath) -> AsyncIOMotorCollection:
        return self._db.get_collection(path.collection_name)

    @staticmethod
    def _meta(path: StoragePath) -> Document:
        return {"_parent": str(path.parent), "_key": path.key}

    @staticmethod
    def _clean(data: Document) -> Document:
        return {k: v for k, v in data.items() if k not in META_FIELDS}

    @staticmethod
    def _split(raw: Document) -> KeyedDocument:
        return raw["_key"], {k: v for k, v in raw.items() if k not in META_FIELDS}

    @contextmanager
    def _translate_errors(self, operation: str, path: StoragePath, query: Optional[Document] = None) -> Iterator[None]:
        start_time = self._db.log_query_start(path.collection_name, operation, query)
        try:
            yield
        except (PyMongoError, ConnectionError) as e:
            self._db.log_query_error(path.collection_name, operation, start_time, e, query)
            raise StoreError(operation, str(path), str(e)) from e
        self._db.log_query_success(path.collection_name, operation, start_time)

    async def get(self, path: StoragePath) -> Optional[Document]:
        _require_document(path)
        query = {"_id": str(path)}
        with self._translate_errors("find_one", path, query):
            raw = await self._collection(path).find_one(query)
        if raw is None:
            return None
        return self._split(raw)[1]

    async def set(self, path: StoragePath, data: Document) -> None:
        _require_document(path)
        document = {**self._clean(data), **self._meta(path), "_id": str(path)}
        with self._translate_errors("replace_one", path, {"_id": str(path)}):
            await self._collection(path).replace_one({"_id": str(path)}, document, upsert=True)
        logger.debug("Set document %s", path)

    async def merge(self, path: StoragePath, data: Document, on_insert: Optional[Document] = None) -> None:
        _require_document(path)
        fields = self._clean(data)
        insert_only = self._clean(on_insert or {})
        # MongoDB rejects an update naming the same field in $set and $setOnInsert.
        to_set = {k: v for k, v in fields.items() if k not in insert_only}

        update: Document = {"$set": {**to_set, **self._meta(path)}}
        if insert_only:
            update["$setOnInsert"] = insert_only

        with self._translate_errors("update_one(upsert)", path, {"_id": str(path)}):
            await self._collection(path).update_one({"_id": str(path)}, update, upsert=True)
        logger.debug("Merged document %s", path)

    async def update(self, path: StoragePath, data: Document) -> bool:
        _require_document(path)
        with self._translate_errors("update_one", path, {"_id": str(path)}):
            result = await self._collection(path).update_one({"_id": str(path)}, {"$set": self._clean(data)})
        return result.matched_count > 0

    async def delete(self, path: StoragePath) -> bool:
        _require_document(path)
        with self._translate_errors("delete_one", path, {"_id": str(path)}):
            result = await self._collection(path).delete_one({"_id": str(path)})
        return result.deleted_count > 0

    async def list_documents(
        self,
        container: StoragePath,
        where: Optional[Document] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[KeyedDocument]:
        _require_container(container)
        query = {**(where or {}), "_parent": str(container)}
        with self._translate_errors("find", container, query):
            cursor = self._collection(container).find(query).sort(order_by or "_key", DESCENDING if descending else ASCENDING)
            if limit:
                cursor = cursor.limit(limit)
            raw_documents = await cursor.to_list(length=limit)
        return [self._split(raw) for raw in raw_documents]


# Global instance
document_store = MongoDocumentStore()
