import asyncio
import copy
from typing import Dict, List, Optional, Union

import pytest
from redis.exceptions import RedisError

from pulse_admin.database.document_store import Document, DocumentStore, KeyedDocument
from pulse_admin.database.paths import StoragePath
from pulse_admin.errors import StoreError
from pulse_admin.services.access_request_service import AccessRequestService
from pulse_admin.services.reflection_service import ReflectionService


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store with the same path semantics as the MongoDB adapter."""

    def __init__(self):
        self.documents: Dict[str, Document] = {}
        # Any operation on a path starting with one of these raises StoreError.
        self.failing_prefixes: List[str] = []

    def _check(self, operation: str, path: StoragePath):
        for prefix in self.failing_prefixes:
            if str(path).startswith(prefix):
                raise StoreError(operation, str(path), "injected failure")

    async def get(self, path: StoragePath) -> Optional[Document]:
        self._check("get", path)
        data = self.documents.get(str(path))
        return copy.deepcopy(data) if data is not None else None

    async def set(self, path: StoragePath, data: Document) -> None:
        self._check("set", path)
        self.documents[str(path)] = copy.deepcopy(data)

    async def merge(self, path: StoragePath, data: Document, on_insert: Optional[Document] = None) -> None:
        self._check("merge", path)
        on_insert = on_insert or {}
        existing = self.documents.get(str(path))
        if existing is None:
            self.documents[str(path)] = copy.deepcopy({**data, **on_insert})
        else:
            existing.update(copy.deepcopy({k: v for k, v in data.items() if k not in on_insert}))

    async def update(self, path: StoragePath, data: Document) -> bool:
        self._check("update", path)
        existing = self.documents.get(str(path))
        if existing is None:
            return False
        existing.update(copy.deepcopy(data))
        return True

    async def delete(self, path: StoragePath) -> bool:
        self._check("delete", path)
        return self.documents.pop(str(path), None) is not None

    async def list_documents(
        self,
        container: StoragePath,
        where: Optional[Document] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[KeyedDocument]:
        self._check("list", container)
        entries = []
        for path, data in self.documents.items():
            parent, _, key = path.rpartition("/")
            if parent != str(container):
                continue
            if where and any(data.get(field) != value for field, value in where.items()):
                continue
            entries.append((key, copy.deepcopy(data)))

        if order_by:
            entries.sort(key=lambda entry: entry[1][order_by], reverse=descending)
        else:
            entries.sort(key=lambda entry: entry[0], reverse=descending)
        return entries[:limit] if limit else entries


class YieldingDocumentStore(InMemoryDocumentStore):
    """Yields to the event loop before every operation so concurrent callers interleave."""

    async def get(self, path):
        await asyncio.sleep(0)
        return await super().get(path)

    async def set(self, path, data):
        await asyncio.sleep(0)
        await super().set(path, data)

    async def merge(self, path, data, on_insert=None):
        await asyncio.sleep(0)
        await super().merge(path, data, on_insert)

    async def update(self, path, data):
        await asyncio.sleep(0)
        return await super().update(path, data)

    async def delete(self, path):
        await asyncio.sleep(0)
        return await super().delete(path)

    async def list_documents(self, container, where=None, order_by=None, descending=False, limit=None):
        await asyncio.sleep(0)
        return await super().list_documents(container, where, order_by, descending, limit)


class FakeBlobStore:
    """Stands in for `RedisManager` in cache tests."""

    def __init__(self):
        self.blobs: Dict[str, Union[str, bytes]] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.writes: List[tuple] = []

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise RedisError("connection refused")
        value = self.blobs.get(key)
        # Replies are decoded as UTF-8, as with `decode_responses=True`.
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if self.fail_writes:
            raise RedisError("connection refused")
        self.blobs[key] = value
        self.writes.append((key, ttl))

    async def delete(self, key: str) -> None:
        self.blobs.pop(key, None)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def yielding_store():
    return YieldingDocumentStore()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def reflection_service(store):
    return ReflectionService(store=store)


@pytest.fixture
def access_service(store):
    return AccessRequestService(store=store)
