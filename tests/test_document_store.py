from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ServerSelectionTimeoutError

from pulse_admin.database.document_store import MongoDocumentStore
from pulse_admin.database.paths import StoragePath
from pulse_admin.errors import StoreError

DOC_PATH = StoragePath.of("reflections", "01-03-2025", "general", "general")


@pytest.fixture
def collection():
    return AsyncMock()


@pytest.fixture
def mock_db_manager(collection):
    manager = MagicMock()
    manager.get_collection.return_value = collection
    manager.log_query_start.return_value = 0.0
    return manager


@pytest.fixture
def mongo_store(mock_db_manager):
    return MongoDocumentStore(database=mock_db_manager)


@pytest.mark.asyncio
async def test_get_strips_bookkeeping_fields(mongo_store, collection, mock_db_manager):
    collection.find_one.return_value = {
        "_id": str(DOC_PATH),
        "_parent": "reflections/01-03-2025/general",
        "_key": "general",
        "text": "Hello",
    }

    data = await mongo_store.get(DOC_PATH)

    assert data == {"text": "Hello"}
    mock_db_manager.get_collection.assert_called_with("reflections")
    collection.find_one.assert_awaited_once_with({"_id": "reflections/01-03-2025/general/general"})


@pytest.mark.asyncio
async def test_successful_query_logs_timing(mongo_store, collection, mock_db_manager):
    collection.find_one.return_value = None

    await mongo_store.get(DOC_PATH)

    mock_db_manager.log_query_success.assert_called_once_with("reflections", "find_one", 0.0)
    mock_db_manager.log_query_error.assert_not_called()


@pytest.mark.asyncio
async def test_get_missing_returns_none(mongo_store, collection):
    collection.find_one.return_value = None

    assert await mongo_store.get(DOC_PATH) is None


@pytest.mark.asyncio
async def test_set_replaces_with_upsert(mongo_store, collection):
    await mongo_store.set(DOC_PATH, {"text": "Hello", "_id": "ignored"})

    query, document = collection.replace_one.call_args[0]
    assert query == {"_id": str(DOC_PATH)}
    assert document == {
        "text": "Hello",
        "_id": str(DOC_PATH),
        "_parent": "reflections/01-03-2025/general",
        "_key": "general",
    }
    assert collection.replace_one.call_args[1] == {"upsert": True}


@pytest.mark.asyncio
async def test_merge_splits_insert_only_fields(mongo_store, collection):
    path = StoragePath.of("programming-access", "abc")

    await mongo_store.merge(path, {"email": "a@x.com", "status": "active"}, on_insert={"created_at": 1, "status": "requested"})

    query, update = collection.update_one.call_args[0]
    assert query == {"_id": "programming-access/abc"}
    assert update["$set"] == {"email": "a@x.com", "_parent": "programming-access", "_key": "abc"}
    assert update["$setOnInsert"] == {"created_at": 1, "status": "requested"}
    assert collection.update_one.call_args[1] == {"upsert": True}


@pytest.mark.asyncio
async def test_merge_without_insert_fields(mongo_store, collection):
    await mongo_store.merge(StoragePath.of("reflections", "01-03-2025"), {"date_key": "01-03-2025"})

    update = collection.update_one.call_args[0][1]
    assert "$setOnInsert" not in update


@pytest.mark.asyncio
async def test_update_reports_missing_document(mongo_store, collection):
    collection.update_one.return_value = MagicMock(matched_count=0)

    assert await mongo_store.update(DOC_PATH, {"text": "x"}) is False

    collection.update_one.return_value = MagicMock(matched_count=1)
    assert await mongo_store.update(DOC_PATH, {"text": "x"}) is True
    assert collection.update_one.call_args[0][1] == {"$set": {"text": "x"}}


@pytest.mark.asyncio
async def test_delete_reports_whether_removed(mongo_store, collection):
    collection.delete_one.return_value = MagicMock(deleted_count=1)

    assert await mongo_store.delete(DOC_PATH) is True


@pytest.mark.asyncio
async def test_list_documents_queries_by_parent(mongo_store, collection):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(
        return_value=[{"_id": "reflections/01-03-2025", "_parent": "reflections", "_key": "01-03-2025", "date_key": "01-03-2025"}]
    )
    collection.find = MagicMock(return_value=cursor)

    documents = await mongo_store.list_documents(
        StoragePath.of("reflections"), order_by="date", descending=True, limit=5
    )

    assert documents == [("01-03-2025", {"date_key": "01-03-2025"})]
    collection.find.assert_called_once_with({"_parent": "reflections"})
    cursor.sort.assert_called_once_with("date", DESCENDING)
    cursor.limit.assert_called_once_with(5)
    cursor.to_list.assert_awaited_once_with(length=5)


@pytest.mark.asyncio
async def test_list_documents_defaults_to_key_order(mongo_store, collection):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    collection.find = MagicMock(return_value=cursor)

    await mongo_store.list_documents(StoragePath.of("programming-access"), where={"status": "active"})

    collection.find.assert_called_once_with({"status": "active", "_parent": "programming-access"})
    cursor.sort.assert_called_once_with("_key", ASCENDING)
    cursor.limit.assert_not_called()


@pytest.mark.asyncio
async def test_driver_errors_become_store_errors(mongo_store, collection, mock_db_manager):
    collection.find_one.side_effect = ServerSelectionTimeoutError("no servers")

    with pytest.raises(StoreError) as exc_info:
        await mongo_store.get(DOC_PATH)

    assert isinstance(exc_info.value.__cause__, ServerSelectionTimeoutError)
    mock_db_manager.log_query_error.assert_called_once()


@pytest.mark.asyncio
async def test_missing_connection_becomes_store_error(mongo_store, mock_db_manager):
    mock_db_manager.get_collection.side_effect = ConnectionError("Database not connected")

    with pytest.raises(StoreError):
        await mongo_store.delete(DOC_PATH)


@pytest.mark.asyncio
async def test_rejects_wrong_path_kind(mongo_store):
    with pytest.raises(ValueError):
        await mongo_store.get(StoragePath.of("reflections"))
    with pytest.raises(ValueError):
        await mongo_store.list_documents(StoragePath.of("reflections", "01-03-2025"))


def test_storage_path_shape():
    path = StoragePath.of("reflections", "01-03-2025", "challenges")
    assert path.is_container
    assert path.collection_name == "reflections"
    assert str(path.child("c1")) == "reflections/01-03-2025/challenges/c1"
    assert str(path.parent) == "reflections/01-03-2025"
    with pytest.raises(ValueError):
        StoragePath.of("reflections", "a/b")
