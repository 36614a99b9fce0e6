import re
import pytest
from unittest.mock import AsyncMock, MagicMock, ANY

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from case_records_service.infrastructure.database.directory_store import DirectoryStore, fold_name
from case_records_service.app.models import (
    DirectoryProvider,
    DirectoryProviderInput,
    DirectoryProviderUpdate,
    MedicalProviderType,
)


@pytest.fixture
def mock_collection():
    collection = MagicMock()
    collection.find_one_and_update = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.create_index = AsyncMock()
    return collection

@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__.return_value = mock_collection
    return db

@pytest.fixture
def store(mock_db):
    return DirectoryStore(mock_db, "medical_providers_directory", DirectoryProvider)

def _stored_doc(**fields):
    doc = {"_id": "oid", "id": "dir-1", "name": "General Hospital", "name_key": "general hospital", "type": "hospital"}
    doc.update(fields)
    return doc


def test_fold_name():
    assert fold_name("  General HOSPITAL ") == "general hospital"

@pytest.mark.asyncio
async def test_upsert_by_name_is_single_atomic_call(store, mock_collection):
    mock_collection.find_one_and_update.return_value = _stored_doc(phone="555-0100")

    record = await store.upsert_by_name(DirectoryProviderInput(name=" General Hospital ", type=MedicalProviderType.HOSPITAL, phone="555-0100"))

    mock_collection.find_one_and_update.assert_awaited_once_with(
        {"name_key": "general hospital"}, ANY, upsert=True, return_document=ReturnDocument.AFTER
    )
    update = mock_collection.find_one_and_update.call_args[0][1]
    assert update["$set"]["name"] == "General Hospital"
    assert update["$set"]["phone"] == "555-0100"
    assert "id" in update["$setOnInsert"]
    assert "id" not in update["$set"]
    assert isinstance(record, DirectoryProvider)
    assert record.phone == "555-0100"

@pytest.mark.asyncio
async def test_upsert_blank_name_skips_store(store, mock_collection):
    assert await store.upsert_by_name(DirectoryProviderInput(name="   ")) is None
    mock_collection.find_one_and_update.assert_not_awaited()

@pytest.mark.asyncio
async def test_upsert_retries_once_after_duplicate_key(store, mock_collection):
    mock_collection.find_one_and_update.side_effect = [DuplicateKeyError("dup"), _stored_doc()]

    record = await store.upsert_by_name(DirectoryProviderInput(name="General Hospital"))

    assert record.id == "dir-1"
    assert mock_collection.find_one_and_update.await_count == 2

@pytest.mark.asyncio
async def test_upsert_store_error_returns_none(store, mock_collection):
    mock_collection.find_one_and_update.side_effect = Exception("network")
    assert await store.upsert_by_name(DirectoryProviderInput(name="General Hospital")) is None

@pytest.mark.asyncio
async def test_search_below_minimum_length_skips_store(store, mock_collection):
    assert await store.search("g") == []
    assert await store.search("") == []
    mock_collection.find.assert_not_called()

@pytest.mark.asyncio
async def test_search_escapes_query_and_limits(store, mock_collection):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[_stored_doc()])
    mock_collection.find.return_value = cursor

    results = await store.search("st. mary")

    mock_collection.find.assert_called_once_with({"name": {"$regex": re.escape("st. mary"), "$options": "i"}})
    cursor.sort.assert_called_once_with("name_key", 1)
    cursor.limit.assert_called_once_with(10)
    assert [r.name for r in results] == ["General Hospital"]

@pytest.mark.asyncio
async def test_search_error_degrades_to_empty(store, mock_collection):
    mock_collection.find.side_effect = Exception("timeout")
    assert await store.search("general") == []

@pytest.mark.asyncio
async def test_update_renames_and_refolds_key(store, mock_collection):
    mock_collection.find_one_and_update.return_value = _stored_doc(name="General Hospital East", name_key="general hospital east")

    record = await store.update("dir-1", DirectoryProviderUpdate(name=" General Hospital East", phone="555-0111"))

    filter_doc, update = mock_collection.find_one_and_update.call_args[0]
    assert filter_doc == {"id": "dir-1"}
    assert update["$set"]["name_key"] == "general hospital east"
    assert update["$set"]["phone"] == "555-0111"
    assert "city" not in update["$set"]
    assert record.name == "General Hospital East"

@pytest.mark.asyncio
async def test_update_to_blank_name_is_rejected(store, mock_collection):
    assert await store.update("dir-1", DirectoryProviderUpdate(name="  ")) is None
    mock_collection.find_one_and_update.assert_not_awaited()

@pytest.mark.asyncio
async def test_update_name_collision_returns_none(store, mock_collection):
    mock_collection.find_one_and_update.side_effect = DuplicateKeyError("dup")
    assert await store.update("dir-1", DirectoryProviderUpdate(name="Other Clinic")) is None

@pytest.mark.asyncio
async def test_delete(store, mock_collection):
    mock_collection.delete_one.return_value = MagicMock(deleted_count=1)
    assert await store.delete("dir-1") is True
    mock_collection.delete_one.return_value = MagicMock(deleted_count=0)
    assert await store.delete("dir-1") is False

@pytest.mark.asyncio
async def test_ensure_indexes(store, mock_collection):
    await store.ensure_indexes()
    assert mock_collection.create_index.await_count == 2
    assert all(call.kwargs["unique"] for call in mock_collection.create_index.await_args_list)
