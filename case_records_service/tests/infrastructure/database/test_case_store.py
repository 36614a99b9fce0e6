import pytest
from unittest.mock import AsyncMock, MagicMock

from case_records_service.infrastructure.database import case_store
from case_records_service.app.models import CaseFile, DocumentAttachment, DocumentType


@pytest.fixture
def mock_collection():
    collection = MagicMock()
    collection.find_one = AsyncMock()
    collection.replace_one = AsyncMock()
    return collection

@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__.return_value = mock_collection
    return db


@pytest.mark.asyncio
async def test_get_case_found_keeps_unknown_fields(mock_db, mock_collection):
    mock_collection.find_one.return_value = {
        "_id": "oid", "id": "case-001", "client_name": "Jane Roe",
        "documents": [{"type": "retainer", "file_name": "retainer.pdf"}],
    }

    case = await case_store.get_case(mock_db, "case-001")

    mock_collection.find_one.assert_awaited_once_with({"id": "case-001"})
    assert case.documents[0].type == DocumentType.RETAINER
    assert case.model_dump()["client_name"] == "Jane Roe"
    assert "_id" not in case.model_dump()

@pytest.mark.asyncio
async def test_get_case_not_found(mock_db, mock_collection):
    mock_collection.find_one.return_value = None
    assert await case_store.get_case(mock_db, "missing") is None

@pytest.mark.asyncio
async def test_replace_case_upserts_whole_aggregate(mock_db, mock_collection):
    case = CaseFile(id="case-001", documents=[DocumentAttachment(type=DocumentType.PHOTO, file_name="p.jpg")])

    returned = await case_store.replace_case(mock_db, case)

    filter_doc, stored = mock_collection.replace_one.call_args[0]
    assert filter_doc == {"id": "case-001"}
    assert stored["documents"][0]["type"] == "photo"
    assert mock_collection.replace_one.call_args.kwargs["upsert"] is True
    assert returned is case
