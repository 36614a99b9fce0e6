import pytest
from typing import List, Optional

from case_records_service.app.models import CaseFile
from case_records_service.app.service.interfaces.blob_storage import (
    AbstractBlobStorageGateway,
    BlobOperationError,
    BlobUploadResult,
)


class FakeBlobStorageGateway(AbstractBlobStorageGateway):
    """In-memory gateway. Keys listed in put_failures / delete_failures fail with the mapped message."""

    def __init__(self):
        self.objects = {}
        self.put_calls: List[str] = []
        self.delete_calls: List[str] = []
        self.put_failures = {} # file name suffix -> error message
        self.delete_failures = {} # key -> error message

    def public_url(self, key: str) -> str:
        return f"https://blobs.test/public/{key}"

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None):
        self.put_calls.append(key)
        for suffix, message in self.put_failures.items():
            if key.endswith(suffix):
                return BlobOperationError(error=message)
        self.objects[key] = data
        return BlobUploadResult(url=self.public_url(key), key=key)

    async def delete(self, key: str) -> Optional[BlobOperationError]:
        self.delete_calls.append(key)
        if key in self.delete_failures:
            return BlobOperationError(error=self.delete_failures[key])
        self.objects.pop(key, None)
        return None


class CaseUpdateRecorder:
    """Collects every case state handed to the update callback."""

    def __init__(self):
        self.updates: List[CaseFile] = []

    async def __call__(self, case: CaseFile) -> None:
        self.updates.append(case)

    @property
    def last(self) -> Optional[CaseFile]:
        return self.updates[-1] if self.updates else None


@pytest.fixture
def fake_gateway():
    return FakeBlobStorageGateway()

@pytest.fixture
def case_updates():
    return CaseUpdateRecorder()

@pytest.fixture
def empty_case():
    return CaseFile(id="case-001", client_name="Jane Roe")
