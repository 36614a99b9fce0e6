from abc import ABC, abstractmethod
from typing import Optional, Union

from pydantic import BaseModel


class BlobUploadResult(BaseModel):
    url: str
    key: str


class BlobOperationError(BaseModel):
    error: str


class AbstractBlobStorageGateway(ABC):
    @abstractmethod
    async def put(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None
    ) -> Union[BlobUploadResult, BlobOperationError]:
        """
        Stores raw bytes under the given key.

        Args:
            key: The storage key, "<caseId>/<epochMillis>_<sanitizedFileName>".
            data: The file contents.
            content_type: MIME type forwarded to the store, if known.

        Returns:
            A BlobUploadResult with the public URL and key, or a BlobOperationError.
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> Optional[BlobOperationError]:
        """Removes the blob stored under key. Returns None on success."""
        pass

    @abstractmethod
    def public_url(self, key: str) -> str:
        pass
