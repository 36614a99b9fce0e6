# Client for a Supabase-compatible blob storage API
import logging
from typing import Optional, Union
from urllib.parse import quote

import httpx
from fastapi import Depends

from case_records_service.app.config import settings
from case_records_service.app.service.interfaces.blob_storage import (
    AbstractBlobStorageGateway,
    BlobOperationError,
    BlobUploadResult,
)
from case_records_service.app.service.exceptions import ConfigurationError
from case_records_service.app.dependencies.http_client import get_http_client

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    # Storage errors come back as {"statusCode": ..., "error": ..., "message": ...}
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or f"HTTP {response.status_code}")
    return f"HTTP {response.status_code}"


class SupabaseStorageGateway(AbstractBlobStorageGateway):
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: Optional[str] = None,
        bucket: Optional[str] = None,
        api_key: Optional[str] = None,
        cache_control: Optional[str] = None
    ):
        self.http_client = http_client
        self.base_url = (base_url or settings.BLOB_STORAGE_URL or "").rstrip("/")
        self.bucket = bucket or settings.BLOB_STORAGE_BUCKET
        self.api_key = api_key if api_key is not None else settings.BLOB_STORAGE_API_KEY
        self.cache_control = cache_control or settings.BLOB_STORAGE_CACHE_CONTROL
        if not self.base_url:
            raise ConfigurationError("BLOB_STORAGE_URL is not set. Cannot reach blob storage.")

    def _headers(self) -> dict:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    def _object_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(key)}"

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(key)}"

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None
    ) -> Union[BlobUploadResult, BlobOperationError]:
        headers = self._headers()
        headers["cache-control"] = f"max-age={self.cache_control}"
        headers["x-upsert"] = "false" # Keys are unique per upload; never overwrite
        headers["content-type"] = content_type or "application/octet-stream"

        logger.debug(f"Uploading {len(data)} bytes to blob storage key {key}")
        try:
            response = await self.http_client.post(self._object_url(key), content=data, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(f"Blob storage rejected upload of {key}: {e.response.status_code} - {message}")
            return BlobOperationError(error=message)
        except httpx.RequestError as e:
            logger.error(f"Request error uploading {key} to blob storage: {e}", exc_info=True)
            return BlobOperationError(error=str(e) or e.__class__.__name__)

        logger.info(f"Stored blob {key} in bucket {self.bucket}")
        return BlobUploadResult(url=self.public_url(key), key=key)

    async def delete(self, key: str) -> Optional[BlobOperationError]:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}"
        try:
            response = await self.http_client.request("DELETE", url, json={"prefixes": [key]}, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(f"Blob storage rejected delete of {key}: {e.response.status_code} - {message}")
            return BlobOperationError(error=message)
        except httpx.RequestError as e:
            logger.error(f"Request error deleting {key} from blob storage: {e}", exc_info=True)
            return BlobOperationError(error=str(e) or e.__class__.__name__)

        logger.info(f"Deleted blob {key} from bucket {self.bucket}")
        return None


# DI provider for the blob storage gateway
def get_blob_storage_gateway(
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> AbstractBlobStorageGateway:
    return SupabaseStorageGateway(http_client=http_client)
