"""
Object storage clients.

Supports Cloudflare R2 through its S3-compatible API, with an in-memory
mock for local development and tests. Both implement the core's
ObjectStore protocol: list / get / head / put / delete, nothing more.

R2 has no directories and no rename. Everything the file manager shows
as a folder is a naming convention on top of these five calls.
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import quote, unquote

from ...core.storage.errors import MalformedStoreResponseError
from ...core.storage.store import ListResult, ObjectHead, ObjectStore, ObjectSummary, StoredObject

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 1000  # R2 and S3 both cap a page at 1000 keys

_MISSING_KEY_CODES = {"404", "NoSuchKey", "NotFound"}


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for R2/S3-compatible storage.

    A dataclass keeps the connection settings explicit and makes test
    configurations trivial to build.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    region: str = "auto"  # R2 uses 'auto' for region


def _encode_metadata(metadata: Optional[dict[str, str]]) -> dict[str, str]:
    # S3 user metadata travels in HTTP headers and must be ASCII
    return {key: quote(str(value), safe="") for key, value in (metadata or {}).items()}


def _decode_metadata(metadata: Optional[dict[str, str]]) -> dict[str, str]:
    return {key: unquote(value) for key, value in (metadata or {}).items()}


def _strip_etag(etag: Optional[str]) -> Optional[str]:
    return etag.strip('"') if etag else etag


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible; the same client works against
    S3 or MinIO with a different endpoint.

    boto3 is synchronous, so every call runs in a worker thread. A
    cancelled request stops waiting at the await; the S3 call itself may
    still complete, and the store keeps whatever that call did.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize R2 client with boto3.

        Imported here rather than at module level because mock mode
        doesn't need it.
        """
        try:
            import boto3
            from botocore.config import Config
            from botocore.exceptions import ClientError
        except ImportError:
            raise ImportError(
                "boto3 is required for R2 storage. Install with: pip install boto3"
            )

        self._config = config
        self._client_error = ClientError

        # R2 requires v4 signatures and path-style addressing
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    def _is_missing(self, error: Exception) -> bool:
        if not isinstance(error, self._client_error):
            return False
        code = str(error.response.get("Error", {}).get("Code", ""))
        return code in _MISSING_KEY_CODES

    async def list(
        self,
        prefix: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ListResult:
        """
        One page of list_objects_v2.

        The continuation token is passed through as our opaque cursor.
        """
        params = {
            'Bucket': self._config.bucket_name,
            'MaxKeys': limit or DEFAULT_LIST_LIMIT,
        }
        if prefix:
            params['Prefix'] = prefix
        if cursor:
            params['ContinuationToken'] = cursor

        try:
            response = await asyncio.to_thread(self._s3_client.list_objects_v2, **params)
        except Exception as e:
            logger.error(
                "Failed to list objects",
                extra={"prefix": prefix, "error": str(e)}
            )
            raise StorageError(f"List failed: {e}") from e

        contents = response.get('Contents', [])
        if not isinstance(contents, list):
            raise MalformedStoreResponseError("Listing 'Contents' is not a list")

        try:
            entries = [
                ObjectSummary(
                    key=obj['Key'],
                    size=int(obj.get('Size', 0)),
                    uploaded_at=obj['LastModified'],
                )
                for obj in contents
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedStoreResponseError(f"Unexpected listing entry: {e}") from e

        return ListResult(
            entries=entries,
            cursor=response.get('NextContinuationToken'),
            truncated=bool(response.get('IsTruncated', False)),
        )

    async def head(self, key: str) -> Optional[ObjectHead]:
        """Object metadata, or None if the key doesn't exist."""
        try:
            response = await asyncio.to_thread(
                self._s3_client.head_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            if self._is_missing(e):
                return None
            logger.error(
                "Failed to head object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Head failed: {e}") from e

        return ObjectHead(
            size=int(response.get('ContentLength', 0)),
            content_type=response.get('ContentType'),
            custom_metadata=_decode_metadata(response.get('Metadata')),
            etag=_strip_etag(response.get('ETag')),
            uploaded_at=response.get('LastModified'),
        )

    async def get(self, key: str) -> Optional[StoredObject]:
        """Whole object, or None if the key doesn't exist."""
        def _read():
            response = self._s3_client.get_object(
                Bucket=self._config.bucket_name,
                Key=key,
            )
            return response, response['Body'].read()

        try:
            response, body = await asyncio.to_thread(_read)
        except Exception as e:
            if self._is_missing(e):
                return None
            logger.error(
                "Failed to download object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}") from e

        return StoredObject(
            key=key,
            body=body,
            content_type=response.get('ContentType'),
            custom_metadata=_decode_metadata(response.get('Metadata')),
            etag=_strip_etag(response.get('ETag')),
            uploaded_at=response.get('LastModified'),
        )

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Create or overwrite an object."""
        params = {
            'Bucket': self._config.bucket_name,
            'Key': key,
            'Body': data,
            'Metadata': _encode_metadata(custom_metadata),
        }
        if content_type:
            params['ContentType'] = content_type

        try:
            await asyncio.to_thread(self._s3_client.put_object, **params)
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}") from e

        logger.debug(
            "Uploaded object",
            extra={"key": key, "size_bytes": len(data)}
        )

    async def delete(self, key: str) -> None:
        """Delete one object. S3 treats deleting a missing key as success."""
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            logger.error(
                "Failed to delete object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Delete failed: {e}") from e

        logger.debug("Deleted object", extra={"key": key})


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class _MockObject:
    body: bytes
    content_type: Optional[str]
    custom_metadata: dict[str, str]
    uploaded_at: datetime

    @property
    def etag(self) -> str:
        return hashlib.md5(self.body).hexdigest()


class MockStorageClient:
    """
    In-memory object store for local development and tests.

    Behaves like R2 where it matters to the file manager: keys list in
    lexicographic order, listings are paginated with an opaque cursor and
    a truncated flag, get/head on a missing key return None, and a put to
    an existing key silently overwrites it.

    `calls` counts operations by name so tests can assert what did (or
    didn't) hit the store.
    """

    def __init__(
        self,
        page_size: int = DEFAULT_LIST_LIMIT,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._objects: dict[str, _MockObject] = {}
        self._page_size = page_size
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.calls: dict[str, int] = {}
        logger.info("Initialized mock storage client (in-memory)")

    def _record(self, operation: str) -> None:
        self.calls[operation] = self.calls.get(operation, 0) + 1

    def keys(self) -> list[str]:
        return sorted(self._objects)

    async def list(
        self,
        prefix: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ListResult:
        """Page through keys; the cursor is the last key of the previous page."""
        self._record("list")
        page_size = min(limit or self._page_size, self._page_size)

        keys = [key for key in sorted(self._objects) if not prefix or key.startswith(prefix)]
        if cursor:
            keys = [key for key in keys if key > cursor]

        page = keys[:page_size]
        truncated = len(keys) > page_size

        return ListResult(
            entries=[
                ObjectSummary(
                    key=key,
                    size=len(self._objects[key].body),
                    uploaded_at=self._objects[key].uploaded_at,
                )
                for key in page
            ],
            cursor=page[-1] if truncated else None,
            truncated=truncated,
        )

    async def head(self, key: str) -> Optional[ObjectHead]:
        self._record("head")
        obj = self._objects.get(key)
        if obj is None:
            return None
        return ObjectHead(
            size=len(obj.body),
            content_type=obj.content_type,
            custom_metadata=dict(obj.custom_metadata),
            etag=obj.etag,
            uploaded_at=obj.uploaded_at,
        )

    async def get(self, key: str) -> Optional[StoredObject]:
        self._record("get")
        obj = self._objects.get(key)
        if obj is None:
            return None
        return StoredObject(
            key=key,
            body=obj.body,
            content_type=obj.content_type,
            custom_metadata=dict(obj.custom_metadata),
            etag=obj.etag,
            uploaded_at=obj.uploaded_at,
        )

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        custom_metadata: Optional[dict[str, str]] = None,
    ) -> None:
        self._record("put")
        self._objects[key] = _MockObject(
            body=bytes(data),
            content_type=content_type,
            custom_metadata=dict(custom_metadata or {}),
            uploaded_at=self._now(),
        )

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

    async def delete(self, key: str) -> None:
        self._record("delete")
        self._objects.pop(key, None)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> ObjectStore:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return the in-memory client

    Returns:
        ObjectStore implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
