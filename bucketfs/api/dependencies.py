"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Routes never build their own store or services, so
tests can swap in the in-memory store and a frozen clock through
app.dependency_overrides.

Each service is cheap and stateless: a new one per request, all sharing
the request's store client.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.storage.clock import Clock, SystemClock
from ..core.storage.files import FileService
from ..core.storage.folders import FolderService
from ..core.storage.listing import ListingService
from ..core.storage.store import ObjectStore
from ..core.storage.upload import UploadService
from ..infrastructure.storage.client import StorageConfig, create_storage_client

logger = logging.getLogger(__name__)

FILES_URL_PREFIX = "/api/files"
IMAGES_URL_PREFIX = "/api/images"

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Shared mock store so uploads survive between requests in mock mode
_mock_storage_client = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Sessions and cookies belong to the identity provider in front of this
    service; all we check is that the caller holds a key.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8] if api_key else ""}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


async def get_current_user(
    api_key: Annotated[str, Depends(verify_api_key)],
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> str:
    """
    Opaque user id supplied by the identity provider.

    Only used to tag uploaded objects. All users share one key space.
    """
    return x_user_id or "anonymous"


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ObjectStore:
    """
    Provide the object store.

    In mock mode, the same in-memory client is reused across requests
    so that uploaded files persist during the session.
    """
    global _mock_storage_client

    if settings.r2_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client for session")
        return _mock_storage_client

    config = StorageConfig(
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket_name=settings.r2_bucket_name,
        endpoint_url=settings.r2_endpoint,
    )
    client = create_storage_client(config=config)
    logger.debug("Created R2 storage client")
    return client


def get_clock() -> Clock:
    return SystemClock()


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_listing_service(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[ObjectStore, Depends(get_storage_client)],
) -> ListingService:
    return ListingService(
        store,
        url_prefix=FILES_URL_PREFIX,
        image_url_prefix=IMAGES_URL_PREFIX,
        default_limit=settings.default_page_size,
        max_limit=settings.max_page_size,
        default_image_limit=settings.default_image_page_size,
        max_image_limit=settings.max_image_page_size,
        batch_size=settings.list_batch_size,
    )


def get_folder_service(
    store: Annotated[ObjectStore, Depends(get_storage_client)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> FolderService:
    return FolderService(store, clock)


def get_file_service(
    store: Annotated[ObjectStore, Depends(get_storage_client)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> FileService:
    return FileService(store, clock)


def get_upload_service(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[ObjectStore, Depends(get_storage_client)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> UploadService:
    """Uploads into the folder tree, served back under /api/files."""
    return UploadService(
        store,
        clock,
        max_size_bytes=settings.max_upload_size_bytes,
        url_prefix=FILES_URL_PREFIX,
    )


def get_image_upload_service(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[ObjectStore, Depends(get_storage_client)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> UploadService:
    """Image-only uploads to the root, served back under /api/images."""
    return UploadService(
        store,
        clock,
        max_size_bytes=settings.max_upload_size_bytes,
        url_prefix=IMAGES_URL_PREFIX,
        images_only=True,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

AuthenticatedUser = Annotated[str, Depends(get_current_user)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
StorageClientDep = Annotated[ObjectStore, Depends(get_storage_client)]
ListingServiceDep = Annotated[ListingService, Depends(get_listing_service)]
FolderServiceDep = Annotated[FolderService, Depends(get_folder_service)]
FileServiceDep = Annotated[FileService, Depends(get_file_service)]
UploadServiceDep = Annotated[UploadService, Depends(get_upload_service)]
ImageUploadServiceDep = Annotated[UploadService, Depends(get_image_upload_service)]
