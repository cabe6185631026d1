"""
Object storage integration.

Supports R2 (Cloudflare) and S3 (AWS) via the S3-compatible API.
Includes an in-memory mock for local development without credentials.
"""

from .client import (
    MockStorageClient,
    R2StorageClient,
    StorageConfig,
    StorageError,
    create_storage_client,
)

__all__ = [
    "MockStorageClient",
    "R2StorageClient",
    "StorageConfig",
    "StorageError",
    "create_storage_client",
]
