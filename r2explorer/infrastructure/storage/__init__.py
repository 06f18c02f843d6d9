"""
Object storage integration for Cloudflare R2 via the S3-compatible API.

Includes mock mode for local development without credentials.
"""

from .client import (
    MockStorageClient,
    R2StorageClient,
    StorageClient,
    StorageConfig,
    create_storage_client,
    translate_error,
)

__all__ = [
    "MockStorageClient",
    "R2StorageClient",
    "StorageClient",
    "StorageConfig",
    "create_storage_client",
    "translate_error",
]
