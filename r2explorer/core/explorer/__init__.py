"""
Bucket and object browsing over an S3-compatible account.

Contains the domain models, the error taxonomy, the folder emulation
helpers and the explorer service.
"""

from .errors import (
    AccountNotFoundError,
    BucketNotFoundError,
    CredentialsError,
    ExplorerError,
    NetworkError,
    ObjectNotFoundError,
    SdkError,
    StorageError,
    TransferError,
    UnknownStorageError,
)
from .models import Account, AccountInfo, BucketInfo, ObjectInfo, ObjectPage
from .service import AccountStore, ClientFactory, ExplorerService, StorageClient

__all__ = [
    "Account",
    "AccountInfo",
    "AccountNotFoundError",
    "AccountStore",
    "BucketInfo",
    "BucketNotFoundError",
    "ClientFactory",
    "CredentialsError",
    "ExplorerError",
    "ExplorerService",
    "NetworkError",
    "ObjectInfo",
    "ObjectNotFoundError",
    "ObjectPage",
    "SdkError",
    "StorageClient",
    "StorageError",
    "TransferError",
    "UnknownStorageError",
]
