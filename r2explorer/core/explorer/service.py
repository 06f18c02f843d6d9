"""
Explorer service: the operations the desktop shell calls.

Each operation is independent. It loads the account fresh from the
credential store, builds a storage client bound to that account, runs
exactly one storage operation and returns plain values or raises an
ExplorerError. There is no client cache and no shared session, so a
credential change is visible to the very next call.

This module is framework-agnostic: it knows neither boto3 nor HTTP. The
store and the client factory are injected.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Protocol

from .errors import (
    AccountNotFoundError,
    CredentialsError,
    NetworkError,
    StorageError,
    TransferError,
)
from .models import Account, AccountInfo, BucketInfo, ObjectInfo, ObjectPage
from .paths import folder_key

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class StorageClient(Protocol):
    """
    Interface for bucket and object operations against one account.

    Implemented by the R2 client and by the in-memory mock client.
    """

    async def list_buckets(self) -> list[BucketInfo]:
        ...

    async def create_bucket(self, bucket: str) -> None:
        ...

    async def delete_bucket(self, bucket: str) -> None:
        ...

    async def get_bucket_info(self, bucket: str) -> BucketInfo:
        ...

    def iter_object_pages(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        max_pages: Optional[int] = None,
    ) -> AsyncIterator[ObjectPage]:
        ...

    async def list_objects(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        max_pages: Optional[int] = None,
    ) -> list[ObjectInfo]:
        ...

    async def put_object(self, bucket: str, key: str, data: bytes) -> None:
        ...

    async def get_object(self, bucket: str, key: str) -> bytes:
        ...

    async def delete_object(self, bucket: str, key: str) -> None:
        ...

    async def delete_objects(self, bucket: str, keys: list[str]) -> None:
        ...

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expires_in_seconds: int,
    ) -> str:
        ...


class AccountStore(Protocol):
    """Interface for durable account persistence."""

    def save_account(self, account: Account) -> None:
        ...

    def get_accounts(self) -> list[Account]:
        ...

    def get_account(self, account_id: str) -> Optional[Account]:
        ...

    def delete_account(self, account_id: str) -> None:
        ...


# (account_id, access_key_id, secret_access_key) -> client
ClientFactory = Callable[[str, str, str], StorageClient]


def replace_file(path: Path, data: bytes) -> None:
    """
    Write `data` to `path`, creating missing parent directories.

    The bytes go to a temporary file next to the destination, which then
    replaces it in one step. A failed write leaves any existing file
    untouched and no partial file behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=path.parent,
            prefix=f".{path.name}-",
            suffix=".part",
            delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(data)
        os.replace(tmp_path, path)
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()


# ---------------------------------------------------------------------------
# Explorer Service
# ---------------------------------------------------------------------------

class ExplorerService:
    """
    Orchestrates the credential store and storage clients.

    Operations taking `account_id` expect the LOCAL account id (the one
    the account was saved under), not the remote tenant id.
    """

    def __init__(self, store: AccountStore, client_factory: ClientFactory) -> None:
        self._store = store
        self._client_factory = client_factory

    async def _load_account(self, account_id: str) -> Account:
        account = await asyncio.to_thread(self._store.get_account, account_id)
        if account is None:
            raise AccountNotFoundError(f"Account not found: {account_id}")
        return account

    async def _client_for(self, account_id: str) -> StorageClient:
        account = await self._load_account(account_id)
        return await self._build_client(
            account.account_id,
            account.access_key_id,
            account.secret_access_key,
        )

    async def _build_client(
        self,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
    ) -> StorageClient:
        # client construction loads SDK models from disk
        return await asyncio.to_thread(
            self._client_factory,
            account_id,
            access_key_id,
            secret_access_key,
        )

    # -----------------------------------------------------------------------
    # Accounts
    # -----------------------------------------------------------------------

    async def save_account(
        self,
        id: str,
        name: str,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
    ) -> None:
        if not id.strip():
            raise ValueError("Account id cannot be empty")

        account = Account(
            id=id,
            name=name,
            account_id=account_id,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
        )
        await asyncio.to_thread(self._store.save_account, account)

    async def get_accounts(self) -> list[AccountInfo]:
        accounts = await asyncio.to_thread(self._store.get_accounts)
        return [account.to_info() for account in accounts]

    async def delete_account(self, id: str) -> None:
        await asyncio.to_thread(self._store.delete_account, id)

    async def validate_credentials(
        self,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
    ) -> bool:
        """
        Check credentials with a harmless read (list buckets).

        Returns True on success. Connectivity failures keep their own
        kind so the caller can tell "offline" from "wrong keys".
        """
        client = await self._build_client(account_id, access_key_id, secret_access_key)
        try:
            await client.list_buckets()
        except NetworkError:
            raise
        except StorageError as e:
            raise CredentialsError(f"Credential validation failed: {e.message}") from e

        logger.info("Validated credentials", extra={"remote_account": account_id})
        return True

    # -----------------------------------------------------------------------
    # Buckets
    # -----------------------------------------------------------------------

    async def list_buckets(self, account_id: str) -> list[BucketInfo]:
        client = await self._client_for(account_id)
        return await client.list_buckets()

    async def create_bucket(self, account_id: str, bucket_name: str) -> None:
        client = await self._client_for(account_id)
        await client.create_bucket(bucket_name)

    async def delete_bucket(self, account_id: str, bucket_name: str) -> None:
        client = await self._client_for(account_id)
        await client.delete_bucket(bucket_name)

    async def get_bucket_info(self, account_id: str, bucket_name: str) -> BucketInfo:
        client = await self._client_for(account_id)
        return await client.get_bucket_info(bucket_name)

    # -----------------------------------------------------------------------
    # Objects
    # -----------------------------------------------------------------------

    async def list_objects(
        self,
        account_id: str,
        bucket_name: str,
        prefix: Optional[str] = None,
        max_pages: Optional[int] = None,
    ) -> list[ObjectInfo]:
        client = await self._client_for(account_id)
        return await client.list_objects(bucket_name, prefix, max_pages=max_pages)

    async def delete_object(self, account_id: str, bucket_name: str, key: str) -> None:
        client = await self._client_for(account_id)
        await client.delete_object(bucket_name, key)

    async def delete_objects(
        self,
        account_id: str,
        bucket_name: str,
        keys: list[str],
    ) -> None:
        client = await self._client_for(account_id)
        await client.delete_objects(bucket_name, keys)

    async def create_folder(self, account_id: str, bucket_name: str, path: str) -> None:
        """Materialize a folder as an empty object whose key ends with "/"."""
        key = folder_key(path)
        client = await self._client_for(account_id)
        await client.put_object(bucket_name, key, b"")
        logger.info("Created folder", extra={"bucket": bucket_name, "key": key})

    async def get_presigned_url(
        self,
        account_id: str,
        bucket_name: str,
        key: str,
        expires_in_seconds: int,
    ) -> str:
        client = await self._client_for(account_id)
        return await client.get_presigned_url(bucket_name, key, expires_in_seconds)

    # -----------------------------------------------------------------------
    # Transfers
    # -----------------------------------------------------------------------

    async def upload_file(
        self,
        account_id: str,
        bucket_name: str,
        key: str,
        local_file_path: str,
    ) -> None:
        """Read a local file fully, then upload it in one request."""
        client = await self._client_for(account_id)

        path = Path(local_file_path)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise TransferError(f"Could not read file {path}: {e}") from e

        await client.put_object(bucket_name, key, data)

        logger.info(
            "Uploaded file",
            extra={"bucket": bucket_name, "key": key, "size_bytes": len(data)},
        )

    async def download_file(
        self,
        account_id: str,
        bucket_name: str,
        key: str,
        local_save_path: str,
    ) -> None:
        """Download an object fully, then write it to a local file."""
        client = await self._client_for(account_id)
        data = await client.get_object(bucket_name, key)

        path = Path(local_save_path)
        try:
            await asyncio.to_thread(replace_file, path, data)
        except OSError as e:
            raise TransferError(f"Could not save file {path}: {e}") from e

        logger.info(
            "Downloaded file",
            extra={"bucket": bucket_name, "key": key, "size_bytes": len(data)},
        )
