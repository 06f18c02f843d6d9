"""
Object storage client for Cloudflare R2 (S3-compatible).

One client is bound to one account's static credentials. It owns every
request sent to the storage endpoint and translates SDK failures into
the explorer's error taxonomy, so nothing above this module ever sees a
botocore exception.

The remote namespace is flat. Folders are emulated with delimiter
listings (see core.explorer.paths) and materialized as zero-byte marker
objects whose key ends with "/".

Mock mode keeps buckets in memory, enabling the full API flow without
provisioning real object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Any, AsyncIterator, Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from ...core.explorer.errors import (
    BucketNotFoundError,
    CredentialsError,
    NetworkError,
    ObjectNotFoundError,
    SdkError,
    StorageError,
    UnknownStorageError,
)
from ...core.explorer.models import BucketInfo, ObjectInfo, ObjectPage
from ...core.explorer.paths import (
    DELIMITER,
    file_entry,
    folder_entry,
    format_timestamp,
    group_keys,
    is_folder_marker,
    normalize_prefix,
)
from ...core.explorer.service import StorageClient

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"

# Remote error codes that mean the credentials were refused
CREDENTIAL_ERROR_CODES = frozenset({
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "Unauthorized",
    "InvalidToken",
})


@dataclass
class StorageConfig:
    """
    Configuration for one R2 account.

    The endpoint is never discovered: it is a fixed template filled with
    the remote account id. R2 has no regions, so the region is the
    synthetic value "auto".
    """
    account_id: str
    access_key_id: str
    secret_access_key: str
    endpoint_template: str = DEFAULT_ENDPOINT_TEMPLATE
    region: str = "auto"
    page_size: int = 1000

    @property
    def endpoint_url(self) -> str:
        return self.endpoint_template.format(account_id=self.account_id)


# ---------------------------------------------------------------------------
# Error Translation
# ---------------------------------------------------------------------------

def translate_error(
    error: Exception,
    bucket: Optional[str] = None,
    key: Optional[str] = None,
) -> StorageError:
    """
    Map an SDK exception onto the storage error taxonomy.

    A bare 404 is ambiguous on the wire (HEAD responses carry no error
    body), so the request context decides: with a key it is a missing
    object, otherwise a missing bucket.
    """
    if isinstance(error, StorageError):
        return error

    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        code = str(details.get("Code", ""))
        message = details.get("Message") or str(error)
        status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

        if code == "NoSuchBucket" or (status_code == 404 and bucket and not key):
            return BucketNotFoundError(f"Bucket not found: {bucket}")
        if code == "NoSuchKey" or (status_code == 404 and key):
            return ObjectNotFoundError(f"Object not found: {key}")
        if code in CREDENTIAL_ERROR_CODES or status_code in (401, 403):
            return CredentialsError(f"Credentials rejected: {message}")
        return SdkError(str(error))

    if isinstance(error, (BotoConnectionError, HTTPClientError)):
        return NetworkError(f"Could not reach storage endpoint: {error}")

    if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
        return CredentialsError(str(error))

    if isinstance(error, BotoCoreError):
        return SdkError(str(error))

    return UnknownStorageError(str(error))


def page_from_response(response: dict[str, Any]) -> ObjectPage:
    """
    Build a listing page from a ListObjectsV2 response.

    Common prefixes become folder entries. Contents ending with the
    delimiter are folder markers and are dropped, since the same folder
    already appears as a common prefix (or is the folder being listed).
    """
    folders = tuple(
        folder_entry(entry["Prefix"])
        for entry in response.get("CommonPrefixes", [])
        if entry.get("Prefix")
    )
    files = tuple(
        file_entry(
            key=obj["Key"],
            size=obj.get("Size", 0),
            last_modified=obj.get("LastModified"),
            etag=obj.get("ETag"),
        )
        for obj in response.get("Contents", [])
        if obj.get("Key") and not is_folder_marker(obj["Key"])
    )
    next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
    return ObjectPage(folders=folders, files=files, next_token=next_token)


# ---------------------------------------------------------------------------
# R2 Client
# ---------------------------------------------------------------------------

class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. boto3 is synchronous, so each
    request runs in a worker thread and the coroutine interface never
    blocks the event loop.

    Construction only configures the transport. It does not contact the
    endpoint; callers validate credentials by listing buckets.
    """

    def __init__(self, config: StorageConfig) -> None:
        for field_name in ("account_id", "access_key_id", "secret_access_key"):
            if not getattr(config, field_name).strip():
                raise CredentialsError(f"{field_name} is required")

        self._config = config

        # R2 requires v4 signatures; path-style keeps the bucket out of the hostname.
        # A single attempt per request: failures surface immediately.
        boto_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"total_max_attempts": 1, "mode": "standard"},
        )

        try:
            # one session per client: the default session is not thread-safe
            self._s3_client = boto3.session.Session().client(
                "s3",
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
                config=boto_config,
            )
        except ValueError as e:
            raise CredentialsError(f"Could not configure storage client: {e}")

        logger.debug(
            "Initialized R2 storage client",
            extra={"endpoint": config.endpoint_url},
        )

    @property
    def boto_client(self) -> Any:
        """The underlying boto3 S3 client."""
        return self._s3_client

    async def _run(
        self,
        action: str,
        call: Callable[[], Any],
        bucket: Optional[str] = None,
        key: Optional[str] = None,
    ) -> Any:
        try:
            return await asyncio.to_thread(call)
        except Exception as e:
            error = translate_error(e, bucket=bucket, key=key)
            logger.error(
                "Storage operation failed",
                extra={
                    "action": action,
                    "bucket": bucket,
                    "key": key,
                    "kind": error.kind,
                    "error": str(e),
                },
            )
            raise error from e

    async def list_buckets(self) -> list[BucketInfo]:
        """
        List every bucket of the account.

        One request: the remote returns the whole bucket set in a single
        response, so there is no continuation to follow.
        """
        response = await self._run("list buckets", self._s3_client.list_buckets)

        buckets = [
            BucketInfo(
                name=bucket.get("Name") or "",
                creation_date=format_timestamp(bucket.get("CreationDate")) or None,
            )
            for bucket in response.get("Buckets", [])
        ]

        logger.debug("Listed buckets", extra={"count": len(buckets)})
        return buckets

    async def create_bucket(self, bucket: str) -> None:
        await self._run(
            "create bucket",
            partial(self._s3_client.create_bucket, Bucket=bucket),
            bucket=bucket,
        )
        logger.info("Created bucket", extra={"bucket": bucket})

    async def delete_bucket(self, bucket: str) -> None:
        """Delete an empty bucket. The remote refuses non-empty buckets."""
        await self._run(
            "delete bucket",
            partial(self._s3_client.delete_bucket, Bucket=bucket),
            bucket=bucket,
        )
        logger.info("Deleted bucket", extra={"bucket": bucket})

    async def get_bucket_info(self, bucket: str) -> BucketInfo:
        """
        Check a bucket with HEAD.

        HEAD carries no creation date, so it is always None here.
        Absence, refused credentials and connectivity failures raise
        distinct errors.
        """
        await self._run(
            "check bucket",
            partial(self._s3_client.head_bucket, Bucket=bucket),
            bucket=bucket,
        )
        return BucketInfo(name=bucket, creation_date=None)

    async def iter_object_pages(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        max_pages: Optional[int] = None,
    ) -> AsyncIterator[ObjectPage]:
        """
        Yield one folder level of a bucket, page by page.

        Pages are fetched on demand by following continuation tokens. The
        sequence is finite; to start over, call this method again.
        """
        params: dict[str, Any] = {
            "Bucket": bucket,
            "Delimiter": DELIMITER,
            "MaxKeys": self._config.page_size,
        }
        normalized = normalize_prefix(prefix)
        if normalized:
            params["Prefix"] = normalized

        token: Optional[str] = None
        fetched = 0
        while True:
            request = dict(params)
            if token:
                request["ContinuationToken"] = token

            response = await self._run(
                "list objects",
                partial(self._s3_client.list_objects_v2, **request),
                bucket=bucket,
            )
            page = page_from_response(response)
            fetched += 1

            logger.debug(
                "Listed objects page",
                extra={
                    "bucket": bucket,
                    "prefix": normalized,
                    "page": fetched,
                    "folders": len(page.folders),
                    "files": len(page.files),
                },
            )

            yield page

            if page.is_last or (max_pages is not None and fetched >= max_pages):
                return
            token = page.next_token

    async def list_objects(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        max_pages: Optional[int] = None,
    ) -> list[ObjectInfo]:
        """List one folder level: folders first, then files."""
        folders: list[ObjectInfo] = []
        files: list[ObjectInfo] = []
        async for page in self.iter_object_pages(bucket, prefix, max_pages=max_pages):
            folders.extend(page.folders)
            files.extend(page.files)
        return folders + files

    async def put_object(self, bucket: str, key: str, data: bytes) -> None:
        """Upload a whole body in one request."""
        await self._run(
            "put object",
            partial(self._s3_client.put_object, Bucket=bucket, Key=key, Body=data),
            bucket=bucket,
            key=key,
        )
        logger.debug(
            "Put object",
            extra={"bucket": bucket, "key": key, "size_bytes": len(data)},
        )

    async def get_object(self, bucket: str, key: str) -> bytes:
        """Download an object, buffering the whole body in memory."""

        def fetch() -> bytes:
            response = self._s3_client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()

        data = await self._run("get object", fetch, bucket=bucket, key=key)
        logger.debug(
            "Got object",
            extra={"bucket": bucket, "key": key, "size_bytes": len(data)},
        )
        return data

    async def delete_object(self, bucket: str, key: str) -> None:
        await self._run(
            "delete object",
            partial(self._s3_client.delete_object, Bucket=bucket, Key=key),
            bucket=bucket,
            key=key,
        )
        logger.debug("Deleted object", extra={"bucket": bucket, "key": key})

    async def delete_objects(self, bucket: str, keys: list[str]) -> None:
        """
        Delete many keys in one batched request.

        An empty list is a no-op and sends nothing. The batch is not
        chunked; any per-key failure fails the whole call.
        """
        if not keys:
            return

        response = await self._run(
            "delete objects",
            partial(
                self._s3_client.delete_objects,
                Bucket=bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
            ),
            bucket=bucket,
        )

        errors = response.get("Errors", [])
        if errors:
            first = errors[0]
            logger.error(
                "Batch delete reported failures",
                extra={"bucket": bucket, "failed": len(errors), "requested": len(keys)},
            )
            raise SdkError(
                f"Failed to delete {len(errors)} of {len(keys)} objects: "
                f"{first.get('Key')}: {first.get('Message') or first.get('Code')}"
            )

        logger.info("Deleted objects", extra={"bucket": bucket, "count": len(keys)})

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expires_in_seconds: int,
    ) -> str:
        """
        Generate a time-limited download URL.

        Signing happens locally; no request is sent. The expiry is not
        bounded here, the remote rejects URLs beyond its own ceiling.
        """
        try:
            return self._s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_in_seconds,
            )
        except Exception as e:
            error = translate_error(e, bucket=bucket, key=key)
            logger.error(
                "Failed to generate presigned URL",
                extra={"bucket": bucket, "key": key, "error": str(e)},
            )
            raise error from e


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Buckets are dictionaries of key -> bytes. Listings go through the
    same folder emulation as the real client, paginated by `page_size`,
    and "URLs" are mock URIs.
    """

    def __init__(self, page_size: int = 1000) -> None:
        self._buckets: dict[str, dict[str, bytes]] = {}
        self._created: dict[str, datetime] = {}
        self._page_size = page_size
        logger.info("Initialized mock storage client (in-memory)")

    def _bucket(self, bucket: str) -> dict[str, bytes]:
        if bucket not in self._buckets:
            raise BucketNotFoundError(f"Bucket not found: {bucket}")
        return self._buckets[bucket]

    async def list_buckets(self) -> list[BucketInfo]:
        return [
            BucketInfo(name=name, creation_date=format_timestamp(self._created[name]))
            for name in sorted(self._buckets)
        ]

    async def create_bucket(self, bucket: str) -> None:
        if bucket in self._buckets:
            raise SdkError(f"BucketAlreadyOwnedByYou: {bucket}")
        self._buckets[bucket] = {}
        self._created[bucket] = datetime.now(timezone.utc)

    async def delete_bucket(self, bucket: str) -> None:
        if self._bucket(bucket):
            raise SdkError(f"BucketNotEmpty: {bucket}")
        del self._buckets[bucket]
        del self._created[bucket]

    async def get_bucket_info(self, bucket: str) -> BucketInfo:
        self._bucket(bucket)
        return BucketInfo(name=bucket, creation_date=None)

    async def iter_object_pages(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        max_pages: Optional[int] = None,
    ) -> AsyncIterator[ObjectPage]:
        objects = self._bucket(bucket)
        normalized = normalize_prefix(prefix)
        prefixes, keys = group_keys(objects, normalized)

        # the remote interleaves prefixes and keys in key order
        entries = sorted(
            [(p, True) for p in prefixes] + [(k, False) for k in keys]
        )

        fetched = 0
        for start in range(0, max(len(entries), 1), self._page_size):
            chunk = entries[start:start + self._page_size]
            more = start + self._page_size < len(entries)
            fetched += 1
            yield ObjectPage(
                folders=tuple(folder_entry(name) for name, folder in chunk if folder),
                files=tuple(
                    file_entry(name, size=len(objects[name]))
                    for name, folder in chunk
                    if not folder and not is_folder_marker(name)
                ),
                next_token=str(start + self._page_size) if more else None,
            )
            if max_pages is not None and fetched >= max_pages:
                return

    async def list_objects(
        self,
        bucket: str,
        prefix: Optional[str] = None,
        max_pages: Optional[int] = None,
    ) -> list[ObjectInfo]:
        folders: list[ObjectInfo] = []
        files: list[ObjectInfo] = []
        async for page in self.iter_object_pages(bucket, prefix, max_pages=max_pages):
            folders.extend(page.folders)
            files.extend(page.files)
        return folders + files

    async def put_object(self, bucket: str, key: str, data: bytes) -> None:
        self._bucket(bucket)[key] = bytes(data)

    async def get_object(self, bucket: str, key: str) -> bytes:
        objects = self._bucket(bucket)
        if key not in objects:
            raise ObjectNotFoundError(f"Object not found: {key}")
        return objects[key]

    async def delete_object(self, bucket: str, key: str) -> None:
        self._bucket(bucket).pop(key, None)

    async def delete_objects(self, bucket: str, keys: list[str]) -> None:
        if not keys:
            return
        objects = self._bucket(bucket)
        for key in keys:
            objects.pop(key, None)

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expires_in_seconds: int,
    ) -> str:
        return f"mock://storage/{bucket}/{key}?expires={expires_in_seconds}"


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Account configuration (required if not mock_mode)
        mock_mode: If True, return an in-memory client

    Returns:
        StorageClient implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
