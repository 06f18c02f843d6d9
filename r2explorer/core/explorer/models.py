"""
Domain models for accounts, buckets and objects.

These models carry no knowledge of boto3, JSON files or HTTP. Listing
results are values: they are built fresh for every call and never
mutated afterwards, so they are frozen.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Account:
    """
    Identity for one storage tenant.

    `id` is local-only and assigned by the caller; `account_id` is the
    remote tenant identifier the endpoint is derived from. The secret is
    kept out of repr so it never lands in logs or tracebacks.
    """
    id: str
    name: str
    account_id: str
    access_key_id: str
    secret_access_key: str = field(default="", repr=False)

    def to_info(self) -> "AccountInfo":
        return AccountInfo(id=self.id, name=self.name, account_id=self.account_id)


@dataclass(frozen=True)
class AccountInfo:
    """Public projection of an account. Never carries credentials."""
    id: str
    name: str
    account_id: str


@dataclass(frozen=True)
class BucketInfo:
    """A bucket as reported by the remote service."""
    name: str
    creation_date: Optional[str] = None


@dataclass(frozen=True)
class ObjectInfo:
    """
    One entry of a folder listing.

    Real objects have `is_folder=False` and an etag. Folder entries are
    synthesized from common prefixes: zero size, empty timestamp, no etag.
    """
    key: str
    name: str
    size: int = 0
    last_modified: str = ""
    is_folder: bool = False
    etag: Optional[str] = None


@dataclass(frozen=True)
class ObjectPage:
    """
    A single page of a delimiter listing.

    `next_token` is the continuation token for the following page, or
    None when this page is the last one.
    """
    folders: tuple[ObjectInfo, ...] = ()
    files: tuple[ObjectInfo, ...] = ()
    next_token: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return self.next_token is None
