"""
Folder emulation over a flat key namespace.

Object storage has no directories. A "folder" is either a common prefix
reported by a delimiter listing, or a zero-byte marker object whose key
ends with the delimiter. These helpers hold the conventions in one place
so the real client and the in-memory client list identically.
"""

from datetime import datetime
from typing import Iterable, Optional, Union

from .models import ObjectInfo

DELIMITER = "/"


def normalize_prefix(prefix: Optional[str]) -> str:
    """
    Align a listing prefix to a folder boundary.

    "photos" and "photos/" both become "photos/", so the listing matches
    the folder's children rather than every key starting with "photos".
    An empty or missing prefix means the bucket root.
    """
    if not prefix:
        return ""
    if prefix.endswith(DELIMITER):
        return prefix
    return prefix + DELIMITER


def folder_key(path: str) -> str:
    """Key of the marker object that materializes a folder."""
    if not path:
        raise ValueError("Folder path cannot be empty")
    return normalize_prefix(path)


def is_folder_marker(key: str) -> bool:
    return key.endswith(DELIMITER)


def entry_name(key: str) -> str:
    """Last non-empty path segment of a key or prefix."""
    return key.rstrip(DELIMITER).rsplit(DELIMITER, 1)[-1]


def format_timestamp(value: Union[datetime, str, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def folder_entry(prefix: str) -> ObjectInfo:
    return ObjectInfo(
        key=prefix,
        name=entry_name(prefix),
        size=0,
        last_modified="",
        is_folder=True,
        etag=None,
    )


def file_entry(
    key: str,
    size: int = 0,
    last_modified: Union[datetime, str, None] = None,
    etag: Optional[str] = None,
) -> ObjectInfo:
    return ObjectInfo(
        key=key,
        name=entry_name(key),
        size=int(size or 0),
        last_modified=format_timestamp(last_modified),
        is_folder=False,
        etag=etag or None,
    )


def group_keys(keys: Iterable[str], prefix: str = "") -> tuple[list[str], list[str]]:
    """
    Split keys into common prefixes and direct children of `prefix`.

    Mirrors what a delimiter listing returns: keys with another delimiter
    after the prefix collapse into one common prefix each; the rest are
    returned as-is (folder markers included, callers filter them).
    Both lists are sorted like the remote service sorts them.
    """
    prefixes: set[str] = set()
    direct: list[str] = []
    for key in keys:
        if not key.startswith(prefix):
            continue
        rest = key[len(prefix):]
        cut = rest.find(DELIMITER)
        if cut == -1:
            direct.append(key)
        else:
            prefixes.add(prefix + rest[:cut + 1])
    return sorted(prefixes), sorted(direct)
