"""
Object API endpoints.

Listings are one folder level at a time: keys below the next "/" are
collapsed into folder entries. Folders come first, then files, each
group sorted by key.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from ...core.explorer.paths import entry_name, folder_key
from ..dependencies import ExplorerServiceDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ObjectResponse(BaseModel):
    """One listing entry, either a folder or a file."""
    key: str = Field(description="Full object key; folders end with '/'")
    name: str = Field(description="Last path segment, for display")
    size: int = Field(0, description="Size in bytes; 0 for folders")
    last_modified: str = Field("", description="ISO timestamp; empty for folders")
    is_folder: bool = False
    etag: str | None = None


class DeleteObjectsRequest(BaseModel):
    keys: list[str] = Field(description="Keys to delete in one batch")


class CreateFolderRequest(BaseModel):
    path: str = Field(min_length=1, description="Folder path, with or without trailing '/'")


class PresignedUrlResponse(BaseModel):
    url: str
    expires_in: int


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/{account_id}/buckets/{bucket_name}/objects",
    response_model=list[ObjectResponse],
    summary="List one folder level",
    description=(
        "Lists the direct children of `prefix`. A prefix without a trailing "
        "'/' is treated as a folder. Follows continuation tokens until the "
        "listing is complete, or until `max_pages` pages have been read."
    ),
)
async def list_objects(
    account_id: str,
    bucket_name: str,
    service: ExplorerServiceDep,
    prefix: Optional[str] = None,
    max_pages: Annotated[Optional[int], Query(ge=1)] = None,
) -> list[ObjectResponse]:
    entries = await service.list_objects(
        account_id,
        bucket_name,
        prefix=prefix,
        max_pages=max_pages,
    )
    return [
        ObjectResponse(
            key=e.key,
            name=e.name,
            size=e.size,
            last_modified=e.last_modified,
            is_folder=e.is_folder,
            etag=e.etag,
        )
        for e in entries
    ]


@router.delete(
    "/{account_id}/buckets/{bucket_name}/objects",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete object",
)
async def delete_object(
    account_id: str,
    bucket_name: str,
    key: Annotated[str, Query(min_length=1)],
    service: ExplorerServiceDep,
) -> None:
    await service.delete_object(account_id, bucket_name, key)


@router.post(
    "/{account_id}/buckets/{bucket_name}/objects/delete",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete objects",
    description="Deletes a batch of keys in one request. An empty batch does nothing.",
)
async def delete_objects(
    account_id: str,
    bucket_name: str,
    request: DeleteObjectsRequest,
    service: ExplorerServiceDep,
) -> None:
    await service.delete_objects(account_id, bucket_name, request.keys)


@router.post(
    "/{account_id}/buckets/{bucket_name}/folders",
    status_code=status.HTTP_201_CREATED,
    response_model=ObjectResponse,
    summary="Create folder",
    description="Creates an empty marker object whose key ends with '/'.",
)
async def create_folder(
    account_id: str,
    bucket_name: str,
    request: CreateFolderRequest,
    service: ExplorerServiceDep,
) -> ObjectResponse:
    await service.create_folder(account_id, bucket_name, request.path)

    key = folder_key(request.path)
    return ObjectResponse(key=key, name=entry_name(key), is_folder=True)


@router.get(
    "/{account_id}/buckets/{bucket_name}/presign",
    response_model=PresignedUrlResponse,
    summary="Presigned download URL",
    description="Signs a GET URL locally. No request is made to storage.",
)
async def get_presigned_url(
    account_id: str,
    bucket_name: str,
    key: Annotated[str, Query(min_length=1)],
    service: ExplorerServiceDep,
    settings: SettingsDep,
    expires_in: Annotated[Optional[int], Query(ge=1)] = None,
) -> PresignedUrlResponse:
    seconds = expires_in or settings.default_presign_expiry_seconds
    url = await service.get_presigned_url(account_id, bucket_name, key, seconds)
    return PresignedUrlResponse(url=url, expires_in=seconds)
