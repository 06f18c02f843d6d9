"""
File transfer endpoints.

Transfers move whole files between a local path and one object key in a
single request each way. The backend runs on the user's machine, so the
local paths are paths on that machine.
"""

import logging

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from ..dependencies import ExplorerServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


class UploadRequest(BaseModel):
    key: str = Field(min_length=1, description="Destination object key")
    local_file_path: str = Field(min_length=1, description="File to read")


class DownloadRequest(BaseModel):
    key: str = Field(min_length=1, description="Object key to fetch")
    local_save_path: str = Field(min_length=1, description="File to write; parent directories are created")


class TransferResponse(BaseModel):
    key: str
    local_path: str


@router.post(
    "/{account_id}/buckets/{bucket_name}/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=TransferResponse,
    summary="Upload a local file",
)
async def upload_file(
    account_id: str,
    bucket_name: str,
    request: UploadRequest,
    service: ExplorerServiceDep,
) -> TransferResponse:
    await service.upload_file(account_id, bucket_name, request.key, request.local_file_path)
    return TransferResponse(key=request.key, local_path=request.local_file_path)


@router.post(
    "/{account_id}/buckets/{bucket_name}/download",
    response_model=TransferResponse,
    summary="Download an object to a local file",
    description="Overwrites the destination file if it exists.",
)
async def download_file(
    account_id: str,
    bucket_name: str,
    request: DownloadRequest,
    service: ExplorerServiceDep,
) -> TransferResponse:
    await service.download_file(account_id, bucket_name, request.key, request.local_save_path)
    return TransferResponse(key=request.key, local_path=request.local_save_path)
