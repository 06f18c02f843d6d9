"""
Bucket API endpoints.

`account_id` in these paths is the LOCAL account id the account was
saved under; the remote tenant id comes from the stored account.
"""

import logging

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from ..dependencies import ExplorerServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateBucketRequest(BaseModel):
    name: str = Field(min_length=1, description="Bucket name")


class BucketResponse(BaseModel):
    name: str = Field(description="Bucket name")
    creation_date: str | None = Field(None, description="Creation time (ISO format), if known")


@router.get(
    "/{account_id}/buckets",
    response_model=list[BucketResponse],
    summary="List buckets",
)
async def list_buckets(account_id: str, service: ExplorerServiceDep) -> list[BucketResponse]:
    buckets = await service.list_buckets(account_id)
    return [BucketResponse(name=b.name, creation_date=b.creation_date) for b in buckets]


@router.post(
    "/{account_id}/buckets",
    status_code=status.HTTP_201_CREATED,
    response_model=BucketResponse,
    summary="Create bucket",
)
async def create_bucket(
    account_id: str,
    request: CreateBucketRequest,
    service: ExplorerServiceDep,
) -> BucketResponse:
    await service.create_bucket(account_id, request.name)
    return BucketResponse(name=request.name)


@router.get(
    "/{account_id}/buckets/{bucket_name}",
    response_model=BucketResponse,
    summary="Get bucket info",
    description="Existence check (HEAD). The creation date is not available from HEAD.",
)
async def get_bucket_info(
    account_id: str,
    bucket_name: str,
    service: ExplorerServiceDep,
) -> BucketResponse:
    bucket = await service.get_bucket_info(account_id, bucket_name)
    return BucketResponse(name=bucket.name, creation_date=bucket.creation_date)


@router.delete(
    "/{account_id}/buckets/{bucket_name}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete bucket",
    description="Fails if the bucket is not empty.",
)
async def delete_bucket(
    account_id: str,
    bucket_name: str,
    service: ExplorerServiceDep,
) -> None:
    await service.delete_bucket(account_id, bucket_name)
