"""
Account API endpoints.

Accounts are saved locally with their secret sealed in the credential
store. Responses never echo secrets or access keys back.
"""

import logging

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from ..dependencies import ExplorerServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class SaveAccountRequest(BaseModel):
    """Account details to store under a local id."""
    name: str = Field(description="Display label")
    account_id: str = Field(min_length=1, description="Remote tenant (Cloudflare account) id")
    access_key_id: str = Field(min_length=1, description="Access key id")
    secret_access_key: str = Field(min_length=1, description="Secret access key")


class ValidateCredentialsRequest(BaseModel):
    """Credentials to check before saving."""
    account_id: str = Field(min_length=1, description="Remote tenant (Cloudflare account) id")
    access_key_id: str = Field(min_length=1, description="Access key id")
    secret_access_key: str = Field(min_length=1, description="Secret access key")


class AccountResponse(BaseModel):
    """Public view of a stored account."""
    id: str = Field(description="Local account id")
    name: str = Field(description="Display label")
    account_id: str = Field(description="Remote tenant id")


class ValidateCredentialsResponse(BaseModel):
    valid: bool


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[AccountResponse],
    summary="List stored accounts",
)
async def get_accounts(service: ExplorerServiceDep) -> list[AccountResponse]:
    accounts = await service.get_accounts()
    return [
        AccountResponse(id=a.id, name=a.name, account_id=a.account_id)
        for a in accounts
    ]


@router.post(
    "/validate",
    response_model=ValidateCredentialsResponse,
    summary="Validate credentials",
    description="Lists buckets with the given credentials. Nothing is stored.",
)
async def validate_credentials(
    request: ValidateCredentialsRequest,
    service: ExplorerServiceDep,
) -> ValidateCredentialsResponse:
    valid = await service.validate_credentials(
        account_id=request.account_id,
        access_key_id=request.access_key_id,
        secret_access_key=request.secret_access_key,
    )
    return ValidateCredentialsResponse(valid=valid)


@router.put(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Save account",
    description="Creates the account, or replaces the one stored under the same id.",
)
async def save_account(
    id: str,
    request: SaveAccountRequest,
    service: ExplorerServiceDep,
) -> None:
    await service.save_account(
        id=id,
        name=request.name,
        account_id=request.account_id,
        access_key_id=request.access_key_id,
        secret_access_key=request.secret_access_key,
    )


@router.delete(
    "/{id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete account",
    description="Removes the account. Unknown ids succeed.",
)
async def delete_account(id: str, service: ExplorerServiceDep) -> None:
    await service.delete_account(id)
