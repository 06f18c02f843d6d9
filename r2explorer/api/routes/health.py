"""
Liveness and readiness checks.

/health answers as soon as the process serves requests. /health/ready
also reads the credential file, which is the only local dependency.

The desktop shell polls liveness while the backend starts, and checks
readiness before showing the account list.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ...infrastructure.credentials import CredentialStoreError
from ..dependencies import SettingsDep, get_credential_store

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Outcome of one readiness check."""
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Aggregated readiness, one entry per check."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    description="Always 200 while the process is up. Touches nothing else.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Liveness check - is the process alive?"""
    return HealthResponse(
        status="ok",
        version=__version__,
        details={"mock_mode": {"storage": settings.storage_mock_mode}},
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if the credential store can be opened and read.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(
    settings: SettingsDep,
    response: Response,
) -> ReadinessResponse:
    """
    Readiness check - can we serve requests?

    Opening the store is part of the check: a config directory that
    cannot be created reports not ready instead of failing the request.
    Storage reachability is per account and is checked by validating
    credentials, not here.
    """
    checks: list[ReadinessCheck] = []

    try:
        store = await asyncio.to_thread(get_credential_store, settings)
        await asyncio.to_thread(store.get_accounts)
        checks.append(ReadinessCheck(name="credential_store", status="ok"))
    except CredentialStoreError as e:
        logger.error("Credential store check failed", extra={"error": str(e)})
        checks.append(ReadinessCheck(name="credential_store", status="error", error=str(e)))

    all_ok = all(check.status == "ok" for check in checks)
    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )
