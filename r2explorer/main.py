"""
HTTP entry point for the explorer backend.

create_app() wires the routers plus the error handlers that turn the
explorer error taxonomy into status codes. Tests call it directly and
swap dependencies through app.dependency_overrides.

The desktop shell starts the backend locally:
    uvicorn r2explorer.main:app --port 8000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.routes import accounts, buckets, health, objects, transfers
from .config.settings import get_settings
from .core.explorer.errors import (
    AccountNotFoundError,
    BucketNotFoundError,
    CredentialsError,
    ExplorerError,
    NetworkError,
    ObjectNotFoundError,
    SdkError,
    TransferError,
)
from .infrastructure.credentials import CredentialStoreError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


# Checked in order; the first matching class wins.
ERROR_STATUS_CODES: list[tuple[type[ExplorerError], int]] = [
    (AccountNotFoundError, status.HTTP_404_NOT_FOUND),
    (BucketNotFoundError, status.HTTP_404_NOT_FOUND),
    (ObjectNotFoundError, status.HTTP_404_NOT_FOUND),
    (CredentialsError, status.HTTP_401_UNAUTHORIZED),
    (NetworkError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (SdkError, status.HTTP_502_BAD_GATEWAY),
    (TransferError, status.HTTP_400_BAD_REQUEST),
]


def status_code_for(exc: ExplorerError) -> int:
    for error_class, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup and shutdown logging.

    Nothing is opened eagerly: the credential store is created on first
    use and storage clients are built per call.
    """
    # Startup
    settings = get_settings()

    logger.info(
        "R2 Explorer API starting",
        extra={
            "version": __version__,
            "mock_mode": {"storage": settings.storage_mock_mode},
        }
    )

    yield

    # Shutdown
    logger.info("R2 Explorer API shutting down")


def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    Every explorer router shares the /api/v1/accounts prefix, since all
    storage operations are addressed through a stored account.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        Local backend for browsing Cloudflare R2 (and other S3-compatible)
        storage from the desktop.

        ## Workflow

        1. **Save an account**: `PUT /api/v1/accounts/{id}`
           - Optionally check the keys first with `POST /api/v1/accounts/validate`
        2. **Pick a bucket**: `GET /api/v1/accounts/{id}/buckets`
        3. **Browse folders**: `GET /api/v1/accounts/{id}/buckets/{bucket}/objects?prefix=`
        4. **Move files**: `POST .../upload`, `POST .../download`, `GET .../presign`

        Errors carry a `kind` next to `detail` so the shell can react to
        a missing account differently from refused credentials.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    # The desktop shell's webview is the only expected origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    for module, tag in (
        (accounts, "Accounts"),
        (buckets, "Buckets"),
        (objects, "Objects"),
        (transfers, "Transfers"),
    ):
        app.include_router(
            module.router,
            prefix=f"/api/{settings.api_version}/accounts",
            tags=[tag],
        )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at docs."""
        return {
            "message": "R2 Explorer API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(ExplorerError)
    async def explorer_exception_handler(request: Request, exc: ExplorerError):
        status_code = status_code_for(exc)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "Request failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "kind": exc.kind,
                "error": exc.message,
            },
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "kind": exc.kind},
        )

    @app.exception_handler(CredentialStoreError)
    async def credential_store_exception_handler(request: Request, exc: CredentialStoreError):
        logger.error(
            "Credential store failure",
            extra={
                "path": request.url.path,
                "kind": exc.kind,
                "error": str(exc),
            },
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc), "kind": exc.kind},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc), "kind": "InvalidInput"},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Last resort for anything the handlers above do not claim.

        Prevents stack traces from leaking to the shell. We log the full
        error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error.", "kind": "Unknown"},
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": __version__,
        }
    )

    return app


# Create the application instance
# This is what uvicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "r2explorer.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
