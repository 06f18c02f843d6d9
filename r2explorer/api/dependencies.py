"""
FastAPI dependency injection.

Route handlers receive the explorer service through Depends; the
service in turn gets the credential store and a storage client factory.
Tests override get_credential_store and get_client_factory.

The credential store is one explicit handle per process. Storage
clients are NOT shared: the factory builds a new one for every call,
bound to the account that call loaded.
"""

import logging
from typing import Annotated

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.explorer.service import ClientFactory, ExplorerService, StorageClient
from ..infrastructure.credentials import CredentialStore, SecretCipher
from ..infrastructure.storage.client import (
    MockStorageClient,
    StorageConfig,
    create_storage_client,
)

logger = logging.getLogger(__name__)

# Process-wide instances
_credential_store = None
_mock_storage_client = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_credential_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> CredentialStore:
    """
    Provide the credential store handle.

    Created once per process; the store rereads its file on every call.
    """
    global _credential_store

    if _credential_store is None:
        _credential_store = CredentialStore(
            config_dir=settings.config_dir,
            cipher=SecretCipher(settings.credential_key_bytes),
        )
        logger.info(
            "Opened credential store",
            extra={"path": str(_credential_store.path)},
        )

    return _credential_store


def get_client_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ClientFactory:
    """
    Provide a factory building storage clients from account credentials.

    In mock mode every account shares one in-memory client, so buckets
    created in one request are visible in the next.
    """
    global _mock_storage_client

    if settings.storage_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = MockStorageClient(page_size=settings.list_page_size)
            logger.info("Created shared mock storage client for session")

        def mock_factory(
            account_id: str,
            access_key_id: str,
            secret_access_key: str,
        ) -> StorageClient:
            return _mock_storage_client

        return mock_factory

    def r2_factory(
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
    ) -> StorageClient:
        config = StorageConfig(
            account_id=account_id,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            endpoint_template=settings.r2_endpoint_template,
            region=settings.r2_region,
            page_size=settings.list_page_size,
        )
        return create_storage_client(config=config)

    return r2_factory


def get_explorer_service(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    client_factory: Annotated[ClientFactory, Depends(get_client_factory)],
) -> ExplorerService:
    """The service is stateless, so we create a new instance per request."""
    return ExplorerService(store=store, client_factory=client_factory)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

ExplorerServiceDep = Annotated[ExplorerService, Depends(get_explorer_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
