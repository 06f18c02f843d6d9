"""
Runtime settings for the explorer backend.

Values come from environment variables (or a .env file) and are
validated by pydantic-settings when first loaded, so a bad value stops
the backend at startup instead of on the first request.

Account credentials are NOT configuration: they live in the credential
store and are added at runtime through the accounts API.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Backend settings. Every field maps to an environment variable of the
    same name (case-insensitive); cors_origins is comma-separated.
    """

    # API Configuration
    api_title: str = "R2 Explorer API"
    api_version: str = "v1"

    # Credential Store
    config_dir: Optional[Path] = Field(
        default=None,
        description="Directory holding config.json. Defaults to the per-user config directory."
    )
    credential_key: Optional[str] = Field(
        default=None,
        description="Fernet key sealing stored secrets. Derived from the machine when unset."
    )

    # R2 Storage Configuration
    r2_endpoint_template: str = Field(
        default="https://{account_id}.r2.cloudflarestorage.com",
        description="Endpoint URL template, filled with the remote account id."
    )
    r2_region: str = Field(
        default="auto",
        description="Signing region. R2 ignores regions; 'auto' is what it expects."
    )
    list_page_size: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Keys requested per listing page (MaxKeys)."
    )
    default_presign_expiry_seconds: int = Field(
        default=3600,
        description="Presigned URL expiry used when a request does not specify one."
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory storage instead of R2. Enables local dev without an account."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:1420,tauri://localhost",
        description="Comma-separated list of allowed CORS origins (the desktop shell)."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def credential_key_bytes(self) -> Optional[bytes]:
        return self.credential_key.encode() if self.credential_key else None


@lru_cache()
def get_settings() -> Settings:
    """
    Settings are read once per process; get_settings.cache_clear()
    forces a reload.
    """
    return Settings()
