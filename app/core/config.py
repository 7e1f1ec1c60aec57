"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the operator scripts and
the tests share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class MSGraphSettings(BaseSettings):
    """Application registration used against the Microsoft identity platform."""

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: str = Field(..., validation_alias="MS_GRAPH_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="MS_GRAPH_CLIENT_SECRET")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    session_secret: str = Field(
        ...,
        validation_alias="SESSION_SECRET",
        description="Secret used to sign and verify session cookies.",
    )
    session_cookie_name: str = Field("session", validation_alias="SESSION_COOKIE_NAME")
    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored credentials."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    base_url: AnyHttpUrl = Field(
        ...,
        validation_alias="BASE_URL",
        description="Public URL of this deployment; used to build the OAuth redirect URI.",
    )
    credentials_db_path: str = Field(
        "data/credentials.db", validation_alias="CREDENTIALS_DB_PATH"
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    ms_graph: MSGraphSettings = Field(default_factory=MSGraphSettings)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def public_base_url(self) -> str:
        """Base URL without the trailing slash pydantic adds to bare hosts."""
        return str(self.base_url).rstrip("/")


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "MSGraphSettings",
    "SecuritySettings",
    "get_settings",
]
