"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_credential_store,
    get_office365_callback_handler,
    get_office365_oauth_client,
    get_session_store,
    get_token_cipher_service,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_credential_store",
    "get_office365_callback_handler",
    "get_office365_oauth_client",
    "get_session_store",
    "get_token_cipher_service",
]
