"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from fastapi import Depends

from app.clients import CredentialStore, Office365OAuthClient, SessionStore
from app.services import CallbackHandler, TokenCipherService

from .config import get_app_settings as _settings


@lru_cache()
def get_session_store() -> SessionStore:
    """Provide the signed-cookie session resolver."""
    settings = _settings()
    return SessionStore(
        secret_key=settings.security.session_secret,
        cookie_name=settings.security.session_cookie_name,
    )


@lru_cache()
def get_office365_oauth_client() -> Office365OAuthClient:
    """Create a singleton Office 365 OAuth client."""
    settings = _settings()
    return Office365OAuthClient(settings.ms_graph, base_url=settings.public_base_url)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for credential storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.ms_graph.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide shared SQLite credential store."""
    settings = _settings()
    return CredentialStore(settings.credentials_db_path, cipher=get_token_cipher_service())


def get_office365_callback_handler(
    session_store: SessionStore = Depends(get_session_store),
    oauth_client: Office365OAuthClient = Depends(get_office365_oauth_client),
    credential_store: CredentialStore = Depends(get_credential_store),
) -> CallbackHandler:
    """Build the callback handler from the (overridable) collaborators."""
    return CallbackHandler(
        session_resolver=session_store.get_session,
        oauth_client=oauth_client,
        credential_store=credential_store,
    )


__all__ = [
    "get_credential_store",
    "get_office365_callback_handler",
    "get_office365_oauth_client",
    "get_session_store",
    "get_token_cipher_service",
]
