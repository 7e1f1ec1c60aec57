"""Expose constructed client wrappers."""

from .office365_auth import (
    Office365OAuthClient,
    OAuthProfileFetchError,
    OAuthTokenExchangeError,
)
from .session import SessionStore
from .credential_store import CredentialStore

__all__ = [
    "CredentialStore",
    "Office365OAuthClient",
    "OAuthProfileFetchError",
    "OAuthTokenExchangeError",
    "SessionStore",
]
