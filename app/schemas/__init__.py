"""Public schema exports."""

from .auth import AuthorizationUrlResponse, GraphProfile, OAuthState

__all__ = [
    "AuthorizationUrlResponse",
    "GraphProfile",
    "OAuthState",
]
