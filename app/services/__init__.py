"""Service layer exports."""

from .token_cipher import TokenCipherService
from .office365_callback import CallbackHandler, normalize_token_payload

__all__ = [
    "CallbackHandler",
    "TokenCipherService",
    "normalize_token_payload",
]
