"""
Cookie-backed session resolution.

Sessions are issued by the sign-in side of the application as signed cookies;
this module only verifies them and turns them into an ``AuthSession``.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from hashlib import sha256
from typing import Any, Dict, Optional

from fastapi import Request

from app.models.credential import AuthSession

logger = logging.getLogger(__name__)

_SIGNATURE_SIZE = 32


class SessionStore:
    """Encode and decode HMAC-signed session cookies to guard against tampering."""

    def __init__(self, secret_key: str, cookie_name: str = "session") -> None:
        if not secret_key:
            raise ValueError("Session secret must be provided.")
        self._secret_key = secret_key.encode("utf-8")
        self._cookie_name = cookie_name

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError):
            return None
        signature, serialized = decoded[:_SIGNATURE_SIZE], decoded[_SIGNATURE_SIZE:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            logger.info("Rejected session cookie with an invalid signature.")
            return None
        try:
            data = json.loads(serialized)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def issue(self, user_id: str) -> str:
        """Create a cookie value for ``user_id``."""
        return self.encode({"user": {"id": user_id}})

    async def get_session(self, request: Request) -> Optional[AuthSession]:
        """Resolve the signed-in user from the request cookie, if any."""
        token = request.cookies.get(self._cookie_name)
        if not token:
            return None
        data = self.decode(token)
        if data is None:
            return None
        user = data.get("user")
        if not isinstance(user, dict):
            return AuthSession()
        user_id = user.get("id")
        return AuthSession(user_id=str(user_id) if user_id else None)


__all__ = ["SessionStore"]
