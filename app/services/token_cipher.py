"""Symmetric encryption for credential payloads kept at rest."""

from __future__ import annotations

import base64
import hashlib
import json
from typing import Any, Dict

from cryptography.fernet import Fernet, InvalidToken


class TokenCipherService:
    """Encrypt and decrypt credential payloads using a derived Fernet key."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, plaintext: str) -> str:
        token = self._fernet.encrypt(plaintext.encode("utf-8"))
        return token.decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt credential; invalid ciphertext provided."
            ) from exc
        return plaintext.decode("utf-8")

    def encrypt_payload(self, payload: Dict[str, Any]) -> str:
        """Serialize a JSON object and encrypt it."""
        return self.encrypt(json.dumps(payload, separators=(",", ":")))

    def decrypt_payload(self, ciphertext: str) -> Dict[str, Any]:
        """Decrypt a value produced by :meth:`encrypt_payload`."""
        return json.loads(self.decrypt(ciphertext))


__all__ = ["TokenCipherService"]
