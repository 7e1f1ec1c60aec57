"""SQLite-backed storage for integration credentials."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional

from app.models.credential import CredentialRecord
from app.services.token_cipher import TokenCipherService


class CredentialStore:
    """Append-only credential table keyed by an autoincrement row id.

    The ``key`` column holds the token payload as JSON, encrypted with the
    configured cipher.
    """

    def __init__(self, db_path: str, cipher: TokenCipherService) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._cipher = cipher
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS credentials (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    type TEXT NOT NULL,
                    key TEXT NOT NULL,
                    user_id TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_credentials_user ON credentials (user_id)"
            )

    def create(self, *, type: str, key: Dict[str, Any], user_id: str) -> CredentialRecord:
        """Insert a new credential; existing rows for the user are left alone."""
        if not user_id:
            raise ValueError("Credential must belong to a user")

        encrypted_key = self._cipher.encrypt_payload(key)
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO credentials (type, key, user_id) VALUES (?, ?, ?)",
                (type, encrypted_key, user_id),
            )
            row_id = cursor.lastrowid
        return CredentialRecord(id=row_id, type=type, key=key, user_id=user_id)

    def list_for_user(
        self, user_id: str, *, type: Optional[str] = None
    ) -> list[CredentialRecord]:
        query = "SELECT id, type, key, user_id FROM credentials WHERE user_id = ?"
        params: tuple[Any, ...] = (user_id,)
        if type is not None:
            query += " AND type = ?"
            params += (type,)
        query += " ORDER BY id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            CredentialRecord(
                id=row["id"],
                type=row["type"],
                key=self._cipher.decrypt_payload(row["key"]),
                user_id=row["user_id"],
            )
            for row in rows
        ]


__all__ = ["CredentialStore"]
