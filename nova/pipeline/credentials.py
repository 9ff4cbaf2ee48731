from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from ..errors import StorageError, ValidationError
from ..utils import now_utc_iso


@dataclass(frozen=True)
class Credential:
    institution: str
    access_token: str

    def __repr__(self) -> str:
        return f"Credential(institution={self.institution!r}, access_token='***')"


class CredentialStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list_credentials(self) -> list[Credential]:
        try:
            rows = self.conn.execute(
                "SELECT institution, access_token FROM tokens ORDER BY id"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"tokens_read_failed: {e}") from e
        return [Credential(institution=row[0], access_token=row[1]) for row in rows]

    def upsert(self, institution: str, access_token: str) -> Credential:
        institution = (institution or "").strip()
        if not institution:
            raise ValidationError("institution required")
        if not access_token:
            raise ValidationError("access_token required")
        try:
            self.conn.execute(
                """
                INSERT INTO tokens (institution, access_token, updated_at_utc) VALUES (?,?,?)
                ON CONFLICT(institution) DO UPDATE SET
                  access_token=excluded.access_token,
                  updated_at_utc=excluded.updated_at_utc
                """,
                (institution, access_token, now_utc_iso()),
            )
        except sqlite3.Error as e:
            raise StorageError(f"tokens_write_failed: {e}") from e
        return Credential(institution=institution, access_token=access_token)
