from __future__ import annotations

import sqlite3
from datetime import date
from decimal import Decimal

import structlog

from ..errors import StorageError
from ..utils import to_money
from .models import AthState

log = structlog.get_logger()


class AthTracker:
    """All-time-high singleton (row id=1 in `ath`)."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def current_ath(self) -> AthState:
        try:
            row = self.conn.execute("SELECT value, date FROM ath WHERE id=1").fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"ath_read_failed: {e}") from e
        if not row:
            return AthState()
        return AthState(value=to_money(row[0]), date=date.fromisoformat(row[1]))

    def maybe_advance(self, candidate_value: Decimal, candidate_date: date) -> bool:
        candidate_value = to_money(candidate_value)
        current = self.current_ath()
        # strict: a tie with the stored high is not a new ATH
        if not candidate_value > current.value:
            return False
        try:
            self.conn.execute(
                """
                INSERT INTO ath (id, value, date) VALUES (1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET value=excluded.value, date=excluded.date
                """,
                (str(candidate_value), candidate_date.isoformat()),
            )
        except sqlite3.Error as e:
            raise StorageError(f"ath_write_failed: {e}") from e
        log.info(
            "ath_advanced",
            previous=str(current.value),
            value=str(candidate_value),
            date=candidate_date.isoformat(),
        )
        return True
