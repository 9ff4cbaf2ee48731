from __future__ import annotations

import sqlite3
from datetime import date, timedelta

from ..errors import StorageError
from ..utils import now_utc_iso
from .models import BalanceSnapshot, HistoricalRecord

_COLUMNS = "id, date, wells_fargo_checking, wells_fargo_credit, robinhood, vanguard, net_worth, is_ath, run_id"


class SnapshotRecorder:
    """Append-only ledger over the `balances` table. Rows are never updated or deleted."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def record(self, as_of: date, snapshot: BalanceSnapshot, is_ath: bool, run_id: str | None = None) -> HistoricalRecord:
        try:
            cur = self.conn.execute(
                """
                INSERT INTO balances (
                  date, wells_fargo_checking, wells_fargo_credit, robinhood, vanguard,
                  net_worth, is_ath, run_id, created_at_utc
                ) VALUES (?,?,?,?,?,?,?,?,?)
                """,
                (
                    as_of.isoformat(),
                    str(snapshot.wells_fargo_checking),
                    str(snapshot.wells_fargo_credit),
                    str(snapshot.robinhood),
                    str(snapshot.vanguard),
                    str(snapshot.net_worth),
                    1 if is_ath else 0,
                    run_id,
                    now_utc_iso(),
                ),
            )
        except sqlite3.Error as e:
            raise StorageError(f"ledger_append_failed: {e}") from e
        return HistoricalRecord(
            id=cur.lastrowid,
            date=as_of,
            wells_fargo_checking=snapshot.wells_fargo_checking,
            wells_fargo_credit=snapshot.wells_fargo_credit,
            robinhood=snapshot.robinhood,
            vanguard=snapshot.vanguard,
            net_worth=snapshot.net_worth,
            is_ath=bool(is_ath),
            run_id=run_id,
        )

    def query_range(self, start: date, end: date | None = None) -> list[HistoricalRecord]:
        sql = f"SELECT {_COLUMNS} FROM balances WHERE date >= ?"
        params = [start.isoformat()]
        if end is not None:
            sql += " AND date <= ?"
            params.append(end.isoformat())
        sql += " ORDER BY date ASC, id ASC"
        try:
            rows = self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"ledger_read_failed: {e}") from e
        return [HistoricalRecord.from_row(row) for row in rows]

    def history(self, days: int, today: date) -> list[HistoricalRecord]:
        if days < 0:
            raise ValueError("days must be >= 0")
        # no upper bound: rows dated after the local today are still returned
        return self.query_range(today - timedelta(days=days))
