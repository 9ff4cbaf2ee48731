import sqlite3
from datetime import datetime, timezone, timedelta

def acquire_lock(conn: sqlite3.Connection, name: str, owner: str, ttl_seconds: int = 900) -> bool:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(seconds=ttl_seconds)
    # Single statement: take the lease if free or expired, otherwise change nothing.
    cur = conn.execute(
        """
        INSERT INTO locks(name, owner, acquired_at_utc, expires_at_utc) VALUES(?,?,?,?)
        ON CONFLICT(name) DO UPDATE SET
          owner=excluded.owner,
          acquired_at_utc=excluded.acquired_at_utc,
          expires_at_utc=excluded.expires_at_utc
        WHERE locks.expires_at_utc < excluded.acquired_at_utc
        """,
        (name, owner, now.isoformat(), exp.isoformat()),
    )
    return cur.rowcount == 1

def release_lock(conn: sqlite3.Connection, name: str, owner: str):
    conn.execute("DELETE FROM locks WHERE name=? AND owner=?", (name, owner))

def lock_holder(conn: sqlite3.Connection, name: str) -> str | None:
    row = conn.execute("SELECT owner FROM locks WHERE name=?", (name,)).fetchone()
    return row[0] if row else None
