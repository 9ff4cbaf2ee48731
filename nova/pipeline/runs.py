import json
import sqlite3
from ..utils import now_utc_iso

def start_run(conn: sqlite3.Connection, run_id: str, trigger: str):
    conn.execute(
        "INSERT OR REPLACE INTO runs(run_id, trigger, started_at_utc, status) VALUES(?,?,?,?)",
        (run_id, trigger, now_utc_iso(), 'running'),
    )

def finish_run_ok(conn: sqlite3.Connection, run_id: str, failed_institutions: list[str] | None = None):
    conn.execute(
        "UPDATE runs SET finished_at_utc=?, status=?, failed_institutions=? WHERE run_id=?",
        (now_utc_iso(), 'succeeded', json.dumps(failed_institutions or []), run_id),
    )

def finish_run_fail(conn: sqlite3.Connection, run_id: str, err: str):
    conn.execute(
        "UPDATE runs SET finished_at_utc=?, status=?, error_message=? WHERE run_id=?",
        (now_utc_iso(), 'failed', err[:1000], run_id),
    )

def get_run_status(conn: sqlite3.Connection, run_id: str):
    row = conn.execute(
        """
        SELECT run_id, trigger, started_at_utc, finished_at_utc, status, error_message, failed_institutions
        FROM runs WHERE run_id=?
        """,
        (run_id,),
    ).fetchone()
    if not row: return None
    return {
        'run_id': row[0], 'trigger': row[1], 'started_at_utc': row[2], 'finished_at_utc': row[3],
        'status': row[4], 'error_message': row[5],
        'failed_institutions': json.loads(row[6]) if row[6] else [],
    }

def last_run(conn: sqlite3.Connection):
    row = conn.execute(
        "SELECT run_id FROM runs ORDER BY started_at_utc DESC LIMIT 1"
    ).fetchone()
    return get_run_status(conn, row[0]) if row else None
