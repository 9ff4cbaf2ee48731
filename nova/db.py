import sqlite3
from contextlib import contextmanager
from pathlib import Path
from .errors import StorageError

def get_conn(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    # check_same_thread off: scheduler jobs run the pipeline in a worker thread
    conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)  # autocommit
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn

DDL = [
    # Historical ledger (append-only). Amounts are canonical decimal strings.
    """
CREATE TABLE IF NOT EXISTS balances (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  date TEXT NOT NULL,
  wells_fargo_checking TEXT NOT NULL DEFAULT '0.00',
  wells_fargo_credit TEXT NOT NULL DEFAULT '0.00',
  robinhood TEXT NOT NULL DEFAULT '0.00',
  vanguard TEXT NOT NULL DEFAULT '0.00',
  net_worth TEXT NOT NULL DEFAULT '0.00',
  is_ath INTEGER NOT NULL DEFAULT 0,
  run_id TEXT,
  created_at_utc TEXT
);
""",
    "CREATE INDEX IF NOT EXISTS ix_balances_date ON balances(date, id);",

    # One access token per linked institution
    """
CREATE TABLE IF NOT EXISTS tokens (
  id INTEGER PRIMARY KEY,
  institution TEXT UNIQUE NOT NULL,
  access_token TEXT NOT NULL,
  updated_at_utc TEXT
);
""",

    # All-time-high singleton (id is always 1)
    """
CREATE TABLE IF NOT EXISTS ath (
  id INTEGER PRIMARY KEY CHECK (id = 1),
  value TEXT NOT NULL,
  date TEXT NOT NULL
);
""",

    # Runs table
    """
CREATE TABLE IF NOT EXISTS runs (
  run_id TEXT PRIMARY KEY,
  trigger TEXT NOT NULL,   -- 'manual'|'scheduled'|'cli'
  started_at_utc TEXT NOT NULL,
  finished_at_utc TEXT,
  status TEXT NOT NULL,   -- 'running'|'succeeded'|'failed'
  error_message TEXT,
  failed_institutions TEXT
);
""",

    # Run leases
    """
CREATE TABLE IF NOT EXISTS locks(
  name TEXT PRIMARY KEY,
  owner TEXT NOT NULL,
  acquired_at_utc TEXT NOT NULL,
  expires_at_utc TEXT NOT NULL
);
""",
]

def migrate(conn: sqlite3.Connection):
    try:
        cur = conn.cursor()
        for stmt in DDL:
            cur.execute(stmt)
        cols = {row[1] for row in cur.execute("PRAGMA table_info(balances)").fetchall()}
        if "run_id" not in cols:
            cur.execute("ALTER TABLE balances ADD COLUMN run_id TEXT")
        if "created_at_utc" not in cols:
            cur.execute("ALTER TABLE balances ADD COLUMN created_at_utc TEXT")
        token_cols = {row[1] for row in cur.execute("PRAGMA table_info(tokens)").fetchall()}
        if "updated_at_utc" not in token_cols:
            cur.execute("ALTER TABLE tokens ADD COLUMN updated_at_utc TEXT")
    except sqlite3.Error as e:
        raise StorageError(f"migrate_failed: {e}") from e

@contextmanager
def transaction(conn: sqlite3.Connection):
    """Group writes on an autocommit connection into one BEGIN IMMEDIATE ... COMMIT."""
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.Error as e:
        raise StorageError(f"begin_failed: {e}") from e
    try:
        yield conn
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    try:
        conn.execute("COMMIT")
    except sqlite3.Error as e:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise StorageError(f"commit_failed: {e}") from e
