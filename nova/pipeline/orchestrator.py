from __future__ import annotations

import sqlite3
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

import structlog

from ..config import settings
from ..db import transaction
from ..errors import RunInProgressError, StorageError
from ..providers.plaid import PlaidClient
from ..utils import local_today
from .aggregator import BalanceAggregator, BalanceFetcher
from .ath import AthTracker
from .classification import load_rules
from .credentials import CredentialStore
from .locking import acquire_lock, release_lock
from .models import BalanceSnapshot, HistoricalRecord
from .recorder import SnapshotRecorder
from .runs import start_run, finish_run_ok, finish_run_fail

log = structlog.get_logger()

LOCK_NAME = "snapshot"


@dataclass(frozen=True)
class SnapshotRun:
    run_id: str
    snapshot: BalanceSnapshot
    record: HistoricalRecord
    failed_institutions: list[str] = field(default_factory=list)


def default_clock() -> date:
    return local_today(settings.local_tz, settings.daily_cutover)


class SnapshotOrchestrator:
    """Aggregate balances, advance the ATH and append one ledger row per invocation."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        aggregator: BalanceAggregator,
        clock: Callable[[], date] = default_clock,
        credentials: CredentialStore | None = None,
        ath: AthTracker | None = None,
        recorder: SnapshotRecorder | None = None,
        lock_ttl_seconds: int = 900,
    ):
        self.conn = conn
        self.aggregator = aggregator
        self.clock = clock
        self.credentials = credentials or CredentialStore(conn)
        self.ath = ath or AthTracker(conn)
        self.recorder = recorder or SnapshotRecorder(conn)
        self.lock_ttl_seconds = lock_ttl_seconds

    def run_daily_snapshot(self, trigger: str = "manual") -> BalanceSnapshot:
        return self.run(trigger).snapshot

    def run(self, trigger: str = "manual", run_id: str | None = None) -> SnapshotRun:
        run_id = run_id or str(uuid.uuid4())
        try:
            start_run(self.conn, run_id, trigger)
            acquired = acquire_lock(self.conn, LOCK_NAME, run_id, ttl_seconds=self.lock_ttl_seconds)
        except sqlite3.Error as e:
            raise StorageError(f"run_start_failed: {e}") from e
        if not acquired:
            self._mark_failed(run_id, "lock_held")
            log.warning("snapshot_skipped_lock_held", run_id=run_id, trigger=trigger)
            raise RunInProgressError("a snapshot run is already in progress")

        log.info("snapshot_started", run_id=run_id, trigger=trigger)
        try:
            started = self._step_start(run_id, "aggregate")
            credentials = self.credentials.list_credentials()
            result = self.aggregator.collect(credentials)
            snapshot = result.snapshot
            self._step_done(
                run_id,
                "aggregate",
                started,
                credentials_count=len(credentials),
                failed_institutions=result.failed_institutions,
            )

            as_of = self.clock()
            started = self._step_start(run_id, "record")
            # ATH state and the ledger row commit together or not at all.
            with transaction(self.conn):
                prior = self.ath.current_ath().value
                is_ath = snapshot.net_worth > prior
                if is_ath:
                    is_ath = self.ath.maybe_advance(snapshot.net_worth, as_of)
                record = self.recorder.record(as_of, snapshot, is_ath, run_id=run_id)
            self._step_done(run_id, "record", started, record_id=record.id)

            try:
                finish_run_ok(self.conn, run_id, result.failed_institutions)
            except sqlite3.Error as e:
                raise StorageError(f"run_finish_failed: {e}") from e
            log.info(
                "snapshot_recorded",
                run_id=run_id,
                trigger=trigger,
                date=as_of.isoformat(),
                net_worth=str(snapshot.net_worth),
                prior_ath=str(prior),
                is_ath=is_ath,
            )
            return SnapshotRun(
                run_id=run_id,
                snapshot=snapshot,
                record=record,
                failed_institutions=result.failed_institutions,
            )
        except Exception as e:
            log.error("snapshot_failed", run_id=run_id, trigger=trigger, err=str(e))
            self._mark_failed(run_id, str(e) or type(e).__name__)
            raise
        finally:
            try:
                release_lock(self.conn, LOCK_NAME, run_id)
            except sqlite3.Error as e:
                log.error("snapshot_lock_release_failed", run_id=run_id, err=str(e))

    def _mark_failed(self, run_id: str, err: str):
        try:
            finish_run_fail(self.conn, run_id, err)
        except sqlite3.Error as e:
            log.error("run_status_update_failed", run_id=run_id, err=str(e))

    def _step_start(self, run_id: str, step: str) -> float:
        log.info("snapshot_step_start", run_id=run_id, step=step)
        return time.monotonic()

    def _step_done(self, run_id: str, step: str, started: float, **fields):
        log.info(
            "snapshot_step_done",
            run_id=run_id,
            step=step,
            elapsed_sec=round(time.monotonic() - started, 2),
            **fields,
        )


def build_orchestrator(
    conn: sqlite3.Connection,
    fetcher: BalanceFetcher | None = None,
    clock: Callable[[], date] = default_clock,
) -> SnapshotOrchestrator:
    if fetcher is None:
        fetcher = PlaidClient.from_settings()
    aggregator = BalanceAggregator(
        fetcher,
        rules=load_rules(settings.classification_rules_json),
        credit_convention=settings.credit_balance_convention,
    )
    return SnapshotOrchestrator(conn, aggregator, clock=clock, lock_ttl_seconds=settings.snapshot_lock_ttl_seconds)
