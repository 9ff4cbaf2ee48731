from __future__ import annotations
import asyncio
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from zoneinfo import ZoneInfo
import structlog

from ..config import settings
from ..db import get_conn, migrate
from ..errors import NovaError, RunInProgressError
from .orchestrator import build_orchestrator

_log = structlog.get_logger()
_scheduler: AsyncIOScheduler | None = None

def get_scheduler() -> AsyncIOScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.local_tz))
    return _scheduler

def schedule_jobs(sched: AsyncIOScheduler | None = None, start: bool = True) -> AsyncIOScheduler:
    sched = sched or get_scheduler()
    tz = ZoneInfo(settings.local_tz)
    # Daily snapshot, 06:00 local by default
    sched.add_job(
        run_scheduled_snapshot,
        CronTrigger(hour=settings.snapshot_hour, minute=settings.snapshot_minute, timezone=tz),
        id="daily_snapshot",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    if start:
        sched.start()
        _log.info("snapshot_scheduler_started", hour=settings.snapshot_hour, minute=settings.snapshot_minute)
    return sched

def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None

def _run_snapshot_sync():
    conn = get_conn(settings.db_path)
    try:
        migrate(conn)
        return build_orchestrator(conn).run(trigger="scheduled")
    finally:
        conn.close()

async def run_scheduled_snapshot():
    # No retry on failure: the next tick is the retry.
    try:
        run = await asyncio.to_thread(_run_snapshot_sync)
    except RunInProgressError:
        _log.warning("scheduled_snapshot_skipped", reason="lock_held")
        return None
    except NovaError as e:
        _log.error("scheduled_snapshot_failed", err=str(e), error_type=type(e).__name__)
        return None
    _log.info("scheduled_snapshot_done", run_id=run.run_id, is_ath=run.record.is_ath)
    return run
