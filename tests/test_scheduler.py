import asyncio
import unittest
from unittest import mock

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from nova.errors import RunInProgressError, StorageError
from nova.pipeline import scheduler


class SchedulerTests(unittest.TestCase):
    def test_daily_job_registered(self):
        sched = AsyncIOScheduler()
        scheduler.schedule_jobs(sched, start=False)
        jobs = sched.get_jobs()
        self.assertEqual([j.id for j in jobs], ["daily_snapshot"])
        fields = {f.name: str(f) for f in jobs[0].trigger.fields}
        self.assertEqual(fields["hour"], str(scheduler.settings.snapshot_hour))
        self.assertEqual(fields["minute"], str(scheduler.settings.snapshot_minute))

    def test_lock_held_is_skipped(self):
        with mock.patch.object(scheduler, "_run_snapshot_sync", side_effect=RunInProgressError("busy")):
            self.assertIsNone(asyncio.run(scheduler.run_scheduled_snapshot()))

    def test_storage_failure_is_logged_not_retried(self):
        with mock.patch.object(scheduler, "_run_snapshot_sync", side_effect=StorageError("locked")) as run:
            self.assertIsNone(asyncio.run(scheduler.run_scheduled_snapshot()))
        self.assertEqual(run.call_count, 1)


if __name__ == "__main__":
    unittest.main()
