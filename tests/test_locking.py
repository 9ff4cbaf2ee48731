import unittest
from datetime import datetime, timedelta, timezone

from nova.pipeline.locking import acquire_lock, lock_holder, release_lock

from fakes import memory_conn


class LockingTests(unittest.TestCase):
    def setUp(self):
        self.conn = memory_conn()

    def test_second_owner_is_rejected_while_held(self):
        self.assertTrue(acquire_lock(self.conn, "snapshot", "a"))
        self.assertFalse(acquire_lock(self.conn, "snapshot", "b"))
        self.assertEqual(lock_holder(self.conn, "snapshot"), "a")

    def test_release_frees_lock(self):
        acquire_lock(self.conn, "snapshot", "a")
        release_lock(self.conn, "snapshot", "a")
        self.assertIsNone(lock_holder(self.conn, "snapshot"))
        self.assertTrue(acquire_lock(self.conn, "snapshot", "b"))

    def test_release_by_other_owner_is_noop(self):
        acquire_lock(self.conn, "snapshot", "a")
        release_lock(self.conn, "snapshot", "b")
        self.assertEqual(lock_holder(self.conn, "snapshot"), "a")

    def test_expired_lease_can_be_taken(self):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        self.conn.execute(
            "INSERT INTO locks(name, owner, acquired_at_utc, expires_at_utc) VALUES(?,?,?,?)",
            ("snapshot", "stale", past.isoformat(), (past + timedelta(minutes=15)).isoformat()),
        )
        self.assertTrue(acquire_lock(self.conn, "snapshot", "fresh"))
        self.assertEqual(lock_holder(self.conn, "snapshot"), "fresh")


if __name__ == "__main__":
    unittest.main()
