import unittest
from datetime import date
from decimal import Decimal

from nova.pipeline.models import BalanceSnapshot
from nova.pipeline.recorder import SnapshotRecorder

from fakes import memory_conn


def _snap(checking="0", credit="0", robinhood="0", vanguard="0"):
    return BalanceSnapshot(
        wells_fargo_checking=Decimal(checking),
        wells_fargo_credit=Decimal(credit),
        robinhood=Decimal(robinhood),
        vanguard=Decimal(vanguard),
    )


class SnapshotRecorderTests(unittest.TestCase):
    def setUp(self):
        self.conn = memory_conn()
        self.recorder = SnapshotRecorder(self.conn)

    def test_record_returns_inserted_values(self):
        rec = self.recorder.record(date(2026, 10, 19), _snap("1000.00", "200.00"), True, run_id="r1")
        self.assertEqual(rec.id, 1)
        self.assertEqual(rec.net_worth, Decimal("800.00"))
        self.assertTrue(rec.is_ath)
        stored = self.recorder.query_range(date(2026, 10, 19), date(2026, 10, 19))
        self.assertEqual(stored, [rec])

    def test_duplicates_for_same_day_are_kept(self):
        first = self.recorder.record(date(2026, 10, 19), _snap("500.00"), True)
        second = self.recorder.record(date(2026, 10, 19), _snap("500.00"), False)
        self.assertGreater(second.id, first.id)
        rows = self.recorder.query_range(date(2026, 10, 19), date(2026, 10, 19))
        self.assertEqual([r.is_ath for r in rows], [True, False])

    def test_history_window_and_order(self):
        today = date(2026, 10, 19)
        self.recorder.record(date(2026, 10, 18), _snap("3.00"), False)
        self.recorder.record(date(2026, 9, 1), _snap("1.00"), False)
        self.recorder.record(date(2026, 9, 19), _snap("2.00"), False)
        self.recorder.record(date(2026, 9, 18), _snap("9.00"), False)
        rows = self.recorder.history(30, today)
        self.assertEqual([r.date for r in rows], [date(2026, 9, 19), date(2026, 10, 18)])
        self.assertEqual([r.net_worth for r in rows], [Decimal("2.00"), Decimal("3.00")])

    def test_history_includes_rows_dated_after_today(self):
        today = date(2026, 10, 19)
        self.recorder.record(date(2026, 10, 19), _snap("1.00"), False)
        self.recorder.record(date(2026, 10, 20), _snap("2.00"), False)
        rows = self.recorder.history(90, today)
        self.assertEqual([r.date for r in rows], [date(2026, 10, 19), date(2026, 10, 20)])

    def test_query_range_upper_bound_is_inclusive(self):
        self.recorder.record(date(2026, 10, 19), _snap("1.00"), False)
        self.recorder.record(date(2026, 10, 20), _snap("2.00"), False)
        rows = self.recorder.query_range(date(2026, 10, 1), date(2026, 10, 19))
        self.assertEqual([r.date for r in rows], [date(2026, 10, 19)])

    def test_history_rejects_negative_window(self):
        with self.assertRaises(ValueError):
            self.recorder.history(-1, date(2026, 10, 19))

    def test_amounts_round_trip_without_float_drift(self):
        self.recorder.record(date(2026, 10, 19), _snap("0.10", "0.30", "0.20"), False)
        row = self.recorder.query_range(date(2026, 10, 19), date(2026, 10, 19))[0]
        self.assertEqual(row.net_worth, Decimal("0.00"))
        self.assertEqual(row.robinhood, Decimal("0.20"))


if __name__ == "__main__":
    unittest.main()
