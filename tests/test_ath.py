import unittest
from datetime import date
from decimal import Decimal

from nova.pipeline.ath import AthTracker

from fakes import memory_conn


class AthTrackerTests(unittest.TestCase):
    def setUp(self):
        self.conn = memory_conn()
        self.ath = AthTracker(self.conn)

    def test_initial_state_is_zero_without_date(self):
        state = self.ath.current_ath()
        self.assertEqual(state.value, Decimal("0"))
        self.assertIsNone(state.date)

    def test_advances_on_strictly_greater(self):
        self.assertTrue(self.ath.maybe_advance(Decimal("500.00"), date(2026, 10, 1)))
        state = self.ath.current_ath()
        self.assertEqual(state.value, Decimal("500.00"))
        self.assertEqual(state.date, date(2026, 10, 1))

    def test_tie_is_not_a_new_high(self):
        self.ath.maybe_advance(Decimal("500.00"), date(2026, 10, 1))
        self.assertFalse(self.ath.maybe_advance(Decimal("500.00"), date(2026, 10, 2)))
        self.assertEqual(self.ath.current_ath().date, date(2026, 10, 1))

    def test_lower_value_leaves_state(self):
        self.ath.maybe_advance(Decimal("500.00"), date(2026, 10, 1))
        self.assertFalse(self.ath.maybe_advance(Decimal("499.99"), date(2026, 10, 2)))
        self.assertEqual(self.ath.current_ath().value, Decimal("500.00"))

    def test_zero_or_negative_never_advances_from_initial(self):
        self.assertFalse(self.ath.maybe_advance(Decimal("0"), date(2026, 10, 1)))
        self.assertFalse(self.ath.maybe_advance(Decimal("-10"), date(2026, 10, 1)))
        self.assertIsNone(self.ath.current_ath().date)

    def test_single_row_is_kept(self):
        self.ath.maybe_advance(Decimal("1"), date(2026, 10, 1))
        self.ath.maybe_advance(Decimal("2"), date(2026, 10, 2))
        self.ath.maybe_advance(Decimal("3"), date(2026, 10, 3))
        count = self.conn.execute("SELECT COUNT(*) FROM ath").fetchone()[0]
        self.assertEqual(count, 1)
        self.assertEqual(self.ath.current_ath().value, Decimal("3.00"))


if __name__ == "__main__":
    unittest.main()
