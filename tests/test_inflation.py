import unittest
from datetime import datetime, timezone

from app.pipeline.inflation import index_for, inflation_trend
from app.pipeline.ranges import DateRange
from app.pipeline.transactions import normalize_transactions

from dashboard_fixtures import TRANSACTIONS

UTC = timezone.utc


class InflationTrendTests(unittest.TestCase):
    def test_trend_ends_at_range_month(self):
        rng = DateRange(datetime(2024, 5, 1, tzinfo=UTC), datetime(2024, 6, 1, tzinfo=UTC), "May 2024")
        points = inflation_trend(normalize_transactions(TRANSACTIONS), rng)
        self.assertEqual([p["month"] for p in points], ["2023-12", "2024-01", "2024-02", "2024-03", "2024-04", "2024-05"])
        self.assertEqual(points[-1]["nominal"], 1700)
        self.assertEqual(points[-1]["real"], 1700)
        self.assertEqual(points[-2]["nominal"], 1000)
        self.assertEqual(points[-2]["real"], 1002)
        self.assertEqual(points[0]["nominal"], 0)

    def test_index_lookup_falls_back(self):
        table = {"2024-01": 100.0, "2024-03": 110.0}
        self.assertEqual(index_for("2024-02", table), 100.0)
        self.assertEqual(index_for("2023-06", table), 100.0)
        self.assertEqual(index_for("2030-01", table), 110.0)
        self.assertEqual(index_for("2024-01", {}), 100.0)


if __name__ == "__main__":
    unittest.main()
