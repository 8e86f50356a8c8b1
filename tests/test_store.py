import json
import tempfile
import unittest
from pathlib import Path

from app.store import JsonStore


class JsonStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        (self.dir / "transactions.json").write_text(json.dumps({
            "transactions": [
                {"userId": "u1", "date": "2024-05-01", "amount": -5},
                {"userId": "u2", "date": "2024-05-01", "amount": -7},
                {"date": "2024-05-02", "amount": 1},
            ]
        }))
        (self.dir / "accounts.json").write_text(json.dumps([{"type": "cash", "balance": 10}]))
        (self.dir / "users.json").write_text(json.dumps({"users": [{"id": "u1", "licenseTier": "pro"}]}))
        (self.dir / "holdings.json").write_text("{not json")
        self.store = JsonStore(str(self.dir))

    def tearDown(self):
        self._tmp.cleanup()

    def test_records_filtered_to_user(self):
        amounts = [r["amount"] for r in self.store.load_transactions("u1")]
        self.assertEqual(amounts, [-5, 1])

    def test_bare_list_file(self):
        self.assertEqual(self.store.load_accounts("u1"), [{"type": "cash", "balance": 10}])

    def test_missing_and_invalid_files_are_empty(self):
        self.assertEqual(self.store.load_price_history("u1"), [])
        self.assertEqual(self.store.load_holdings("u1"), [])

    def test_unknown_user(self):
        self.assertEqual(self.store.load_user("u1")["licenseTier"], "pro")
        self.assertEqual(self.store.load_user("ghost"), {"id": "ghost"})

    def test_usage_stats_written_per_user(self):
        self.store.save_usage_stats("u1", {"netCashFlow": 10})
        self.store.save_usage_stats("u2", {"netCashFlow": -3})
        doc = json.loads((self.dir / "usage_stats.json").read_text())
        self.assertEqual(doc["usage"]["u1"]["netCashFlow"], 10)
        self.assertEqual(doc["usage"]["u2"]["netCashFlow"], -3)
        self.assertIn("updatedAt", doc["usage"]["u1"])


if __name__ == "__main__":
    unittest.main()
