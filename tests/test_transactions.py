import unittest
from datetime import datetime, timezone

from app.pipeline.ranges import DateRange
from app.pipeline.transactions import (
    aggregate,
    categorise_income,
    categorise_spend,
    detect_duplicates,
    filter_in_range,
    normalize_transactions,
    savings_capacity,
    top_merchants,
)

from dashboard_fixtures import RULES, TRANSACTIONS

UTC = timezone.utc
MAY = DateRange(datetime(2024, 5, 1, tzinfo=UTC), datetime(2024, 6, 1, tzinfo=UTC), "May 2024")


def _tx(date, amount, description, category="Entertainment", account_id=None):
    return {"date": date, "amount": amount, "description": description, "category": category, "accountId": account_id}


class NormalizeTests(unittest.TestCase):
    def test_unparsable_dates_are_dropped(self):
        txs = normalize_transactions(TRANSACTIONS)
        self.assertEqual(len(txs), len(TRANSACTIONS) - 1)
        self.assertNotIn("Broken row", [tx.description for tx in txs])

    def test_amounts_are_coerced(self):
        txs = normalize_transactions([_tx("2024-05-01", "12.50", "Cinema"), _tx("2024-05-01", "n/a", "Mystery")])
        self.assertEqual([tx.amount for tx in txs], [12.5, 0.0])

    def test_range_end_is_exclusive(self):
        txs = normalize_transactions([_tx("2024-05-01", -1, "a"), _tx("2024-05-31", -1, "b"), _tx("2024-06-01", -1, "c")])
        self.assertEqual([tx.description for tx in filter_in_range(txs, MAY)], ["a", "b"])


class CategoriseTests(unittest.TestCase):
    def setUp(self):
        self.txs = filter_in_range(normalize_transactions(TRANSACTIONS), MAY)

    def test_spend_shares_sum_to_one(self):
        rows = categorise_spend(self.txs)
        self.assertAlmostEqual(sum(row["share"] for row in rows), 1.0, places=9)
        self.assertEqual(rows[0]["category"], "rent/mortgage")
        self.assertEqual(rows[0]["amount"], 1000)

    def test_categories_fold_case(self):
        rows = categorise_spend(self.txs)
        food = [row for row in rows if row["category"] == "food & groceries"]
        self.assertEqual(len(food), 1)
        self.assertEqual(food[0]["amount"], 300)

    def test_income_only_has_no_spend_rows(self):
        txs = normalize_transactions([_tx("2024-05-02", 100, "Salary", "Salary")])
        self.assertEqual(categorise_spend(txs), [])
        self.assertEqual(categorise_income(txs)[0]["share"], 1.0)

    def test_empty_input(self):
        self.assertEqual(categorise_spend([]), [])
        self.assertEqual(categorise_income([]), [])


class DuplicateTests(unittest.TestCase):
    def test_pair_is_reported(self):
        txs = normalize_transactions([
            _tx("2024-05-10", -9.99, "Netflix", account_id="a1"),
            _tx("2024-05-10", -9.99, "Netflix", account_id="a2"),
        ])
        clusters = detect_duplicates(txs)
        self.assertEqual(len(clusters), 1)
        self.assertEqual(clusters[0]["count"], 2)
        self.assertEqual(clusters[0]["distinctAccountIds"], ["a1", "a2"])

    def test_description_match_ignores_case_and_spacing(self):
        txs = normalize_transactions([
            _tx("2024-05-10", -9.99, "Netflix"),
            _tx("2024-05-10", -9.99, "NETFLIX"),
            _tx("2024-05-10", -9.99, "  netflix "),
        ])
        self.assertEqual(detect_duplicates(txs)[0]["count"], 3)

    def test_different_day_or_amount_is_not_duplicate(self):
        txs = normalize_transactions([
            _tx("2024-05-10", -9.99, "Netflix"),
            _tx("2024-05-11", -9.99, "Netflix"),
            _tx("2024-05-10", -10.99, "Netflix"),
        ])
        self.assertEqual(detect_duplicates(txs), [])

    def test_clusters_sorted_by_size_of_amount(self):
        txs = normalize_transactions([
            _tx("2024-05-10", -9.99, "Netflix"),
            _tx("2024-05-10", -9.99, "Netflix"),
            _tx("2024-05-12", -100, "Gym"),
            _tx("2024-05-12", -100, "Gym"),
        ])
        self.assertEqual([c["description"] for c in detect_duplicates(txs)], ["Gym", "Netflix"])


class MerchantTests(unittest.TestCase):
    def test_top_merchants_are_capped_and_sorted(self):
        records = [_tx("2024-05-02", -(i + 1) * 10, f"Shop {i}") for i in range(10)]
        records.append(_tx("2024-05-03", -5, "Shop 0"))
        records.append(_tx("2024-05-03", 500, "Refund"))
        rows = top_merchants(normalize_transactions(records))
        self.assertEqual(len(rows), 8)
        self.assertEqual(rows[0]["name"], "Shop 9")
        self.assertEqual([r["amount"] for r in rows], sorted((r["amount"] for r in rows), reverse=True))
        self.assertNotIn("Refund", [r["name"] for r in rows])

    def test_merchant_names_fold_case(self):
        txs = filter_in_range(normalize_transactions(TRANSACTIONS), MAY)
        tesco = [r for r in top_merchants(txs) if r["name"].lower() == "tesco"]
        self.assertEqual(len(tesco), 1)
        self.assertEqual(tesco[0]["name"], "Tesco")
        self.assertEqual(tesco[0]["amount"], 300)
        self.assertEqual(tesco[0]["transactions"], 2)


class SavingsTests(unittest.TestCase):
    def test_capacity_scales_to_thirty_days(self):
        txs = filter_in_range(normalize_transactions(TRANSACTIONS), MAY)
        out = savings_capacity(txs, MAY, RULES, contributions=200)
        self.assertEqual(out["income"], 3000)
        self.assertEqual(out["spend"], 1700)
        self.assertEqual(out["essentials"], 1300)
        self.assertEqual(out["discretionary"], 400)
        self.assertEqual(out["net"], 1100)
        self.assertAlmostEqual(out["monthlyCapacity"], 1100 * 30 / 31)
        self.assertEqual(out["status"], "ahead")

    def test_overspend_is_behind(self):
        txs = normalize_transactions([_tx("2024-05-02", 100, "Pay", "Salary"), _tx("2024-05-03", -400, "Car", "Transport")])
        out = savings_capacity(txs, MAY, RULES)
        self.assertEqual(out["status"], "behind")
        self.assertEqual(out["savingsRate"], 0.0)

    def test_no_income_has_zero_rate(self):
        out = savings_capacity([], MAY, RULES)
        self.assertEqual(out["savingsRate"], 0.0)
        self.assertEqual(out["monthlyCapacity"], 0.0)

    def test_aggregate_bundles_window(self):
        out = aggregate(normalize_transactions(TRANSACTIONS), MAY, RULES, contributions=200)
        self.assertEqual(len(out["transactions"]), 5)
        self.assertEqual(len(out["duplicates"]), 1)
        self.assertEqual(out["incomeByCategory"][0]["category"], "salary")


if __name__ == "__main__":
    unittest.main()
