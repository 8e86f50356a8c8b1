import unittest
from datetime import datetime, timezone

from app.pipeline import tax
from app.pipeline.ranges import DateRange
from app.pipeline.transactions import categorise_income, filter_in_range, normalize_transactions

from dashboard_fixtures import RULES

UTC = timezone.utc


class AllowanceTaperTests(unittest.TestCase):
    def test_full_allowance_up_to_taper(self):
        self.assertEqual(tax.personal_allowance(60270), 12570)
        self.assertEqual(tax.personal_allowance(100000), 12570)
        self.assertEqual(tax.personal_allowance(100001), 12570)

    def test_taper_halves_excess(self):
        self.assertEqual(tax.personal_allowance(110000), 7570)
        self.assertEqual(tax.personal_allowance(125140), 0)
        self.assertEqual(tax.personal_allowance(160000), 0)


class IncomeTaxTests(unittest.TestCase):
    def test_basic_rate_example(self):
        out = tax.annual_tax(60270, 0, 0)
        self.assertEqual(out["taxableIncome"], 47700)
        self.assertAlmostEqual(out["total"], 9540.0)
        self.assertEqual(out["band"], "Basic rate")

    def test_additional_rate_example(self):
        out = tax.annual_tax(160000, 0, 0)
        self.assertEqual(out["personalAllowance"], 0)
        self.assertAlmostEqual(out["total"], 55689.0)
        self.assertEqual(out["band"], "Additional rate")

    def test_non_positive_income_is_untaxed(self):
        self.assertEqual(tax.income_tax(0), 0.0)
        self.assertEqual(tax.income_tax(-500), 0.0)
        self.assertEqual(tax.annual_tax(0, 0, 0)["total"], 0.0)

    def test_tax_never_falls_as_income_rises(self):
        previous = -1.0
        for gross in range(0, 200001, 2500):
            total = tax.annual_tax(gross, 0, 0)["total"]
            self.assertGreaterEqual(total, previous)
            previous = total

    def test_band_labels(self):
        self.assertEqual(tax.tax_band_label(10000), "Nil rate")
        self.assertEqual(tax.tax_band_label(30000), "Basic rate")
        self.assertEqual(tax.tax_band_label(80000), "Higher rate")
        self.assertEqual(tax.tax_band_label(200000), "Additional rate")


class DividendTaxTests(unittest.TestCase):
    def test_dividends_stack_on_salary(self):
        self.assertAlmostEqual(tax.dividend_tax(10000, 45000), 1888.75, places=2)

    def test_allowance_covers_small_dividends(self):
        self.assertEqual(tax.dividend_tax(400, 0), 0.0)
        self.assertEqual(tax.dividend_tax(500, 80000), 0.0)

    def test_higher_rate_when_no_headroom(self):
        self.assertAlmostEqual(tax.dividend_tax(1500, 60000), 1000 * 0.3375)


class MarginalRateTests(unittest.TestCase):
    def test_rates_by_income(self):
        self.assertEqual(tax.marginal_rate(12570), 0.0)
        self.assertEqual(tax.marginal_rate(30000), 0.20)
        self.assertEqual(tax.marginal_rate(60000), 0.40)
        self.assertEqual(tax.marginal_rate(100000), 0.40)
        self.assertEqual(tax.marginal_rate(110000), 0.60)
        self.assertEqual(tax.marginal_rate(130000), 0.45)

    def test_emtr_curve_has_thirteen_points(self):
        curve = tax.emtr_curve(20000)
        self.assertEqual(len(curve), 13)
        self.assertEqual(curve[0]["income"], 0)
        self.assertEqual(curve[-1]["income"], 60000)

    def test_emtr_curve_reaches_taper_zone(self):
        curve = tax.emtr_curve(100000)
        self.assertGreaterEqual(curve[-1]["income"], 130000)
        self.assertIn(0.60, [pt["rate"] for pt in curve])


class ScalingTests(unittest.TestCase):
    def test_annualise_uses_365_day_year(self):
        self.assertAlmostEqual(tax.annualise(100, 73), 500)
        self.assertAlmostEqual(tax.deannualise(500, 73), 100)

    def test_zero_days_treated_as_one(self):
        self.assertAlmostEqual(tax.annualise(1, 0), 365)


class HmrcTests(unittest.TestCase):
    def test_labels(self):
        self.assertEqual(tax.hmrc_label(1234.4), "Owe HMRC £1,234")
        self.assertEqual(tax.hmrc_label(-50), "HMRC owes you £50")
        self.assertEqual(tax.hmrc_label(0), "Settled")

    def test_estimate_against_payments(self):
        rng = DateRange(datetime(2025, 1, 1, tzinfo=UTC), datetime(2025, 3, 15, tzinfo=UTC), "Q1")
        self.assertEqual(rng.days, 73)
        txs = filter_in_range(normalize_transactions([
            {"date": "2025-01-28", "amount": 12054, "category": "Salary", "description": "Payroll"},
            {"date": "2025-01-31", "amount": -500, "category": "HMRC Self Assessment", "description": "Payment"},
            {"date": "2025-02-02", "amount": -70, "category": "Shopping", "description": "hmrc shop"},
        ]), rng)
        out = tax.estimate_hmrc(categorise_income(txs), txs, rng.days, RULES, datetime(2025, 3, 15, tzinfo=UTC))
        self.assertAlmostEqual(out["income"]["salaryAnnual"], 60270)
        self.assertAlmostEqual(out["estTaxAnnual"], 9540)
        self.assertAlmostEqual(out["estTaxForRange"], 1908)
        self.assertEqual(out["paymentsInRange"], 500)
        self.assertAlmostEqual(out["net"], 1408)
        self.assertEqual(out["label"], "Owe HMRC £1,408")
        self.assertEqual(len(out["emtr"]), 13)

    def test_dividend_income_is_split_out(self):
        parts = tax.split_income(
            [
                {"category": "salary", "amount": 1000},
                {"category": "dividends", "amount": 200},
                {"category": "interest", "amount": 50},
            ],
            RULES,
        )
        self.assertEqual(parts, {"salary": 1000, "dividends": 200, "other": 50, "total": 1250})


class AllowanceAndObligationTests(unittest.TestCase):
    def test_allowance_utilisation(self):
        rows = {row["key"]: row for row in tax.build_allowances(60270, 250, 0)}
        self.assertEqual(rows["personalAllowance"]["utilisation"], 1.0)
        self.assertAlmostEqual(rows["dividendAllowance"]["utilisation"], 0.5)
        self.assertEqual(rows["cgtAllowance"]["used"], 0)
        self.assertEqual(len(rows), 5)

    def test_obligations_roll_forward(self):
        out = tax.build_obligations(1000, datetime(2026, 7, 10, tzinfo=UTC))
        self.assertEqual([o["key"] for o in out], ["paymentOnAccount", "selfAssessment"])
        self.assertEqual(out[0]["dueDate"], "2026-07-31")
        self.assertEqual(out[0]["status"], "due-soon")
        self.assertEqual(out[1]["dueDate"], "2027-01-31")
        self.assertEqual(out[1]["status"], "scheduled")
        self.assertEqual([o["amountDue"] for o in out], [500, 500])

    def test_obligations_sorted_by_due_date(self):
        out = tax.build_obligations(-300, datetime(2026, 10, 16, tzinfo=UTC))
        self.assertEqual([o["dueDate"] for o in out], ["2027-01-31", "2027-07-31"])
        self.assertEqual([o["amountDue"] for o in out], [0, 0])


if __name__ == "__main__":
    unittest.main()
