import unittest

from rateguide.compare import mortgages
from rateguide.criteria import MortgageCriteria
from rateguide.models import ProductsSnapshot, SeriesItem, SeriesPoint

AS_OF = "2026-01-02T00:00:00Z"


def _series(code, *values):
    points = tuple(SeriesPoint(month=f"2025-{i + 1:02d}", value=v) for i, v in enumerate(values))
    return SeriesItem(code=code, label=code, as_of=AS_OF, points=points)


class AmortizationTests(unittest.TestCase):
    def test_annuity_payment(self):
        self.assertAlmostEqual(mortgages.monthly_payment(200000, 6.0, 300), 1288.60, places=2)

    def test_zero_rate_is_linear(self):
        self.assertEqual(mortgages.monthly_payment(120000, 0.0, 300), 400.0)
        self.assertEqual(mortgages.balance_after(120000, 0.0, 300, 12), 120000 - 400.0 * 12)
        self.assertEqual(mortgages.balance_after(120000, 0.0, 300, 400), 0.0)

    def test_balance_fully_repaid_at_term(self):
        self.assertAlmostEqual(mortgages.balance_after(200000, 6.0, 300, 300), 0.0, places=2)


class MortgageScoreTests(unittest.TestCase):
    def setUp(self):
        self.snapshot = ProductsSnapshot(
            category="mortgages",
            series=(
                _series("IUMBV34", 4.9, 5.0),
                _series("IUMBV42", 4.4, 4.5),
                _series("IUMTLMV", 7.5, 7.25),
                _series("IUMBEDR", 4.0, 4.0),
            ),
        )

    def test_options_use_latest_rate(self):
        result = mortgages.score(self.snapshot, MortgageCriteria(loan_amount=200000, horizon_months=24))
        labels = [o.label for o in result.options]
        self.assertEqual(labels, ["2y fixed", "5y fixed", "revert-to-rate"])
        two_year = result.options[0]
        self.assertEqual(two_year.id, "2y-fixed")
        self.assertEqual(two_year.rate_pct, 5.0)
        self.assertAlmostEqual(
            two_year.metrics["monthly_payment_est"], round(mortgages.monthly_payment(200000, 5.0, 300), 2)
        )

    def test_interest_over_horizon(self):
        result = mortgages.score(self.snapshot, MortgageCriteria(loan_amount=200000, horizon_months=24))
        payment = mortgages.monthly_payment(200000, 5.0, 300)
        balance = mortgages.balance_after(200000, 5.0, 300, 24)
        expected = round(payment * 24 - (200000 - balance), 2)
        self.assertAlmostEqual(result.options[0].metrics["interest_cost_over_horizon_est"], expected, places=2)

    def test_only_variable_option_has_rate_shock(self):
        result = mortgages.score(self.snapshot, MortgageCriteria())
        by_id = {o.id: o for o in result.options}
        self.assertIn("payment_if_plus_1pct", by_id["revert-to-rate"].metrics)
        self.assertNotIn("payment_if_plus_1pct", by_id["2y-fixed"].metrics)

    def test_chart_and_as_of(self):
        result = mortgages.score(self.snapshot, MortgageCriteria())
        self.assertEqual([s.code for s in result.chart_series], ["IUMBV34", "IUMBV42", "IUMTLMV"])
        self.assertEqual(result.as_of["IUMBEDR"], AS_OF)
        self.assertTrue(result.assumptions)


if __name__ == "__main__":
    unittest.main()
