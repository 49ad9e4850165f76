import unittest

from rateguide.compare.recommendation import NO_RECOMMENDATION, compose, ranked_options
from rateguide.criteria import CreditCardCriteria, MortgageCriteria, SavingsCriteria
from rateguide.models import CompareOption, CompareResult


def _mortgage_compare():
    return CompareResult(
        category="mortgages",
        options=(
            CompareOption(id="2y-fixed", label="2y fixed", rate_pct=5.0,
                          metrics={"monthly_payment_est": 1169.18, "interest_cost_over_horizon_est": 19500.0}),
            CompareOption(id="5y-fixed", label="5y fixed", rate_pct=4.5,
                          metrics={"monthly_payment_est": 1111.66, "interest_cost_over_horizon_est": 17500.0}),
            CompareOption(id="revert-to-rate", label="revert-to-rate", rate_pct=7.25,
                          metrics={"monthly_payment_est": 1445.0, "interest_cost_over_horizon_est": 28500.0}),
        ),
    )


class ComposeTests(unittest.TestCase):
    def test_cheapest_option_is_primary(self):
        rec = compose("mortgages", _mortgage_compare(), MortgageCriteria())
        self.assertEqual(rec.primary_choice, "5y fixed")
        self.assertEqual(rec.alternative_choice, "2y fixed")
        self.assertEqual(rec.confidence, "medium")
        self.assertTrue(rec.short_summary.startswith("Based on the latest market data, 5y fixed"))

    def test_certainty_preference_summary(self):
        rec = compose("mortgages", _mortgage_compare(), MortgageCriteria(risk_tolerance="prefer certainty"))
        self.assertEqual(
            rec.short_summary,
            "Given your certainty preference and current spreads, 5y fixed is likely the safer option.",
        )

    def test_card_order_is_authoritative(self):
        compare = CompareResult(
            category="credit-cards",
            options=(
                CompareOption(id="balance-transfer", label="Balance Transfer",
                              metrics={"score": 40.0, "estimated_annual_interest_cost": 500.0}),
                CompareOption(id="low-apr", label="Low APR",
                              metrics={"score": 30.0, "estimated_annual_interest_cost": 100.0}),
            ),
        )
        self.assertEqual([o.id for o in ranked_options("credit-cards", compare)], ["balance-transfer", "low-apr"])
        rec = compose("credit-cards", compare, CreditCardCriteria(pay_in_full_monthly=False))
        self.assertEqual(rec.primary_choice, "Balance Transfer")
        self.assertIn("low-APR", rec.forecast)

    def test_single_and_no_options(self):
        single = CompareResult(
            category="savings",
            options=(CompareOption(id="market-average-sight-deposit", label="Market-average sight deposit",
                                   rate_pct=3.0, metrics={"inflation_yoy_pct": 2.5, "real_rate_pct": 0.5,
                                                          "projected_balance_est": 10075.19}),),
        )
        rec = compose("savings", single, SavingsCriteria())
        self.assertEqual(rec.primary_choice, rec.alternative_choice)
        self.assertTrue(any("£10,075.19" in f for f in rec.key_factors))

        empty = compose("savings", CompareResult(category="savings"), SavingsCriteria())
        self.assertEqual(empty.primary_choice, NO_RECOMMENDATION)
        self.assertEqual(empty.alternative_choice, NO_RECOMMENDATION)

    def test_equal_costs_keep_engine_order(self):
        compare = CompareResult(
            category="mortgages",
            options=(
                CompareOption(id="a", label="A", metrics={"interest_cost_over_horizon_est": 10.0}),
                CompareOption(id="b", label="B", metrics={"interest_cost_over_horizon_est": 10.0}),
            ),
        )
        self.assertEqual([o.id for o in ranked_options("mortgages", compare)], ["a", "b"])

    def test_deterministic_output(self):
        compare, criteria = _mortgage_compare(), MortgageCriteria(horizon_months=36)
        first = compose("mortgages", compare, criteria).model_dump_json(by_alias=True)
        second = compose("mortgages", compare, criteria).model_dump_json(by_alias=True)
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
