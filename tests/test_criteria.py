import unittest

from pydantic import ValidationError

from rateguide.criteria import CreditCardCriteria, MortgageCriteria, SavingsCriteria, parse_criteria
from rateguide.errors import CriteriaError


class ParseCriteriaTests(unittest.TestCase):
    def test_defaults(self):
        m = parse_criteria("mortgages", {})
        self.assertIsInstance(m, MortgageCriteria)
        self.assertEqual((m.loan_amount, m.term_months, m.horizon_months), (200000, 300, 24))
        s = parse_criteria("savings", None)
        self.assertIsInstance(s, SavingsCriteria)
        self.assertEqual((s.deposit, s.horizon_months), (10000, 12))

    def test_numeric_strings_and_camel_case(self):
        m = parse_criteria("mortgages", {"loanAmount": "250000", "termYears": "30", "horizonMonths": "17.6"})
        self.assertEqual(m.loan_amount, 250000)
        self.assertEqual(m.term_months, 360)
        self.assertEqual(m.horizon_months, 18)

    def test_ranges_rejected(self):
        cases = [
            ("mortgages", {"loanAmount": 500}, "loan_amount"),
            ("mortgages", {"ltv": 1.5}, "ltv"),
            ("mortgages", {"horizonMonths": 0}, "horizon_months"),
            ("savings", {"horizonMonths": 121}, "horizon_months"),
            ("savings", {"deposit": 0}, "deposit"),
            ("credit-cards", {"monthlySpend": -1}, "monthly_spend"),
            ("credit-cards", {"carryDebtAmount": 20_000_000}, "carry_debt_amount"),
        ]
        for category, raw, field in cases:
            with self.assertRaises(CriteriaError) as ctx:
                parse_criteria(category, raw)
            self.assertEqual(ctx.exception.code, "invalid_criteria")
            self.assertIn(ctx.exception.field, (field, "".join(w.title() if i else w for i, w in enumerate(field.split("_")))))

    def test_card_derived_defaults(self):
        c = parse_criteria("credit-cards", {"monthlySpend": "800", "payInFullMonthly": "no"})
        self.assertIsInstance(c, CreditCardCriteria)
        self.assertFalse(c.pay_in_full_monthly)
        self.assertTrue(c.carry_debt)
        self.assertEqual(c.carry_debt_amount, 800)
        self.assertTrue(c.revolving)

    def test_card_debt_defaults_derived_before_freeze(self):
        c = CreditCardCriteria(monthly_spend=500, pay_in_full_monthly=False)
        self.assertTrue(c.carry_debt)
        self.assertEqual(c.carry_debt_amount, 500)
        c = parse_criteria("credit-cards", {"payInFullMonthly": "no", "carryDebt": "no", "carryDebtAmount": 50})
        self.assertFalse(c.carry_debt)
        self.assertEqual(c.carry_debt_amount, 50)
        c = parse_criteria("credit-cards", {})
        self.assertFalse(c.carry_debt)
        self.assertEqual(c.carry_debt_amount, 1200)
        with self.assertRaises(ValidationError):
            c.carry_debt = True

    def test_card_lists_and_goal(self):
        c = parse_criteria("credit-cards", {"topCategories": "Travel, dining, crypto", "primaryGoal": "get rich"})
        self.assertEqual(c.top_categories, ("travel", "dining"))
        self.assertEqual(c.primary_goal, "maximize rewards")
        c = parse_criteria("credit-cards", {"topCategories": ["crypto"], "primaryGoal": "Minimize Interest"})
        self.assertEqual(c.top_categories, ("general",))
        self.assertEqual(c.primary_goal, "minimize interest")
        self.assertFalse(c.revolving)

    def test_bad_bool(self):
        with self.assertRaises(CriteriaError):
            parse_criteria("credit-cards", {"payInFullMonthly": "sometimes"})

    def test_unknown_category(self):
        with self.assertRaises(CriteriaError):
            parse_criteria("loans", {})


if __name__ == "__main__":
    unittest.main()
