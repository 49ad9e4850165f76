"""Fixed-payment amortization comparison across BoE mortgage rate series."""
from ..criteria import MortgageCriteria
from ..models import CompareOption, CompareResult, ProductsSnapshot
from ..utils import round2
from .shared import build_as_of, latest_value

CANDIDATES = (
    ("IUMBV34", "2y fixed"),
    ("IUMBV37", "3y fixed"),
    ("IUMBV42", "5y fixed"),
    ("IUMTLMV", "revert-to-rate"),
)
VARIABLE_CODE = "IUMTLMV"
CHART_CODES = ("IUMBV34", "IUMBV42", "IUMTLMV")

ASSUMPTIONS = (
    "Monthly payment uses standard amortization",
    "Term defaults to 25 years when not provided",
    "Month-end series values use the last available point in month",
)


def monthly_payment(principal: float, annual_rate_pct: float, term_months: int) -> float:
    r = annual_rate_pct / 100 / 12
    if r == 0:
        return principal / term_months
    growth = (1 + r) ** term_months
    return principal * r * growth / (growth - 1)


def balance_after(principal: float, annual_rate_pct: float, term_months: int, paid_months: int) -> float:
    r = annual_rate_pct / 100 / 12
    payment = monthly_payment(principal, annual_rate_pct, term_months)
    if r == 0:
        return max(0.0, principal - payment * paid_months)
    growth = (1 + r) ** paid_months
    return principal * growth - payment * (growth - 1) / r


def _option_id(label: str) -> str:
    return "-".join(label.split()).lower()


def score(snapshot: ProductsSnapshot, criteria: MortgageCriteria) -> CompareResult:
    principal = criteria.loan_amount
    term_months = max(1, criteria.term_months)
    months_paid = min(criteria.horizon_months, term_months)
    by_code = snapshot.by_code()

    options = []
    for code, label in CANDIDATES:
        series = by_code.get(code)
        if series is None:
            continue
        rate = latest_value(series)
        payment = monthly_payment(principal, rate, term_months)
        balance = balance_after(principal, rate, term_months, months_paid)
        principal_paid = principal - balance
        interest = payment * months_paid - principal_paid

        metrics = {
            "monthly_payment_est": round2(payment),
            "interest_cost_over_horizon_est": round2(interest),
        }
        if code == VARIABLE_CODE:
            metrics["payment_if_plus_1pct"] = round2(monthly_payment(principal, rate + 1, term_months))
        options.append(CompareOption(id=_option_id(label), label=label, rate_pct=round2(rate), metrics=metrics))

    return CompareResult(
        category="mortgages",
        as_of=build_as_of(snapshot),
        assumptions=ASSUMPTIONS,
        options=tuple(options),
        chart_series=tuple(by_code[c] for c in CHART_CODES if c in by_code),
    )
