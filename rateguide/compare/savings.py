"""Savings comparison: nominal deposit rate against CPIH inflation."""
from ..criteria import SavingsCriteria
from ..errors import UpstreamDataError
from ..models import CompareOption, CompareResult, ProductsSnapshot
from ..providers.common import latest_month, take_last_months
from ..utils import round2
from .shared import build_as_of

SAVINGS_CODE = "CFMHSCV"
INFLATION_CODE = "CPIH_YOY"

ASSUMPTIONS = (
    "Real rate is approximated as nominal minus CPIH YoY",
    "Projection uses simple monthly compounding",
)


def projected_balance(deposit: float, nominal_pct: float, months: int) -> float:
    return deposit * (1 + nominal_pct / 100 / 12) ** months


def score(snapshot: ProductsSnapshot, criteria: SavingsCriteria) -> CompareResult:
    by_code = snapshot.by_code()
    savings = by_code.get(SAVINGS_CODE)
    inflation = by_code.get(INFLATION_CODE)
    if savings is None or inflation is None:
        raise UpstreamDataError("missing_savings_or_inflation_series")

    horizon = criteria.horizon_months
    savings_last = latest_month(savings.points)
    inflation_last = latest_month(inflation.points)
    # never extrapolate past the shorter series
    end_month = min(savings_last, inflation_last) if savings_last and inflation_last else None

    savings_window = take_last_months(savings.points, horizon, end_month)
    inflation_window = take_last_months(inflation.points, horizon, end_month)
    if not savings_window or not inflation_window:
        raise UpstreamDataError("missing_savings_or_inflation_window")

    nominal = savings_window[-1].value
    infl = inflation_window[-1].value
    option = CompareOption(
        id="market-average-sight-deposit",
        label="Market-average sight deposit",
        rate_pct=round2(nominal),
        metrics={
            "inflation_yoy_pct": round2(infl),
            "real_rate_pct": round2(nominal - infl),
            "projected_balance_est": round2(projected_balance(criteria.deposit, nominal, horizon)),
        },
    )
    return CompareResult(
        category="savings",
        as_of=build_as_of(snapshot),
        assumptions=ASSUMPTIONS,
        options=(option,),
        chart_series=(savings.with_points(savings_window), inflation.with_points(inflation_window)),
    )
