"""Deterministic recommendation built from a ranked comparison.

Every string here is a template over the comparison and the criteria, so the
same inputs always produce the same recommendation.
"""
from ..criteria import Criteria, CreditCardCriteria, MortgageCriteria, SavingsCriteria
from ..models import CompareOption, CompareResult, Recommendation

NO_RECOMMENDATION = "No recommendation"

COST_METRICS = ("interest_cost_over_horizon_est", "est_annual_interest_cost")


def _cost(option: CompareOption) -> float:
    for key in COST_METRICS:
        value = option.metrics.get(key)
        if isinstance(value, (int, float)):
            return float(value)
    return 0.0


def ranked_options(category: str, compare: CompareResult) -> list[CompareOption]:
    """Card order is already policy-sorted; loans and savings rank cheapest first."""
    if category == "credit-cards":
        return list(compare.options)
    return sorted(compare.options, key=_cost)


def _money(value) -> str:
    return f"£{float(value):,.2f}" if isinstance(value, (int, float)) else "n/a"


def _pct(value) -> str:
    return f"{float(value):.2f}%" if isinstance(value, (int, float)) else "n/a"


def _summary(category: str, primary: str, criteria: Criteria) -> str:
    if category == "mortgages" and isinstance(criteria, MortgageCriteria) and "certainty" in criteria.risk_tolerance.lower():
        return f"Given your certainty preference and current spreads, {primary} is likely the safer option."
    if category == "savings":
        return f"Savings rates are best interpreted against inflation, and {primary} currently balances return and access."
    if category == "credit-cards":
        return f"Based on your payment behavior and spending mix, {primary} is the most suitable card type right now."
    return f"Based on the latest market data, {primary} is currently the strongest fit."


def _forecast(category: str, criteria: Criteria) -> str:
    if category == "mortgages":
        return (
            "If the base rate stays elevated over the next 6-12 months, fixed options are likely "
            "to remain more predictable for monthly budgeting."
        )
    if category == "savings":
        return "If inflation cools faster than savings rates, real returns may improve over the next 6-12 months."
    if isinstance(criteria, CreditCardCriteria) and not criteria.revolving:
        return "If you keep paying in full every month, rewards-focused types should keep returning more than they cost."
    return "If you continue carrying balances, low-APR types are likely to stay more cost-effective than rewards-focused cards."


def _metric_factors(category: str, top: CompareOption | None, criteria: Criteria) -> list[str]:
    if top is None:
        return []
    m = top.metrics
    if category == "mortgages":
        horizon = criteria.horizon_months if isinstance(criteria, MortgageCriteria) else None
        factors = [f"{top.label} at {_pct(top.rate_pct)} costs about {_money(m.get('monthly_payment_est'))} per month"]
        if horizon:
            factors.append(
                f"Estimated interest over {horizon} months: {_money(m.get('interest_cost_over_horizon_est'))}"
            )
        return factors
    if category == "savings":
        horizon = criteria.horizon_months if isinstance(criteria, SavingsCriteria) else None
        factors = [
            f"Nominal rate {_pct(top.rate_pct)} against CPIH inflation {_pct(m.get('inflation_yoy_pct'))} "
            f"gives a real rate of {_pct(m.get('real_rate_pct'))}"
        ]
        if horizon:
            factors.append(f"Projected balance after {horizon} months: {_money(m.get('projected_balance_est'))}")
        return factors
    return [
        f"{top.label} scores {m.get('score')} with an estimated annual value of {_money(m.get('estimated_annual_value'))}"
    ]


def _whats_changes(category: str) -> tuple[str, ...]:
    if category == "credit-cards":
        return (
            "Switching between paying in full and carrying a balance",
            "A different primary goal or spending mix",
        )
    return (
        "Material shift in base rate path or inflation trend",
        "Different user preferences or time horizon",
    )


def compose(category: str, compare: CompareResult, criteria: Criteria) -> Recommendation:
    ranked = ranked_options(category, compare)
    top = ranked[0] if ranked else None
    second = ranked[1] if len(ranked) > 1 else top
    primary = top.label if top else NO_RECOMMENDATION
    alternative = second.label if second else primary

    key_factors = _metric_factors(category, top, criteria) + [
        "Based on latest available BoE/ONS series",
        "Compared with deterministic spending, debt, and goal-based scoring"
        if category == "credit-cards"
        else "Compared using deterministic, transparent assumptions",
    ]
    return Recommendation(
        short_summary=_summary(category, primary, criteria),
        primary_choice=primary,
        alternative_choice=alternative,
        confidence="medium",
        forecast=_forecast(category, criteria),
        key_factors=tuple(key_factors),
        tradeoffs=(
            "Outcome is sensitive to future rate/inflation changes",
            "Figures are estimates and not provider-specific offers",
        ),
        what_would_change=_whats_changes(category),
        action_checklist=(
            "Review the top two options side by side in the comparison table",
            "Adjust your horizon or risk preference and re-run the scenario",
            "Use the trend chart to confirm whether current conditions are changing",
        ),
    )
