"""End-to-end flows: live products -> scoring engine -> recommendation (-> AI)."""
from __future__ import annotations

import structlog

from ..compare import credit_cards, mortgages, savings
from ..compare.recommendation import compose
from ..criteria import Criteria
from ..models import AiMeta, CompareResult, RecommendationResult
from . import ai_insights
from .container import ServiceContainer
from .live_data import get_live_products, history_months

log = structlog.get_logger()

ENGINES = {
    "mortgages": mortgages.score,
    "savings": savings.score,
    "credit-cards": credit_cards.score,
}

FRESH_NOTE = "Uses latest available source timestamps from current fetch."
STALE_NOTE = "Some source data could not be refreshed; showing the last cached values, which may be out of date."

DETERMINISTIC_REASON = "deterministic_recommendation"


async def build_live_compare(
    container: ServiceContainer,
    category: str,
    criteria: Criteria,
    skip_cache: bool = False,
) -> CompareResult:
    months = history_months(getattr(criteria, "horizon_months", None), container.cfg.default_history_months)
    products = await get_live_products(container, category, months=months, skip_cache=skip_cache)
    compare = ENGINES[category](products, criteria)
    if products.stale:
        compare = compare.model_copy(update={"stale": True})
    return compare


def _freshness_note(compare: CompareResult) -> str:
    return STALE_NOTE if compare.stale else FRESH_NOTE


def build_deterministic_recommendation(category: str, compare: CompareResult, criteria: Criteria) -> RecommendationResult:
    return RecommendationResult(
        category=category,
        recommendation=compose(category, compare, criteria),
        data_freshness_note=_freshness_note(compare),
        ai=AiMeta(used=False, fallback=True, reason=DETERMINISTIC_REASON),
        compare=compare,
    )


async def recommend(
    container: ServiceContainer,
    category: str,
    criteria: Criteria,
    use_ai: bool = True,
    skip_cache: bool = False,
) -> RecommendationResult:
    compare = await build_live_compare(container, category, criteria, skip_cache=skip_cache)
    result = build_deterministic_recommendation(category, compare, criteria)
    if not use_ai:
        return result

    outcome = await ai_insights.generate_recommendation(container.client, category, compare, criteria, container.cfg)
    if not outcome.ok:
        log.info("recommendation_ai_fallback", category=category, reason=outcome.reason)
        return result.model_copy(update={"ai": AiMeta(used=False, fallback=True, reason=outcome.reason)})

    merged = ai_insights.reconcile(category, result.recommendation, compare, outcome.value)
    return result.model_copy(
        update={"recommendation": merged, "ai": AiMeta(used=True, fallback=False, model=outcome.model)}
    )
