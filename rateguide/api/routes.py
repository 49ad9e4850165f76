import json
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from .schemas import CacheInvalidateResponse, CompareRequest, HealthResponse, RecommendationRequest
from ..criteria import parse_criteria
from ..errors import CriteriaError, InvalidCategoryError
from ..models import CATEGORIES
from ..providers.common import SeriesWindow
from ..services.compare_service import build_live_compare, recommend
from ..services.container import ServiceContainer
from ..services.live_data import get_live_products

router = APIRouter()


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def _category(raw: str) -> str:
    category = (raw or "").strip().lower()
    if category not in CATEGORIES:
        raise InvalidCategoryError(raw)
    return category


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.get(
    '/health',
    response_model=HealthResponse,
    summary="Health check",
    description="Returns service status, cache mode and whether AI narration is configured.",
    tags=["Health"],
)
def health(container: ServiceContainer = Depends(get_container)):
    return HealthResponse(
        ok=True,
        cache="enabled" if container.cache is not None else "disabled",
        ai_configured=bool((container.cfg.gemini_api_key or "").strip()),
    )


@router.get(
    '/products/{category}',
    summary="Market series for a category",
    description=(
        "Normalized monthly BoE/ONS series for mortgages or savings. "
        "Credit cards return an empty series list."
    ),
    tags=["Products"],
)
async def products(
    category: str,
    from_date: Optional[date] = Query(default=None, alias="from"),
    to_date: Optional[date] = Query(default=None, alias="to"),
    horizon_months: Optional[int] = Query(default=None, alias="horizonMonths", ge=1, le=360),
    skip_cache: bool = Query(default=False, alias="skipCache"),
    container: ServiceContainer = Depends(get_container),
):
    category = _category(category)
    if from_date and to_date and from_date > to_date:
        raise CriteriaError("from must be <= to", field="from")
    window = SeriesWindow(from_date=from_date, to_date=to_date, months=horizon_months)
    snapshot = await get_live_products(container, category, window, months=horizon_months, skip_cache=skip_cache)
    return _dump(snapshot)


@router.post(
    '/compare',
    summary="Compare options",
    description="Scores the category's options against the criteria with deterministic engines.",
    tags=["Compare"],
)
async def compare(req: CompareRequest, container: ServiceContainer = Depends(get_container)):
    category = _category(req.category)
    criteria = parse_criteria(category, req.criteria)
    result = await build_live_compare(container, category, criteria, skip_cache=req.skip_cache)
    return _dump(result)


@router.post(
    '/recommendations',
    summary="Recommendation",
    description="Deterministic recommendation, optionally narrated by the AI model.",
    tags=["Recommendations"],
)
async def recommendations(req: RecommendationRequest, container: ServiceContainer = Depends(get_container)):
    category = _category(req.category)
    criteria = parse_criteria(category, req.criteria)
    result = await recommend(container, category, criteria, use_ai=req.use_ai, skip_cache=req.skip_cache)
    return _dump(result)


@router.get(
    '/recommendations',
    summary="Recommendation (query form)",
    description="Same as POST /recommendations with criteria passed as a JSON query parameter.",
    tags=["Recommendations"],
)
async def recommendations_query(
    category: str,
    criteria: str = "{}",
    use_ai: bool = Query(default=True, alias="useAi"),
    skip_cache: bool = Query(default=False, alias="skipCache"),
    container: ServiceContainer = Depends(get_container),
):
    category = _category(category)
    try:
        raw = json.loads(criteria or "{}")
    except ValueError:
        raise CriteriaError("criteria must be a JSON object", field="criteria")
    if not isinstance(raw, dict):
        raise CriteriaError("criteria must be a JSON object", field="criteria")
    parsed = parse_criteria(category, raw)
    result = await recommend(container, category, parsed, use_ai=use_ai, skip_cache=skip_cache)
    return _dump(result)


@router.post(
    '/cache/invalidate',
    response_model=CacheInvalidateResponse,
    summary="Cache admin",
    description="Deletes every cached upstream payload.",
    tags=["Admin"],
)
async def cache_invalidate(container: ServiceContainer = Depends(get_container)):
    if container.cache is None:
        return CacheInvalidateResponse(ok=True, cleared=0, enabled=False)
    cleared = await container.cache.invalidate_all()
    return CacheInvalidateResponse(ok=True, cleared=cleared, enabled=True)
