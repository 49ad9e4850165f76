"""AI narrative for a deterministic recommendation, via the Gemini REST API.

The model only rewrites the explanation. Rankings, labels and numbers come
from the scoring engines; anything the model says that contradicts them is
discarded in ``reconcile``.
"""
from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass, field

import httpx
import structlog

from ..config import Settings, settings
from ..criteria import Criteria
from ..models import CompareResult, Recommendation

log = structlog.get_logger()

MAX_LIST_ITEMS = 6
RECENT_CHART_POINTS = 6

CARD_PROMPT_TEMPLATE = """\
You are a UK personal finance explainer for credit card type selection.
Do not decide ranking. Ranking is deterministic and final.
Use only provided numbers and profile. Do not invent data.
Tone: practical and plain language, no financial advice.
Return JSON only (no markdown).

Category: credit-cards
UserProfile: {profile}
DeterministicRanking: {ranking}
Assumptions: {assumptions}

JSON schema:
{{
  "recommendationShort": "1-2 sentence summary aligned with top deterministic type label",
  "primaryChoice": "must match deterministic top type label",
  "nextBestAlternative": "must match deterministic second type label",
  "confidence": "low|medium|high",
  "forecastMessage": "2-3 sentence scenario note for next 6-12 months",
  "keyFactors": ["2-4 short bullets tied to profile + ranking numbers"],
  "tradeoffs": ["2-4 short bullets"],
  "whatWouldChange": ["2-4 short bullets including a pay-in-full vs revolving what-if"],
  "actionChecklist": ["2-4 short practical actions"]
}}
"""

GENERIC_PROMPT_TEMPLATE = """\
You are a UK personal finance decision assistant.
Use ONLY the provided deterministic metrics and trends. Do not invent numbers.
The options are already ranked. Do not alter the ranking.
Return JSON only (no markdown).

Category: {category}
Criteria: {criteria}
CompareData: {compare}

JSON schema:
{{
  "recommendationShort": "1-2 sentence plain-English summary",
  "primaryChoice": "string matching an option label",
  "nextBestAlternative": "string matching another option label",
  "confidence": "low|medium|high",
  "forecastMessage": "2-3 sentence scenario-based 6-12 month outlook",
  "keyFactors": ["2-4 short bullets"],
  "tradeoffs": ["2-4 short bullets"],
  "whatWouldChange": ["2-4 short bullets"],
  "actionChecklist": ["2-4 short action steps for the user"]
}}
"""


_FENCED_JSON = re.compile(r"```json\s*(.*?)```", re.IGNORECASE | re.DOTALL)


class AiResponseError(Exception):
    """Model answered, but not with a usable recommendation."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass(frozen=True)
class ModelRecommendation:
    recommendation_short: str
    primary_choice: str
    next_best_alternative: str
    confidence: str
    forecast_message: str
    key_factors: tuple[str, ...]
    tradeoffs: tuple[str, ...] = ()
    what_would_change: tuple[str, ...] = ()
    action_checklist: tuple[str, ...] = ()


@dataclass(frozen=True)
class AiSuccess:
    value: ModelRecommendation
    model: str
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class AiFailure:
    reason: str
    ok: bool = field(default=False, init=False)


@dataclass(frozen=True)
class CallVariant:
    model: str
    api_version: str
    json_mime: bool


def _dumps(value) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _card_prompt(compare: CompareResult, criteria: Criteria) -> str:
    profile = criteria.model_dump(mode="json", by_alias=True, exclude={"category"})
    ranking = [
        {
            "type": o.label,
            "score": o.metrics.get("score"),
            "estimatedAnnualValue": o.metrics.get("estimated_annual_value"),
            "estimatedAnnualRewards": o.metrics.get("estimated_annual_rewards"),
            "estimatedAnnualInterestCost": o.metrics.get("estimated_annual_interest_cost"),
            "assumedAnnualFee": o.metrics.get("assumed_annual_fee"),
            "notes": o.metrics.get("notes"),
        }
        for o in compare.options[:5]
    ]
    return CARD_PROMPT_TEMPLATE.format(
        profile=_dumps(profile),
        ranking=_dumps(ranking),
        assumptions=_dumps(list(compare.assumptions)),
    )


def _generic_prompt(category: str, compare: CompareResult, criteria: Criteria) -> str:
    data = {
        "options": [o.model_dump(mode="json", by_alias=True) for o in compare.options],
        "assumptions": list(compare.assumptions),
        "asOf": dict(compare.as_of),
        "recentTrends": {
            s.code: [p.model_dump(mode="json") for p in s.points[-RECENT_CHART_POINTS:]]
            for s in compare.chart_series
        },
    }
    return GENERIC_PROMPT_TEMPLATE.format(
        category=category,
        criteria=_dumps(criteria.model_dump(mode="json", by_alias=True, exclude={"category"})),
        compare=_dumps(data),
    )


def build_prompt(category: str, compare: CompareResult, criteria: Criteria) -> str:
    if category == "credit-cards":
        return _card_prompt(compare, criteria)
    return _generic_prompt(category, compare, criteria)


def parse_model_json(text: str):
    """Direct JSON, then a fenced ```json block, then the outermost brace span."""
    text = text if isinstance(text, str) else _dumps(text)
    try:
        return json.loads(text.strip())
    except ValueError:
        pass

    fenced = _FENCED_JSON.search(text)
    if fenced:
        try:
            return json.loads(fenced.group(1))
        except ValueError as exc:
            raise AiResponseError("ai_non_json_response") from exc

    first, last = text.find("{"), text.rfind("}")
    if first >= 0 and last > first:
        try:
            return json.loads(text[first:last + 1])
        except ValueError as exc:
            raise AiResponseError("ai_non_json_response") from exc
    raise AiResponseError("ai_non_json_response")


def _text(value) -> str:
    return str(value).strip() if value is not None else ""


def _text_list(value) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    items = [_text(v) for v in value]
    return tuple(v for v in items if v)[:MAX_LIST_ITEMS]


def _confidence(value) -> str:
    v = _text(value).lower()
    return v if v in ("low", "high") else "medium"


def normalize_model_recommendation(obj) -> ModelRecommendation:
    if not isinstance(obj, dict):
        raise AiResponseError("ai_missing_required_fields")
    short = _text(obj.get("recommendationShort"))
    primary = _text(obj.get("primaryChoice"))
    forecast = _text(obj.get("forecastMessage"))
    key_factors = _text_list(obj.get("keyFactors"))
    if not short or not primary or not forecast or not key_factors:
        raise AiResponseError("ai_missing_required_fields")
    return ModelRecommendation(
        recommendation_short=short,
        primary_choice=primary,
        next_best_alternative=_text(obj.get("nextBestAlternative")) or primary,
        confidence=_confidence(obj.get("confidence")),
        forecast_message=forecast,
        key_factors=key_factors,
        tradeoffs=_text_list(obj.get("tradeoffs")),
        what_would_change=_text_list(obj.get("whatWouldChange")),
        action_checklist=_text_list(obj.get("actionChecklist")),
    )


def reconcile(
    category: str,
    deterministic: Recommendation,
    compare: CompareResult,
    ai: ModelRecommendation,
) -> Recommendation:
    """Merge model narrative into the deterministic recommendation.

    Choices survive only when they name an existing option label exactly.
    Credit-card choices always stay deterministic.
    """
    labels = {o.label for o in compare.options}
    if category == "credit-cards":
        primary = deterministic.primary_choice
        alternative = deterministic.alternative_choice
    else:
        primary = ai.primary_choice if ai.primary_choice in labels else deterministic.primary_choice
        alternative = (
            ai.next_best_alternative
            if ai.next_best_alternative in labels
            else deterministic.alternative_choice
        )
    return deterministic.model_copy(
        update={
            "short_summary": ai.recommendation_short,
            "primary_choice": primary,
            "alternative_choice": alternative,
            "confidence": ai.confidence,
            "forecast": ai.forecast_message,
            "key_factors": ai.key_factors,
            "tradeoffs": ai.tradeoffs or deterministic.tradeoffs,
            "what_would_change": ai.what_would_change or deterministic.what_would_change,
            "action_checklist": ai.action_checklist or deterministic.action_checklist,
        }
    )


def call_variants(cfg: Settings) -> list[CallVariant]:
    variants = [
        CallVariant(cfg.gemini_model, "v1beta", True),
        CallVariant(cfg.gemini_fallback_model, "v1beta", True),
        CallVariant(cfg.gemini_model, "v1", False),
    ]
    return variants[: max(1, cfg.gemini_max_attempts)]


async def _call_model(client: httpx.AsyncClient, variant: CallVariant, prompt: str, cfg: Settings) -> str:
    url = f"{cfg.gemini_base_url.rstrip('/')}/{variant.api_version}/models/{variant.model}:generateContent"
    generation_config = {"temperature": cfg.gemini_temperature}
    if variant.json_mime:
        generation_config["responseMimeType"] = "application/json"
    res = await client.post(
        url,
        params={"key": cfg.gemini_api_key},
        json={"generationConfig": generation_config, "contents": [{"parts": [{"text": prompt}]}]},
    )
    res.raise_for_status()
    try:
        payload = res.json()
    except ValueError as exc:
        raise AiResponseError("ai_invalid_envelope") from exc
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise AiResponseError("ai_empty_response") from exc
    if not isinstance(text, str) or not text.strip():
        raise AiResponseError("ai_empty_response")
    return text


async def generate_recommendation(
    client: httpx.AsyncClient,
    category: str,
    compare: CompareResult,
    criteria: Criteria,
    cfg: Settings | None = None,
) -> AiSuccess | AiFailure:
    """Ask the model for a narrative. Never raises for upstream problems.

    Returns AiFailure with a public reason; the underlying detail is only logged.
    """
    cfg = cfg or settings
    api_key = (cfg.gemini_api_key or "").strip()
    if not api_key:
        return AiFailure("ai_not_configured")

    prompt = build_prompt(category, compare, criteria)
    reason = "ai_unavailable"
    for attempt, variant in enumerate(call_variants(cfg)):
        try:
            text = await asyncio.wait_for(
                _call_model(client, variant, prompt, cfg),
                timeout=cfg.gemini_timeout_seconds,
            )
            value = normalize_model_recommendation(parse_model_json(text))
            log.info("ai_recommendation_ok", category=category, model=variant.model, attempt=attempt)
            return AiSuccess(value=value, model=variant.model)
        except asyncio.TimeoutError:
            log.error("ai_recommendation_timeout", model=variant.model, attempt=attempt,
                      timeout_seconds=cfg.gemini_timeout_seconds)
            return AiFailure("ai_timeout")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            log.error("ai_recommendation_http_error", model=variant.model, attempt=attempt, status=status)
            if status == 429:
                return AiFailure("ai_unavailable")
            reason = "ai_unavailable" if status >= 500 else "ai_request_error"
        except httpx.TransportError as e:
            log.error("ai_recommendation_transport_error", model=variant.model, attempt=attempt,
                      error=type(e).__name__)
            reason = "ai_request_error"
        except AiResponseError as e:
            log.error("ai_recommendation_invalid", model=variant.model, attempt=attempt, code=e.code)
            reason = "ai_unavailable"
    return AiFailure(reason)
