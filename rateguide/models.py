"""Domain types shared by the normalizer, the scoring engines and the API.

All models are frozen and serialize with camelCase aliases
(``model_dump(by_alias=True)``); construction accepts either spelling.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Category = Literal["mortgages", "savings", "credit-cards"]
CATEGORIES: tuple[str, ...] = ("mortgages", "savings", "credit-cards")
Confidence = Literal["low", "medium", "high"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class SeriesPoint(_Frozen):
    month: str
    value: float


class SeriesItem(_Frozen):
    code: str
    label: str
    unit: str = "percent"
    as_of: str
    points: tuple[SeriesPoint, ...] = ()

    def latest(self) -> SeriesPoint | None:
        return self.points[-1] if self.points else None

    def with_points(self, points) -> "SeriesItem":
        return self.model_copy(update={"points": tuple(points)})


class ProductsSnapshot(_Frozen):
    category: Category
    series: tuple[SeriesItem, ...] = ()
    stale: bool = False

    def by_code(self) -> dict[str, SeriesItem]:
        return {s.code: s for s in self.series}


class CompareOption(_Frozen):
    id: str
    label: str
    rate_pct: float | None = None
    metrics: dict[str, float | str] = Field(default_factory=dict)


class CompareResult(_Frozen):
    category: Category
    as_of: dict[str, str] = Field(default_factory=dict)
    assumptions: tuple[str, ...] = ()
    options: tuple[CompareOption, ...] = ()
    chart_series: tuple[SeriesItem, ...] = ()
    stale: bool | None = None


class Recommendation(_Frozen):
    short_summary: str
    primary_choice: str
    alternative_choice: str
    confidence: Confidence = "medium"
    forecast: str
    key_factors: tuple[str, ...] = ()
    tradeoffs: tuple[str, ...] = ()
    what_would_change: tuple[str, ...] = ()
    action_checklist: tuple[str, ...] = ()


class AiMeta(_Frozen):
    used: bool
    fallback: bool
    model: str | None = None
    reason: str | None = None


class RecommendationResult(_Frozen):
    category: Category
    recommendation: Recommendation
    disclaimer: str = "Educational, not financial advice."
    data_freshness_note: str
    ai: AiMeta
    compare: CompareResult
