"""Per-category user criteria, validated once at the request boundary.

Raw criteria arrive as loose JSON (numbers as strings, "yes"/"no" flags,
comma-separated lists). ``parse_criteria`` turns them into one of the strict
models below or raises ``CriteriaError``.
"""
from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import CriteriaError

CARD_CATEGORIES = ("groceries", "fuel/transport", "travel", "dining", "online shopping", "general")
CARD_GOALS = ("minimize interest", "maximize rewards", "simplicity/no fees", "travel benefits")

_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0"}


def as_bool(value, default: bool | None = None):
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
    return default


def as_string_list(value) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return []


class _CriteriaBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel, extra="ignore")


class MortgageCriteria(_CriteriaBase):
    category: Literal["mortgages"] = "mortgages"
    loan_amount: float = Field(default=200000, ge=1000, le=5_000_000)
    term_years: float = Field(default=25, ge=1, le=40)
    horizon_months: int = Field(default=24, ge=1, le=360)
    ltv: float | None = Field(default=None, ge=0.05, le=1.2)
    risk_tolerance: str = "balanced"

    @field_validator("horizon_months", mode="before")
    @classmethod
    def _round_horizon(cls, v):
        return _round_number(v)

    @property
    def term_months(self) -> int:
        return int(round(self.term_years * 12))


class SavingsCriteria(_CriteriaBase):
    category: Literal["savings"] = "savings"
    deposit: float = Field(default=10000, ge=1, le=100_000_000)
    horizon_months: int = Field(default=12, ge=1, le=120)

    @field_validator("horizon_months", mode="before")
    @classmethod
    def _round_horizon(cls, v):
        return _round_number(v)


class CreditCardCriteria(_CriteriaBase):
    category: Literal["credit-cards"] = "credit-cards"
    monthly_spend: float = Field(default=1200, ge=0, le=1_000_000)
    pay_in_full_monthly: bool = True
    carry_debt: bool | None = None
    carry_debt_amount: float | None = Field(default=None, ge=0, le=10_000_000)
    top_categories: tuple[str, ...] = ("general",)
    primary_goal: str = "maximize rewards"

    @field_validator("pay_in_full_monthly", "carry_debt", mode="before")
    @classmethod
    def _lenient_bool(cls, v):
        if v is None:
            return None
        coerced = as_bool(v)
        if coerced is None:
            raise ValueError("must be a yes/no value")
        return coerced

    @field_validator("top_categories", mode="before")
    @classmethod
    def _known_categories(cls, v):
        picked = [c.lower() for c in as_string_list(v) if c.lower() in CARD_CATEGORIES]
        return tuple(picked) or ("general",)

    @field_validator("primary_goal", mode="before")
    @classmethod
    def _known_goal(cls, v):
        goal = str(v or "").strip().lower()
        return goal if goal in CARD_GOALS else "maximize rewards"

    @model_validator(mode="before")
    @classmethod
    def _fill_debt_defaults(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)

        def given(camel, snake):
            for key in (camel, snake):
                if key in data:
                    return True, data[key]
            return False, None

        has_debt, _ = given("carryDebt", "carry_debt")
        if not has_debt:
            _, pay_raw = given("payInFullMonthly", "pay_in_full_monthly")
            pays = True if pay_raw is None else as_bool(pay_raw)
            # unparseable flags are rejected by the field validator
            if pays is not None:
                data["carryDebt"] = not pays
        has_amount, _ = given("carryDebtAmount", "carry_debt_amount")
        if not has_amount:
            has_spend, spend = given("monthlySpend", "monthly_spend")
            data["carryDebtAmount"] = spend if has_spend else cls.model_fields["monthly_spend"].default
        return data

    @property
    def revolving(self) -> bool:
        return (not self.pay_in_full_monthly) or bool(self.carry_debt)


Criteria = Union[MortgageCriteria, SavingsCriteria, CreditCardCriteria]

_MODELS = {
    "mortgages": MortgageCriteria,
    "savings": SavingsCriteria,
    "credit-cards": CreditCardCriteria,
}


def _round_number(v):
    if isinstance(v, str):
        try:
            v = float(v.strip())
        except ValueError:
            return v
    if isinstance(v, float):
        return int(round(v))
    return v


def parse_criteria(category: str, raw: dict | None) -> Criteria:
    model = _MODELS.get(category)
    if model is None:
        raise CriteriaError(f"unknown category: {category}", field="category")
    data = {k: v for k, v in (raw or {}).items() if v is not None and v != ""}
    data.pop("category", None)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        err = exc.errors()[0]
        field = ".".join(str(p) for p in err.get("loc", ())) or None
        raise CriteriaError(f"{field}: {err.get('msg')}" if field else str(err.get("msg")), field=field) from exc
