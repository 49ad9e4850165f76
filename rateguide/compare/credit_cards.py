"""Credit-card type ranking.

Six fixed archetypes are scored from spending, repayment behaviour and goal.
Revolving users get a hard override: debt-control types always rank first,
with score only breaking ties inside a priority tier.
"""
from dataclasses import dataclass

from ..criteria import CreditCardCriteria
from ..models import CompareOption, CompareResult, ProductsSnapshot
from ..utils import round2
from .shared import build_as_of, round1

REPRESENTATIVE_APR = 0.22
TOP_N = 5

DEBT_CONTROL = ("low-apr", "balance-transfer", "zero-percent-purchases")
EVERYDAY_CATEGORIES = ("groceries", "fuel/transport", "dining", "online shopping", "general")
REVOLVING_PRIORITY = {
    "balance-transfer": 3,
    "low-apr": 2,
    "zero-percent-purchases": 1,
}

ASSUMPTIONS = (
    "cashbackRate=1.0%, rewardsRate=0.8%, representativeAPR=22%",
    "estimatedAnnualRewards = monthlySpend * 12 * assumedRate",
    "estimatedAnnualInterestCost is illustrative and applies when revolving",
    "If not paid in full or debt is carried, debt-control card types are prioritized",
)


@dataclass(frozen=True)
class CardArchetype:
    id: str
    label: str
    reward_rate: float
    annual_fee: float
    interest_relief: float
    notes: str


@dataclass(frozen=True)
class ScoredCard:
    card: CardArchetype
    score: float
    annual_rewards: float
    annual_interest: float
    annual_net_value: float


def card_archetypes(top_categories) -> tuple[CardArchetype, ...]:
    travel_rate = 0.012 if "travel" in top_categories else 0.006
    return (
        CardArchetype("cashback", "Cashback", 0.01, 0, 0.05, "Simple return on everyday spending."),
        CardArchetype("rewards-points", "Rewards / Points", 0.008, 0, 0.05, "Useful if you redeem points efficiently."),
        CardArchetype("travel", "Travel", travel_rate, 60, 0.05, "Most valuable for travel-heavy spending."),
        CardArchetype("low-apr", "Low APR", 0.002, 0, 0.45, "Prioritizes lower interest when balances are carried."),
        CardArchetype("balance-transfer", "Balance Transfer", 0.0, 25, 0.7, "Helps reduce existing debt costs."),
        CardArchetype("zero-percent-purchases", "0% Purchases", 0.001, 0, 0.8, "Short-term cost control for planned spending."),
    )


def behavior_boost(revolving: bool, type_id: str) -> float:
    debt_focused = type_id in DEBT_CONTROL
    if revolving:
        return 28 if debt_focused else -18
    return -10 if debt_focused else 12


def goal_boost(primary_goal: str, type_id: str) -> float:
    if "interest" in primary_goal:
        return 24 if type_id in DEBT_CONTROL else -8
    if "travel" in primary_goal:
        if type_id == "travel":
            return 22
        if type_id == "rewards-points":
            return 8
        return -4
    if "simplicity" in primary_goal or "fees" in primary_goal:
        return {"cashback": 14, "low-apr": 8, "travel": -8}.get(type_id, 2)
    # maximize rewards
    return 18 if type_id in ("cashback", "rewards-points", "travel") else -8


def category_boost(top_categories, type_id: str) -> float:
    everyday = any(c in EVERYDAY_CATEGORIES for c in top_categories)
    if type_id == "travel" and "travel" in top_categories:
        return 14
    if type_id == "cashback" and everyday:
        return 8
    if type_id == "rewards-points" and everyday:
        return 6
    return 0


def rank_cards(criteria: CreditCardCriteria) -> list[ScoredCard]:
    annual_spend = criteria.monthly_spend * 12
    revolving = criteria.revolving
    baseline_interest = (criteria.carry_debt_amount or 0) * REPRESENTATIVE_APR if revolving else 0.0
    categories = criteria.top_categories

    scored = []
    for card in card_archetypes(categories):
        rewards = annual_spend * card.reward_rate
        interest = baseline_interest * (1 - card.interest_relief)
        net = rewards - interest - card.annual_fee
        total = (
            net / 10
            + behavior_boost(revolving, card.id)
            + goal_boost(criteria.primary_goal, card.id)
            + category_boost(categories, card.id)
        )
        scored.append(ScoredCard(card, total, rewards, interest, net))

    # stable sorts: equal scores keep archetype order
    scored.sort(key=lambda s: -s.score)
    if revolving:
        scored.sort(key=lambda s: (-REVOLVING_PRIORITY.get(s.card.id, 0), -s.score))
    return scored


def score(snapshot: ProductsSnapshot, criteria: CreditCardCriteria) -> CompareResult:
    options = tuple(
        CompareOption(
            id=s.card.id,
            label=s.card.label,
            metrics={
                "score": round1(s.score),
                "estimated_annual_value": round2(s.annual_net_value),
                "estimated_annual_rewards": round2(s.annual_rewards),
                "estimated_annual_interest_cost": round2(s.annual_interest),
                "assumed_annual_fee": s.card.annual_fee,
                "notes": s.card.notes,
            },
        )
        for s in rank_cards(criteria)[:TOP_N]
    )
    return CompareResult(
        category="credit-cards",
        as_of=build_as_of(snapshot),
        assumptions=ASSUMPTIONS,
        options=options,
        chart_series=(),
    )
