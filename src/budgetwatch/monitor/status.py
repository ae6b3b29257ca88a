"""Budget status summary for display collaborators."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

from .evaluator import ordered_categories
from .models import BudgetConfig, LimitState, PeriodAggregate


@dataclass
class CategoryStatus:
    category: str
    spent: Decimal
    limit_state: LimitState
    limit: Optional[Decimal]
    percent_used: Optional[Decimal]
    level: str  # exceeded | warning | ok | unbudgeted


@dataclass
class BudgetStatus:
    period_start: datetime
    spent: Decimal
    budget: Decimal
    remaining: Decimal
    percent_used: Optional[Decimal]
    level: str  # exceeded | close | great | on_track | empty
    categories: List[CategoryStatus] = field(default_factory=list)


def _percent(spent: Decimal, limit: Decimal) -> Decimal:
    return (spent / limit * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def _overall_level(spent: Decimal, percent: Optional[Decimal]) -> str:
    if percent is None or spent == 0:
        return "empty"
    if percent >= 100:
        return "exceeded"
    if percent > 90:
        return "close"
    if percent <= 50:
        return "great"
    return "on_track"


def _category_level(state: LimitState, percent: Optional[Decimal]) -> str:
    if state is not LimitState.POSITIVE:
        return "unbudgeted"
    if percent >= 100:
        return "exceeded"
    if percent >= 80:
        return "warning"
    return "ok"


def summarize(aggregate: PeriodAggregate, budget: BudgetConfig, categories: Sequence[str] = ()) -> BudgetStatus:
    """Overall and per-category progress against the budget for one period."""
    spent = aggregate.overall_total
    percent = _percent(spent, budget.overall) if budget.overall > 0 else None

    lines = []
    for category in ordered_categories(categories, budget.per_category, aggregate.per_category_total):
        cat_spent = aggregate.per_category_total.get(category, Decimal("0"))
        state = budget.limit_state(category)
        limit = budget.category_limit(category)
        cat_percent = _percent(cat_spent, limit) if limit is not None else None
        lines.append(CategoryStatus(
            category=category,
            spent=cat_spent,
            limit_state=state,
            limit=budget.per_category.get(category),
            percent_used=cat_percent,
            level=_category_level(state, cat_percent)
        ))

    return BudgetStatus(
        period_start=aggregate.period_start,
        spent=spent,
        budget=budget.overall,
        remaining=budget.overall - spent,
        percent_used=percent,
        level=_overall_level(spent, percent),
        categories=lines
    )
