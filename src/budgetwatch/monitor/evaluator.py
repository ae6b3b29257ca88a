"""Threshold rules mapping period totals to alert candidates."""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence

from .models import AlertCandidate, BudgetConfig, PeriodAggregate, Severity
from budgetwatch.utils.logger import get_logger

logger = get_logger()

OVERALL_WARNING = "overall-80"
OVERALL_EXCEEDED = "overall-100"
PERFORMING_WELL = "performing-well"
SAVING_TIP = "saving-tip"


def category_exceeded_identity(category: str) -> str:
    return f"{category}-100"


@dataclass(frozen=True)
class ThresholdRules:
    """Ratios of the overall budget at which alerts trigger."""
    warning_ratio: Decimal = Decimal("0.80")
    exceeded_ratio: Decimal = Decimal("1.00")
    performing_well_ratio: Decimal = Decimal("0.70")
    saving_tip_ratio: Decimal = Decimal("0.75")
    performing_well_min_day: int = 14

    @classmethod
    def from_settings(cls, settings) -> "ThresholdRules":
        return cls(
            warning_ratio=settings.warning_ratio,
            exceeded_ratio=settings.exceeded_ratio,
            performing_well_ratio=settings.performing_well_ratio,
            saving_tip_ratio=settings.saving_tip_ratio,
            performing_well_min_day=settings.performing_well_min_day
        )


def ordered_categories(known: Sequence[str], *extra: Iterable[str]) -> List[str]:
    """Fixed category order: the enumerated set first, then others alphabetically."""
    seen = set(known)
    others = set()
    for names in extra:
        others.update(name for name in names if name not in seen)
    return list(known) + sorted(others)


def _percent(value: Decimal) -> str:
    return str((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _plain(amount: Decimal) -> str:
    return format(amount.normalize(), "f")


class ThresholdEvaluator:
    """Pure rule evaluation; never consults alert history."""

    def __init__(
        self,
        rules: Optional[ThresholdRules] = None,
        categories: Sequence[str] = (),
        currency_symbol: str = "$"
    ):
        self.rules = rules or ThresholdRules()
        self.categories = list(categories)
        self.currency = currency_symbol

    def evaluate(self, aggregate: PeriodAggregate, budget: BudgetConfig, day_of_period: int) -> List[AlertCandidate]:
        """
        Produce alert candidates in emission order.

        Args:
            aggregate: Totals of the current period
            budget: Limits in force for this evaluation
            day_of_period: Ordinal day within the period, starting at 1

        Returns:
            Ordered list of AlertCandidate
        """
        rules = self.rules
        total = aggregate.overall_total
        order = ordered_categories(self.categories, budget.per_category, aggregate.per_category_total)

        candidates = []
        ratio = total / budget.overall if budget.overall > 0 else None

        if ratio is not None:
            if rules.warning_ratio <= ratio < rules.exceeded_ratio:
                candidates.append(AlertCandidate(
                    identity=OVERALL_WARNING,
                    severity=Severity.WARNING,
                    title="⚠️ Budget Alert",
                    body=(
                        f"You've used {_percent(ratio)}% of your monthly budget "
                        f"({self._money(total)} of {self.currency}{_plain(budget.overall)})."
                    )
                ))

            if ratio >= rules.exceeded_ratio:
                candidates.append(AlertCandidate(
                    identity=OVERALL_EXCEEDED,
                    severity=Severity.WARNING,
                    title="🚨 Budget Exceeded",
                    body=(
                        f"You've exceeded your monthly budget! Spent {self._money(total)} "
                        f"of {self.currency}{_plain(budget.overall)}."
                    )
                ))

        for category in order:
            limit = budget.category_limit(category)
            if limit is None:
                continue
            spent = aggregate.per_category_total.get(category, Decimal("0"))
            if spent / limit >= rules.exceeded_ratio:
                candidates.append(AlertCandidate(
                    identity=category_exceeded_identity(category),
                    severity=Severity.WARNING,
                    title=f"💸 {category} Budget Exceeded",
                    body=(
                        f"You've spent {self._money(spent)} on {category}, "
                        f"exceeding your {self.currency}{_plain(limit)} budget."
                    )
                ))

        if ratio is not None:
            if (day_of_period >= rules.performing_well_min_day
                    and ratio < rules.performing_well_ratio and total > 0):
                candidates.append(AlertCandidate(
                    identity=PERFORMING_WELL,
                    severity=Severity.SUCCESS,
                    title="🎉 Great Job!",
                    body=(
                        f"You're doing amazing! You've only used {_percent(ratio)}% "
                        f"of your budget halfway through the month."
                    )
                ))

            if rules.saving_tip_ratio <= ratio < rules.warning_ratio:
                top = self._top_category(aggregate, order)
                if top is not None:
                    candidates.append(AlertCandidate(
                        identity=SAVING_TIP,
                        severity=Severity.INFO,
                        title="💡 Saving Tip",
                        body=(
                            f"You're approaching your budget limit. Consider reducing {top} "
                            f"spending ({self._money(aggregate.per_category_total[top])} this month)."
                        )
                    ))

        logger.debug(f"Evaluated thresholds: {[c.identity for c in candidates]}")
        return candidates

    @staticmethod
    def _top_category(aggregate: PeriodAggregate, order: Sequence[str]) -> Optional[str]:
        """Largest spending category; ties go to the earliest in order."""
        top = None
        for category in order:
            spent = aggregate.per_category_total.get(category)
            if spent is None:
                continue
            if top is None or spent > aggregate.per_category_total[top]:
                top = category
        return top

    def _money(self, amount: Decimal) -> str:
        return f"{self.currency}{amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"
