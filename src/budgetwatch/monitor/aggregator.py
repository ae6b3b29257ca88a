"""Expense aggregation module."""
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from .clock import PeriodClock
from .models import Expense, PeriodAggregate
from budgetwatch.utils.logger import get_logger

logger = get_logger()


class Aggregator:
    """Aggregates expenses of the current period overall and by category."""

    def __init__(self, clock: Optional[PeriodClock] = None):
        self.clock = clock or PeriodClock()

    def aggregate(self, expenses: Iterable[Expense], now: Optional[datetime] = None) -> PeriodAggregate:
        """
        Sum expenses dated within the period containing now.

        Args:
            expenses: Expense snapshot, in any order
            now: Reference time (defaults to the clock's wall time)

        Returns:
            PeriodAggregate; zero totals when nothing falls in the period
        """
        now = now or self.clock.now()
        period_start = self.clock.current_period_start(now)
        period_end = self.clock.next_period_start(now)

        overall = Decimal("0")
        totals = defaultdict(Decimal)
        counted = 0
        for expense in expenses:
            expense_date = self.clock.localize(expense.date)
            if not period_start <= expense_date < period_end:
                continue
            overall += expense.amount
            totals[expense.category] += expense.amount
            counted += 1

        logger.debug(
            f"Aggregated {counted} expenses into {len(totals)} categories "
            f"for period {period_start:%Y-%m}"
        )

        return PeriodAggregate(
            period_start=period_start,
            overall_total=overall,
            per_category_total=dict(totals)
        )
