"""Budget threshold monitoring engine."""
from .models import (
    Expense,
    BudgetConfig,
    LimitState,
    PeriodAggregate,
    AlertCandidate,
    Severity,
    DedupState,
    NotificationRecord
)
from .clock import PeriodClock
from .aggregator import Aggregator
from .evaluator import ThresholdEvaluator, ThresholdRules
from .dedup import DedupGate
from .status import BudgetStatus, CategoryStatus, summarize
from .session import MonitorSession, MonitorLoop, EvaluationResult
from .schemas import load_budget_config, load_expense_snapshot, parse_budget, parse_expenses

__all__ = [
    "Expense",
    "BudgetConfig",
    "LimitState",
    "PeriodAggregate",
    "AlertCandidate",
    "Severity",
    "DedupState",
    "NotificationRecord",
    "PeriodClock",
    "Aggregator",
    "ThresholdEvaluator",
    "ThresholdRules",
    "DedupGate",
    "BudgetStatus",
    "CategoryStatus",
    "summarize",
    "MonitorSession",
    "MonitorLoop",
    "EvaluationResult",
    "load_budget_config",
    "load_expense_snapshot",
    "parse_budget",
    "parse_expenses"
]
