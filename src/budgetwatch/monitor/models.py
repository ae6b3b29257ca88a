"""Data models for budget monitoring."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Mapping, Optional, Set

from budgetwatch.utils.exceptions import ConfigurationInvalid


class Severity(str, Enum):
    """Notification severity."""
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"


class LimitState(str, Enum):
    """Whether a category has a budget assigned."""
    UNSET = "unset"
    ZERO = "zero"
    POSITIVE = "positive"


@dataclass(frozen=True)
class Expense:
    """Expense record, read-only snapshot from storage."""
    id: str
    amount: Decimal
    category: str
    date: datetime


@dataclass(frozen=True)
class BudgetConfig:
    """Overall and per-category monthly limits."""
    overall: Decimal
    # category -> limit; missing or None means no limit assigned
    per_category: Mapping[str, Optional[Decimal]] = field(default_factory=dict)

    def __post_init__(self):
        negative = sorted(c for c, limit in self.per_category.items() if limit is not None and limit < 0)
        if negative:
            raise ConfigurationInvalid(f"Negative category limits: {', '.join(negative)}")

    def limit_state(self, category: str) -> LimitState:
        limit = self.per_category.get(category)
        if limit is None:
            return LimitState.UNSET
        if limit == 0:
            return LimitState.ZERO
        return LimitState.POSITIVE

    def category_limit(self, category: str) -> Optional[Decimal]:
        """Positive limit for category, None when unset or zero."""
        if self.limit_state(category) is LimitState.POSITIVE:
            return self.per_category[category]
        return None


@dataclass
class PeriodAggregate:
    """Spending totals for one monitoring period."""
    period_start: datetime
    overall_total: Decimal
    per_category_total: Dict[str, Decimal]


@dataclass(frozen=True)
class AlertCandidate:
    """Computed, not yet deduplicated alert."""
    identity: str
    severity: Severity
    title: str
    body: str


@dataclass
class DedupState:
    """Alert identities already fired for one subject in one period."""
    subject_id: str
    period_start: datetime
    fired_identities: Set[str] = field(default_factory=set)


@dataclass
class NotificationRecord:
    """Notification handed to the notification store."""
    recipient: str
    title: str
    message: str
    severity: Severity
    identity: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_candidate(cls, recipient: str, candidate: AlertCandidate, created_at: datetime) -> "NotificationRecord":
        return cls(
            recipient=recipient,
            title=candidate.title,
            message=candidate.body,
            severity=candidate.severity,
            identity=candidate.identity,
            created_at=created_at
        )
