"""Shared fakes for the test suites."""
import threading
from datetime import datetime, timezone
from decimal import Decimal

from budgetwatch.monitor.clock import PeriodClock
from budgetwatch.monitor.models import Expense
from budgetwatch.notifications.sink import NotificationSink
from budgetwatch.utils.exceptions import DeliveryError

UTC = timezone.utc


def make_expense(id, amount, category, date):
    return Expense(id=id, amount=Decimal(str(amount)), category=category, date=date)


class FixedClock(PeriodClock):
    """PeriodClock whose wall time is set by the test."""

    def __init__(self, now: datetime, tz="UTC"):
        super().__init__(tz)
        self.current = now

    def now(self) -> datetime:
        return self.localize(self.current)


class FakeTimer:
    """Stands in for threading.Timer; fired manually by tests."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args, **self.kwargs)


class TimerRecorder:
    """Timer factory that keeps every timer it creates."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer


class RecordingSink(NotificationSink):
    """Collects delivered records; optionally fails for some identities."""

    def __init__(self, failing=(), history=(), history_error=None):
        self.records = []
        self.failing = set(failing)
        self.history = set(history)
        self.history_error = history_error
        self.history_queries = []
        self.closed = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "recording"

    def deliver(self, record):
        if record.identity in self.failing:
            raise DeliveryError(f"store rejected {record.identity}")
        with self._lock:
            self.records.append(record)

    def sent_identities(self, recipient, start, end):
        self.history_queries.append((recipient, start, end))
        if self.history_error:
            raise self.history_error
        return set(self.history)

    def close(self):
        self.closed = True

    @property
    def identities(self):
        return [r.identity for r in self.records]
