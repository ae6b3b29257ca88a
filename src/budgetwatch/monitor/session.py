"""Per-subject monitoring sessions and the loop that owns them."""
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional

from .aggregator import Aggregator
from .clock import PeriodClock
from .dedup import DedupGate
from .evaluator import ThresholdEvaluator, ThresholdRules
from .models import AlertCandidate, BudgetConfig, DedupState, Expense, NotificationRecord
from budgetwatch.utils.exceptions import DeliveryError, SessionClosedError
from budgetwatch.utils.logger import get_logger, set_subject_context

if TYPE_CHECKING:
    from budgetwatch.notifications.sink import NotificationSink

logger = get_logger()


@dataclass
class EvaluationResult:
    """Outcome of one evaluation pass."""
    subject_id: str
    candidates: List[str] = field(default_factory=list)
    fired: List[str] = field(default_factory=list)
    delivered: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    skipped: bool = False


class MonitorSession:
    """
    Monitors one subject.

    Owns the subject's DedupState and rollover timer. Evaluation passes and
    rollover resets are serialized through one lock. An identity is recorded
    as fired before its delivery is attempted and is not rolled back when the
    delivery fails, so each alert is delivered at most once per period.
    """

    def __init__(
        self,
        subject_id: str,
        sink: "NotificationSink",
        clock: Optional[PeriodClock] = None,
        evaluator: Optional[ThresholdEvaluator] = None,
        max_concurrent_deliveries: int = 4,
        timer_factory: Callable[..., threading.Timer] = threading.Timer
    ):
        self.subject_id = subject_id
        self.sink = sink
        self.clock = clock or PeriodClock()
        self.aggregator = Aggregator(self.clock)
        self.evaluator = evaluator or ThresholdEvaluator()
        self.gate = DedupGate()
        self.max_concurrent_deliveries = max_concurrent_deliveries
        self.state = DedupState(subject_id=subject_id, period_start=self.clock.current_period_start())

        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._next_boundary: Optional[datetime] = None
        self._lock = threading.RLock()
        self._closed = False

    @property
    def next_rollover(self) -> Optional[datetime]:
        return self._next_boundary

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self, now: Optional[datetime] = None) -> "MonitorSession":
        """Begin the session: anchor the dedup period and arm the rollover timer."""
        now = self.clock.localize(now) if now else self.clock.now()
        with self._lock:
            if self._closed:
                raise SessionClosedError(f"Session for {self.subject_id} is closed")
            if self._timer is None:
                self.state.period_start = self.clock.current_period_start(now)
                self._load_history(now)
                self._schedule_rollover(after=now, now=now)
        logger.info(f"Monitoring session started for {self.subject_id}")
        return self

    def close(self) -> None:
        """Cancel the rollover timer. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._next_boundary = None
        logger.info(f"Monitoring session closed for {self.subject_id}")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def on_data_change(
        self,
        expenses: Iterable[Expense],
        budget: BudgetConfig,
        now: Optional[datetime] = None
    ) -> EvaluationResult:
        """
        Run one evaluation pass for a changed expense list or budget.

        Args:
            expenses: Current expense snapshot of the subject
            budget: Budget limits in force
            now: Reference time (defaults to the clock's wall time)

        Returns:
            EvaluationResult; delivery failures are reported, never raised
        """
        start_time = time.time()
        expenses = list(expenses)
        result = EvaluationResult(subject_id=self.subject_id)

        if not expenses:
            logger.debug(f"No expenses for {self.subject_id}, skipping evaluation")
            result.skipped = True
            return result

        now = self.clock.localize(now) if now else self.clock.now()
        set_subject_context(self.subject_id)
        try:
            with self._lock:
                if self._closed:
                    raise SessionClosedError(f"Session for {self.subject_id} is closed")

                period_start = self.clock.current_period_start(now)
                if self.state.period_start < period_start:
                    # Rollover timer has not fired yet (e.g. host was suspended)
                    logger.warning(f"Alert history for {self.subject_id} is from an earlier period")
                    self.gate.reset(self.state, period_start)
                    self._load_history(now)

                aggregate = self.aggregator.aggregate(expenses, now)
                candidates = self.evaluator.evaluate(aggregate, budget, self.clock.day_of_period(now))
                fired = [c for c in candidates if self.gate.should_fire(self.state, c)]

            result.candidates = [c.identity for c in candidates]
            result.fired = [c.identity for c in fired]
            self._deliver_all(fired, now, result)
        finally:
            set_subject_context(None)

        result.duration_seconds = time.time() - start_time
        if fired:
            logger.info(
                f"Evaluation for {self.subject_id}: {len(candidates)} candidates, "
                f"{len(result.delivered)} delivered, {len(result.failed)} failed"
            )
        return result

    def _load_history(self, now: datetime) -> None:
        """Mark alerts the sink already holds for this period as fired."""
        start = self.clock.current_period_start(now)
        end = self.clock.next_period_start(now)
        try:
            sent = self.sink.sent_identities(self.subject_id, start, end)
        except DeliveryError as e:
            logger.warning(f"Could not read alert history for {self.subject_id}: {e}")
            return
        if sent:
            logger.debug(f"Restored {len(sent)} fired alerts for {self.subject_id}")
            self.state.fired_identities.update(sent)

    def _deliver_all(self, fired: List[AlertCandidate], now: datetime, result: EvaluationResult) -> None:
        if not fired:
            return

        workers = min(self.max_concurrent_deliveries, len(fired))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._deliver, candidate, now): candidate
                for candidate in fired
            }

            for future in as_completed(futures):
                candidate = futures[future]
                try:
                    future.result()
                    result.delivered.append(candidate.identity)
                except DeliveryError as e:
                    logger.error(f"Failed to deliver {candidate.identity} for {self.subject_id}: {e}")
                    result.failed.append(candidate.identity)
                except Exception as e:
                    logger.error(f"Unexpected error delivering {candidate.identity} for {self.subject_id}: {e}")
                    result.failed.append(candidate.identity)

        # Report in emission order rather than completion order
        emission = {c.identity: i for i, c in enumerate(fired)}
        result.delivered.sort(key=emission.get)
        result.failed.sort(key=emission.get)

    def _deliver(self, candidate: AlertCandidate, now: datetime) -> None:
        set_subject_context(self.subject_id)
        try:
            record = NotificationRecord.from_candidate(self.subject_id, candidate, now)
            self.sink.deliver(record)
        finally:
            set_subject_context(None)

    def _schedule_rollover(self, after: datetime, now: datetime) -> None:
        """Arm the timer for the first period boundary after `after`."""
        self._arm_timer(self.clock.next_period_start(after), now)

    def _arm_timer(self, boundary: datetime, now: datetime) -> None:
        delay = max(0.0, (boundary.timestamp() - now.timestamp()))
        timer = self._timer_factory(delay, self._on_rollover, args=(boundary,))
        timer.daemon = True
        self._timer = timer
        self._next_boundary = boundary
        timer.start()
        logger.debug(f"Rollover for {self.subject_id} scheduled at {boundary.isoformat()} (in {delay:.0f}s)")

    def _on_rollover(self, boundary: datetime) -> None:
        set_subject_context(self.subject_id)
        try:
            with self._lock:
                if self._closed:
                    return
                now = self.clock.now()
                if now < boundary:
                    # Timer ran ahead of the wall clock; the old period is still open
                    self._arm_timer(boundary, now)
                    return
                self.rollover(boundary)
                self._schedule_rollover(after=now, now=now)
        finally:
            set_subject_context(None)

    def rollover(self, boundary: datetime) -> None:
        """Clear alert history if it predates the period starting at boundary."""
        with self._lock:
            if self.state.period_start < boundary:
                self.gate.reset(self.state, boundary)


class MonitorLoop:
    """
    Owns one MonitorSession per subject.

    Sessions are created on first use or explicitly, and all of them are
    torn down by shutdown() or on leaving the context manager.
    """

    def __init__(
        self,
        sink: "NotificationSink",
        clock: Optional[PeriodClock] = None,
        evaluator: Optional[ThresholdEvaluator] = None,
        max_concurrent_deliveries: int = 4,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
        owns_sink: bool = False
    ):
        self.sink = sink
        self.clock = clock or PeriodClock()
        self.evaluator = evaluator or ThresholdEvaluator()
        self.max_concurrent_deliveries = max_concurrent_deliveries
        self._timer_factory = timer_factory
        self._owns_sink = owns_sink
        self._sessions: Dict[str, MonitorSession] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings, sink: Optional["NotificationSink"] = None) -> "MonitorLoop":
        """Build a loop from application settings, creating the sink if none is given."""
        owns_sink = sink is None
        if sink is None:
            from budgetwatch.notifications.factory import create_sink
            sink = create_sink(settings)

        evaluator = ThresholdEvaluator(
            rules=ThresholdRules.from_settings(settings),
            categories=settings.categories,
            currency_symbol=settings.currency_symbol
        )
        return cls(
            sink,
            clock=PeriodClock(settings.timezone),
            evaluator=evaluator,
            max_concurrent_deliveries=settings.max_concurrent_deliveries,
            owns_sink=owns_sink
        )

    def start_session(self, subject_id: str, now: Optional[datetime] = None) -> MonitorSession:
        with self._lock:
            session = self._sessions.get(subject_id)
            if session is None:
                session = MonitorSession(
                    subject_id,
                    self.sink,
                    clock=self.clock,
                    evaluator=self.evaluator,
                    max_concurrent_deliveries=self.max_concurrent_deliveries,
                    timer_factory=self._timer_factory
                )
                session.start(now)
                self._sessions[subject_id] = session
            return session

    def get_session(self, subject_id: str) -> Optional[MonitorSession]:
        with self._lock:
            return self._sessions.get(subject_id)

    def end_session(self, subject_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(subject_id, None)
        if session is not None:
            session.close()

    def on_data_change(
        self,
        subject_id: str,
        expenses: Iterable[Expense],
        budget: BudgetConfig,
        now: Optional[datetime] = None
    ) -> EvaluationResult:
        for _ in range(2):
            session = self.start_session(subject_id, now)
            try:
                return session.on_data_change(expenses, budget, now)
            except SessionClosedError:
                logger.info(f"Session for {subject_id} ended during evaluation, retrying with a new one")

        logger.warning(f"Skipping evaluation for {subject_id}: session keeps closing")
        return EvaluationResult(subject_id=subject_id, skipped=True)

    def shutdown(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        try:
            for session in sessions:
                try:
                    session.close()
                except Exception as e:
                    logger.error(f"Failed to close session for {session.subject_id}: {e}")
        finally:
            if self._owns_sink:
                self.sink.close()
        logger.info(f"Monitor loop stopped ({len(sessions)} sessions closed)")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False
