"""At-most-once gate for alert identities within a period."""
from datetime import datetime

from .models import AlertCandidate, DedupState
from budgetwatch.utils.logger import get_logger

logger = get_logger()


class DedupGate:
    """Sole authority on whether an alert was already reported this period.

    Callers serialize access to a given DedupState; the gate itself holds no
    state of its own.
    """

    def should_fire(self, state: DedupState, candidate: AlertCandidate) -> bool:
        """Record the candidate's identity and return True if it is new."""
        if candidate.identity in state.fired_identities:
            logger.debug(f"Suppressed repeat alert: {candidate.identity}")
            return False
        state.fired_identities.add(candidate.identity)
        return True

    def has_fired(self, state: DedupState, identity: str) -> bool:
        return identity in state.fired_identities

    def reset(self, state: DedupState, new_period_start: datetime) -> None:
        cleared = len(state.fired_identities)
        state.fired_identities.clear()
        state.period_start = new_period_start
        logger.info(f"Reset alert history for period {new_period_start:%Y-%m} ({cleared} cleared)")
