"""Tests for the alert dedup gate."""
import unittest
from datetime import datetime, timezone

from budgetwatch.monitor.dedup import DedupGate
from budgetwatch.monitor.models import AlertCandidate, DedupState, Severity


def candidate(identity):
    return AlertCandidate(identity=identity, severity=Severity.WARNING, title="t", body="b")


class TestDedupGate(unittest.TestCase):
    """Test DedupGate functionality."""

    def setUp(self):
        self.gate = DedupGate()
        self.state = DedupState(subject_id="user-1", period_start=datetime(2025, 3, 1, tzinfo=timezone.utc))

    def test_fires_once(self):
        self.assertTrue(self.gate.should_fire(self.state, candidate("overall-80")))
        self.assertFalse(self.gate.should_fire(self.state, candidate("overall-80")))
        self.assertTrue(self.gate.has_fired(self.state, "overall-80"))

    def test_distinct_identities_independent(self):
        self.assertTrue(self.gate.should_fire(self.state, candidate("overall-80")))
        self.assertTrue(self.gate.should_fire(self.state, candidate("Food-100")))
        self.assertEqual(self.state.fired_identities, {"overall-80", "Food-100"})

    def test_reset_allows_refire(self):
        self.gate.should_fire(self.state, candidate("overall-100"))
        april = datetime(2025, 4, 1, tzinfo=timezone.utc)

        self.gate.reset(self.state, april)

        self.assertEqual(self.state.period_start, april)
        self.assertEqual(self.state.fired_identities, set())
        self.assertTrue(self.gate.should_fire(self.state, candidate("overall-100")))

    def test_states_are_isolated(self):
        other = DedupState(subject_id="user-2", period_start=self.state.period_start)
        self.gate.should_fire(self.state, candidate("saving-tip"))
        self.assertTrue(self.gate.should_fire(other, candidate("saving-tip")))


if __name__ == "__main__":
    unittest.main()
