"""
Tests for the registration status tracker.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from ledger_errors import InvalidTransition, LedgerError, RegistrationNotFound
from registration import (
    CollectingBody,
    RegistrationRecord,
    RegistrationStatus,
    RegistrationTracker,
    can_transition,
)


@pytest.fixture
def tracker():
    tracker = RegistrationTracker()
    tracker.register("work_1", "ascap", territory="US")
    return tracker


class TestCanTransition:
    """Protocol edges versus manual corrections."""

    def test_protocol_edges(self):
        assert can_transition(RegistrationStatus.NOT_REGISTERED, RegistrationStatus.PENDING_REGISTRATION)
        assert can_transition(RegistrationStatus.PENDING_REGISTRATION, RegistrationStatus.FULLY_REGISTERED)
        assert can_transition(RegistrationStatus.PENDING_REGISTRATION, RegistrationStatus.NEEDS_AMENDMENT)
        assert can_transition(RegistrationStatus.NEEDS_AMENDMENT, RegistrationStatus.PENDING_REGISTRATION)

    def test_correction_requires_manual(self):
        assert not can_transition(RegistrationStatus.FULLY_REGISTERED, RegistrationStatus.NOT_REGISTERED)
        assert can_transition(
            RegistrationStatus.FULLY_REGISTERED, RegistrationStatus.NOT_REGISTERED, manual=True
        )

    def test_same_state_never_allowed(self):
        assert not can_transition(
            RegistrationStatus.PENDING_REGISTRATION, RegistrationStatus.PENDING_REGISTRATION, manual=True
        )


class TestRegistrationTracker:
    """Tests for per-(work, body) state machines."""

    def test_register_starts_not_registered(self, tracker):
        record = tracker.get("work_1", CollectingBody.ASCAP)
        assert record.status == RegistrationStatus.NOT_REGISTERED
        assert record.record_id.startswith("reg_")

    def test_duplicate_register(self, tracker):
        with pytest.raises(LedgerError):
            tracker.register("work_1", "ascap")

    def test_unknown_pair(self, tracker):
        with pytest.raises(RegistrationNotFound):
            tracker.get("work_1", "bmi")

    def test_amendment_cycle(self, tracker):
        tracker.transition("work_1", "ascap", "pending_registration")
        tracker.transition("work_1", "ascap", "needs_amendment")
        tracker.transition("work_1", "ascap", "pending_registration")
        record = tracker.transition("work_1", "ascap", "fully_registered", work_number="W-991")

        assert record.status == RegistrationStatus.FULLY_REGISTERED
        assert record.work_number == "W-991"
        assert [c.to_status for c in record.history] == [
            RegistrationStatus.PENDING_REGISTRATION,
            RegistrationStatus.NEEDS_AMENDMENT,
            RegistrationStatus.PENDING_REGISTRATION,
            RegistrationStatus.FULLY_REGISTERED,
        ]

    def test_manual_correction_is_explicit(self, tracker):
        tracker.transition("work_1", "ascap", "pending_registration")
        tracker.transition("work_1", "ascap", "fully_registered")

        with pytest.raises(InvalidTransition):
            tracker.transition("work_1", "ascap", "not_registered")

        record = tracker.transition("work_1", "ascap", "not_registered", manual=True, note="registered in error")
        assert record.status == RegistrationStatus.NOT_REGISTERED
        assert record.history[-1].manual is True
        assert record.history[-1].note == "registered in error"

    def test_skip_pending_rejected(self, tracker):
        with pytest.raises(InvalidTransition):
            tracker.transition("work_1", "ascap", "fully_registered")

    def test_bodies_are_independent(self, tracker):
        tracker.register("work_1", "bmi")
        tracker.transition("work_1", "ascap", "pending_registration")
        assert tracker.get("work_1", "bmi").status == RegistrationStatus.NOT_REGISTERED
        assert len(tracker.records_for_work("work_1")) == 2

    def test_acknowledgement_accept(self, tracker):
        tracker.transition("work_1", "ascap", "pending_registration")
        record = tracker.apply_acknowledgement("work_1", "ascap", accepted=True, work_number="A-1")
        assert record.status == RegistrationStatus.FULLY_REGISTERED
        assert record.history[-1].manual is False

    def test_acknowledgement_reject(self, tracker):
        tracker.transition("work_1", "ascap", "pending_registration")
        record = tracker.apply_acknowledgement(
            "work_1", "ascap", accepted=False, response_message="Missing IPI"
        )
        assert record.status == RegistrationStatus.NEEDS_AMENDMENT
        assert record.history[-1].note == "Missing IPI"

    def test_acknowledgement_never_corrects(self, tracker):
        with pytest.raises(InvalidTransition):
            tracker.apply_acknowledgement("work_1", "ascap", accepted=True)

    def test_record_round_trip(self, tracker):
        tracker.transition("work_1", "ascap", "pending_registration")
        data = tracker.get("work_1", "ascap").to_dict()
        restored = RegistrationRecord.from_dict(data)
        assert restored.status == RegistrationStatus.PENDING_REGISTRATION
        assert restored.history[0].from_status == RegistrationStatus.NOT_REGISTERED
        assert restored.territory == "US"
