"""
Tests for the work schedule: overrides, writers and finalization.
"""

import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from conftest import make_party
from ledger_errors import FinalizeBlocked, WorkNotFound
from split_validator import IssueCode, revalidate
from work_schedule import ScheduleWork, WorkSchedule, WorkStatus


@pytest.fixture
def schedule():
    return WorkSchedule("contract_test")


@pytest.fixture
def work_id(schedule):
    return schedule.add_work("contract_test", {"title": "Midnight Drive", "isrc": "USABC2400001"})


def report_for(ledger, schedule, work_id):
    return revalidate(ledger, writer_shares=schedule.get_work(work_id).writer_shares())


class TestScheduleWork:
    """Tests for work records."""

    def test_flags_default_to_inherit(self, schedule, work_id):
        work = schedule.get_work(work_id)
        assert work.inherits_royalty_splits is True
        assert work.inherits_recoupment_status is True
        assert work.inherits_controlled_status is True
        assert work.advance_override is None
        assert work.rate_reduction_override is None
        assert work.status == WorkStatus.DRAFT

    def test_explicit_false_flag_kept(self, schedule):
        work_id = schedule.add_work("contract_test", {"title": "Solo", "inherits_royalty_splits": False})
        assert schedule.get_work(work_id).inherits_royalty_splits is False

    @pytest.mark.parametrize("raw,expected", [("false", False), ("0", False), (0, False), ("Yes", True), ("1", True)])
    def test_string_flags_read_strictly(self, schedule, raw, expected):
        work_id = schedule.add_work("contract_test", {
            "title": "Solo",
            "inherits_royalty_splits": raw,
            "recoupable": raw,
        })
        work = schedule.get_work(work_id)
        assert work.inherits_royalty_splits is expected
        assert work.recoupable is expected

    @pytest.mark.parametrize("raw", ["maybe", "", 2, [], {}])
    def test_unreadable_flag_rejected(self, schedule, raw):
        with pytest.raises(ValueError):
            schedule.add_work("contract_test", {"title": "Solo", "inherits_controlled_status": raw})
        assert len(schedule) == 0

    def test_round_trip_preserves_zero_override(self, schedule, work_id):
        schedule.set_override(work_id, "advance_override", 0)
        restored = ScheduleWork.from_dict(schedule.get_work(work_id).to_dict())
        assert restored.advance_override == Decimal("0")
        assert restored.rate_reduction_override is None

    def test_add_work_wrong_contract(self, schedule):
        with pytest.raises(ValueError):
            schedule.add_work("other", {"title": "Nope"})


class TestEditing:
    """Tests for work edits and overrides."""

    def test_update_work(self, schedule, work_id):
        schedule.update_work(work_id, artist="The Example", inherits_recoupment_status=False)
        work = schedule.get_work(work_id)
        assert work.artist == "The Example"
        assert work.inherits_recoupment_status is False

    def test_update_reads_string_flags(self, schedule, work_id):
        schedule.update_work(work_id, inherits_recoupment_status="false", recoupable="no")
        work = schedule.get_work(work_id)
        assert work.inherits_recoupment_status is False
        assert work.recoupable is False

        schedule.update_work(work_id, recoupable=None)
        assert schedule.get_work(work_id).recoupable is None

        with pytest.raises(ValueError):
            schedule.update_work(work_id, inherits_royalty_splits="off-ish")
        assert schedule.get_work(work_id).inherits_royalty_splits is True

    def test_update_rejects_unknown_field(self, schedule, work_id):
        with pytest.raises(ValueError):
            schedule.update_work(work_id, status="final")

    def test_set_override_zero_is_present(self, schedule, work_id):
        assert schedule.set_override(work_id, "advance_override", "0") == Decimal("0")
        assert schedule.get_work(work_id).has_override("advance_override")

    def test_set_override_none_rejected(self, schedule, work_id):
        with pytest.raises(ValueError):
            schedule.set_override(work_id, "advance_override", None)

    def test_unknown_override_field(self, schedule, work_id):
        with pytest.raises(ValueError):
            schedule.set_override(work_id, "royalty_override", "5")

    def test_clear_override(self, schedule, work_id):
        schedule.set_override(work_id, "rate_reduction_override", "15")
        schedule.clear_override(work_id, "rate_reduction_override")
        assert not schedule.get_work(work_id).has_override("rate_reduction_override")

    def test_remove_work(self, schedule, work_id):
        schedule.remove_work(work_id)
        assert work_id not in schedule
        with pytest.raises(WorkNotFound):
            schedule.get_work(work_id)

    def test_writers(self, schedule, work_id):
        writer_id = schedule.add_writer(work_id, {"name": "Jane", "share": "50", "controlled_status": "C"})
        schedule.add_writer(work_id, {"name": "Sam", "share": "50"})
        work = schedule.get_work(work_id)
        assert work.writer_shares() == [Decimal("50"), Decimal("50")]
        assert work.controlled_writer_share() == Decimal("50")

        schedule.remove_writer(work_id, writer_id)
        assert len(schedule.get_work(work_id).writers) == 1
        with pytest.raises(WorkNotFound):
            schedule.remove_writer(work_id, writer_id)


class TestFinalize:
    """Finalization is gated on writer and controlled shares."""

    def test_finalize_exact_writers(self, ledger, schedule, work_id):
        ledger.add_party("contract_test", make_party("Pub", controlled=True, performance="50"))
        schedule.add_writer(work_id, {"name": "Jane", "share": "60"})
        schedule.add_writer(work_id, {"name": "Sam", "share": "40"})

        work = schedule.finalize_work(work_id, report_for(ledger, schedule, work_id))

        assert work.status == WorkStatus.FINAL

    def test_blocked_when_writers_not_exact(self, ledger, schedule, work_id):
        schedule.add_writer(work_id, {"name": "Jane", "share": "60"})
        schedule.add_writer(work_id, {"name": "Sam", "share": "30"})

        with pytest.raises(FinalizeBlocked) as exc_info:
            schedule.finalize_work(work_id, report_for(ledger, schedule, work_id))

        assert exc_info.value.invariant == IssueCode.WRITER_SHARE_NOT_EXACT.value
        assert exc_info.value.delta == Decimal("-10")
        assert schedule.get_work(work_id).status == WorkStatus.DRAFT

    def test_blocked_when_writer_shares_not_modelled(self, ledger, schedule, work_id):
        with pytest.raises(FinalizeBlocked):
            schedule.finalize_work(work_id, revalidate(ledger))

    def test_blocked_when_controlled_over_limit(self, ledger, schedule, work_id):
        ledger.add_party("contract_test", make_party("A", controlled=True, performance="70"))
        ledger.add_party("contract_test", make_party("B", controlled=True, mechanical="40"))
        schedule.add_writer(work_id, {"name": "Jane", "share": "100"})

        with pytest.raises(FinalizeBlocked) as exc_info:
            schedule.finalize_work(work_id, report_for(ledger, schedule, work_id))

        assert exc_info.value.invariant == IssueCode.CONTROLLED_SHARE_EXCEEDED.value
        assert exc_info.value.delta == Decimal("10")
        assert exc_info.value.report.controlled_over_limit is True

    def test_added_writer_returns_work_to_draft(self, ledger, schedule, work_id):
        schedule.add_writer(work_id, {"name": "Jane", "share": "100"})
        schedule.finalize_work(work_id, report_for(ledger, schedule, work_id))

        schedule.add_writer(work_id, {"name": "Sam", "share": "50"})

        assert schedule.get_work(work_id).status == WorkStatus.DRAFT
        with pytest.raises(FinalizeBlocked):
            schedule.finalize_work(work_id, report_for(ledger, schedule, work_id))

    def test_removed_writer_returns_work_to_draft(self, ledger, schedule, work_id):
        schedule.add_writer(work_id, {"name": "Jane", "share": "60"})
        sam = schedule.add_writer(work_id, {"name": "Sam", "share": "40"})
        schedule.finalize_work(work_id, report_for(ledger, schedule, work_id))

        schedule.remove_writer(work_id, sam)

        assert schedule.get_work(work_id).status == WorkStatus.DRAFT

    def test_descriptive_edit_keeps_final(self, ledger, schedule, work_id):
        schedule.add_writer(work_id, {"name": "Jane", "share": "100"})
        schedule.finalize_work(work_id, report_for(ledger, schedule, work_id))

        schedule.update_work(work_id, artist="The Example")

        assert schedule.get_work(work_id).status == WorkStatus.FINAL

    def test_unknown_work(self, ledger, schedule):
        with pytest.raises(WorkNotFound):
            schedule.finalize_work("work_missing", revalidate(ledger, writer_shares=["100"]))
