"""
Tests for the party ledger and interested-party records.
"""

import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from ledger_errors import PartyNotFound
from party_ledger import InterestedParty, PartyLedger
from right_types import ALL_RIGHT_TYPES, ControlledStatus, PartyType, RightType


class TestInterestedParty:
    """Tests for party records."""

    def test_defaults(self):
        party = InterestedParty.from_dict({"name": "Jane"}, contract_id="c1")
        assert party.party_id.startswith("party_")
        assert party.controlled_status == ControlledStatus.NON_CONTROLLED
        assert party.party_type == PartyType.WRITER
        assert all(party.share(rt) == Decimal("0") for rt in ALL_RIGHT_TYPES)

    def test_to_dict_flat_percentages(self):
        party = InterestedParty.from_dict(
            {"name": "Jane", "performance_percentage": "33.3", "ipi_number": "00012345678"},
            contract_id="c1",
        )
        data = party.to_dict()
        assert data["performance_percentage"] == "33.3"
        assert data["mechanical_percentage"] == "0"
        assert data["ipi_number"] == "00012345678"
        assert data["contract_id"] == "c1"

    def test_round_trip_keeps_id_and_details(self):
        party = InterestedParty.from_dict(
            {"name": "Jane", "controlled_status": "C", "synch_percentage": 25, "tax_id": "12-3456789"},
            contract_id="c1",
        )
        restored = InterestedParty.from_dict(party.to_dict())
        assert restored.party_id == party.party_id
        assert restored.is_controlled
        assert restored.share(RightType.SYNCH) == Decimal("25")
        assert restored.details["tax_id"] == "12-3456789"


class TestPartyLedger:
    """Tests for ledger mutations."""

    def test_add_party_returns_id(self, ledger):
        party_id = ledger.add_party("contract_test", {"name": "Jane"})
        assert party_id in ledger
        assert len(ledger) == 1
        assert ledger.get_party(party_id).contract_id == "contract_test"

    def test_add_party_wrong_contract(self, ledger):
        with pytest.raises(ValueError):
            ledger.add_party("other_contract", {"name": "Jane"})

    def test_duplicate_names_allowed(self, ledger):
        first = ledger.add_party("contract_test", {"name": "Jane", "ipi_number": "1"})
        second = ledger.add_party("contract_test", {"name": "Jane", "ipi_number": "2"})
        assert first != second
        assert len(ledger) == 2

    def test_update_share_stores_raw_value(self, ledger):
        party_id = ledger.add_party("contract_test", {"name": "Jane"})
        stored = ledger.update_share(party_id, "performance", "120")
        assert stored == Decimal("120")
        assert ledger.get_party(party_id).share(RightType.PERFORMANCE) == Decimal("120")

    def test_update_share_accepts_column_name(self, ledger):
        party_id = ledger.add_party("contract_test", {"name": "Jane"})
        ledger.update_share(party_id, "mechanical_percentage", 40)
        assert ledger.get_party(party_id).share(RightType.MECHANICAL) == Decimal("40")

    def test_update_share_leaves_other_types(self, ledger):
        party_id = ledger.add_party("contract_test", {"name": "Jane", "performance_percentage": "50"})
        ledger.update_share(party_id, RightType.MECHANICAL, "60")
        party = ledger.get_party(party_id)
        assert party.share(RightType.PERFORMANCE) == Decimal("50")
        assert party.share(RightType.MECHANICAL) == Decimal("60")

    def test_update_share_rejects_unknown_right_type(self, ledger):
        party_id = ledger.add_party("contract_test", {"name": "Jane"})
        with pytest.raises(ValueError):
            ledger.update_share(party_id, "streaming", "10")

    def test_update_share_rejects_non_numeric(self, ledger):
        party_id = ledger.add_party("contract_test", {"name": "Jane"})
        with pytest.raises(ValueError):
            ledger.update_share(party_id, "performance", "half")

    @pytest.mark.parametrize("value", ["NaN", "sNaN", "Infinity", "-inf", float("nan"), Decimal("Infinity")])
    def test_update_share_rejects_non_finite(self, ledger, value):
        party_id = ledger.add_party("contract_test", {"name": "Jane", "performance_percentage": "50"})
        with pytest.raises(ValueError):
            ledger.update_share(party_id, "performance", value)
        assert ledger.get_party(party_id).share(RightType.PERFORMANCE) == Decimal("50")

    def test_add_party_rejects_non_finite(self, ledger):
        with pytest.raises(ValueError):
            ledger.add_party("contract_test", {"name": "Jane", "synch_percentage": "Infinity"})
        assert len(ledger) == 0

    def test_unknown_party(self, ledger):
        with pytest.raises(PartyNotFound):
            ledger.update_share("party_missing", "performance", "10")
        with pytest.raises(PartyNotFound):
            ledger.remove_party("party_missing")

    def test_remove_party(self, ledger):
        party_id = ledger.add_party("contract_test", {"name": "Jane"})
        removed = ledger.remove_party(party_id)
        assert removed.party_id == party_id
        assert party_id not in ledger

    def test_set_controlled_status(self, ledger):
        party_id = ledger.add_party("contract_test", {"name": "Jane"})
        ledger.set_controlled_status(party_id, "C")
        assert [p.party_id for p in ledger.controlled_parties()] == [party_id]
        ledger.set_controlled_status(party_id, ControlledStatus.NON_CONTROLLED)
        assert ledger.controlled_parties() == []

    def test_revision_bumps_on_mutation(self, ledger):
        start = ledger.revision
        party_id = ledger.add_party("contract_test", {"name": "Jane"})
        ledger.update_share(party_id, "performance", "10")
        ledger.set_controlled_status(party_id, "C")
        ledger.remove_party(party_id)
        assert ledger.revision == start + 4

    def test_snapshot_is_detached(self, ledger):
        party_id = ledger.add_party("contract_test", {"name": "Jane", "performance_percentage": "50"})
        snapshot = ledger.snapshot()
        ledger.update_share(party_id, "performance", "80")
        assert snapshot.get_party(party_id).share(RightType.PERFORMANCE) == Decimal("50")

    def test_from_records(self):
        ledger = PartyLedger.from_records("c1", [
            {"id": "party_a", "name": "A", "performance_percentage": "60"},
            {"id": "party_b", "name": "B", "performance_percentage": "40"},
        ])
        assert [p.party_id for p in ledger] == ["party_a", "party_b"]
        assert ledger.to_dict()["contract_id"] == "c1"
