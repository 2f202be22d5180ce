"""
Tests for the contract aggregate and its terms.
"""

import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from conftest import make_party
from contract_terms import (
    ArtistTerms,
    ContractStatus,
    ContractType,
    FinancialTerms,
    PublishingAgreementType,
    PublishingTerms,
    SyncTerms,
    terms_from_dict,
)
from contracts import Contract
from ledger_errors import ActivationBlocked, InvalidTransition
from split_validator import IssueCode


def to_signed(contract):
    contract.transition_to("signed")
    return contract


class TestContractTerms:
    """Tagged-union terms records."""

    def test_variant_selected_by_type(self):
        assert isinstance(terms_from_dict("publishing", {}), PublishingTerms)
        assert isinstance(terms_from_dict(ContractType.ARTIST, None), ArtistTerms)
        assert isinstance(terms_from_dict("sync", {"license_fee": "15000"}), SyncTerms)

    def test_decimal_and_enum_fields_coerced(self):
        terms = terms_from_dict("publishing", {"agreement_type": "co_publishing", "admin_fee_percentage": 15})
        assert terms.agreement_type == PublishingAgreementType.CO_PUBLISHING
        assert terms.admin_fee_percentage == Decimal("15")

    def test_unknown_keys_kept_in_extra(self):
        terms = terms_from_dict("sync", {"license_fee": "100", "music_supervisor": "Dana"})
        assert terms.extra == {"music_supervisor": "Dana"}
        assert terms.to_dict()["extra"] == {"music_supervisor": "Dana"}

    def test_to_dict_tagged(self):
        data = terms_from_dict("publishing", {"agreement_type": "administration"}).to_dict()
        assert data["contract_type"] == "publishing"
        assert data["agreement_type"] == "administration"

    def test_unknown_contract_type(self):
        with pytest.raises(ValueError):
            terms_from_dict("merch", {})

    def test_financial_terms_defaults(self):
        terms = FinancialTerms.from_dict(None)
        assert terms.advance_amount == Decimal("0")
        assert terms.recoupable is False

    def test_financial_terms_string_recoupable(self):
        assert FinancialTerms.from_dict({"recoupable": "false"}).recoupable is False
        assert FinancialTerms.from_dict({"recoupable": "Y"}).recoupable is True
        with pytest.raises(ValueError):
            FinancialTerms.from_dict({"recoupable": "sometimes"})


class TestContract:
    """Contract creation and serialization."""

    def test_create(self, contract):
        assert contract.contract_id.startswith("contract_")
        assert contract.status == ContractStatus.DRAFT
        assert contract.territories == {"US", "CA"}
        assert contract.ledger.contract_id == contract.contract_id
        assert contract.schedule.contract_id == contract.contract_id

    def test_round_trip(self, contract):
        party_id = contract.ledger.add_party(contract.contract_id, make_party("Jane", True, performance="60"))
        work_id = contract.schedule.add_work(contract.contract_id, {"title": "Song"})

        restored = Contract.from_dict(contract.to_dict())

        assert restored.contract_id == contract.contract_id
        assert restored.financial_terms.advance_amount == Decimal("5000")
        assert party_id in restored.ledger
        assert work_id in restored.schedule
        assert restored.terms.agreement_type == PublishingAgreementType.CO_PUBLISHING

    def test_to_dict_without_children(self, contract):
        data = contract.to_dict(include_children=False)
        assert "interested_parties" not in data
        assert "schedule_works" not in data


class TestLifecycle:
    """Status transitions and the activation gate."""

    def test_happy_path(self, contract):
        contract.ledger.add_party(contract.contract_id, make_party("Jane", True, performance="100"))
        to_signed(contract)
        previous = contract.transition_to("active")
        assert previous == ContractStatus.SIGNED
        assert contract.status == ContractStatus.ACTIVE
        assert [h["to"] for h in contract.status_history] == ["signed", "active"]

    def test_invalid_transition(self, contract):
        with pytest.raises(InvalidTransition):
            contract.transition_to("active")

    def test_terminal_states(self, contract):
        contract.transition_to("terminated")
        with pytest.raises(InvalidTransition):
            contract.transition_to("signed")

    def test_activation_blocked_by_controlled_total(self, contract):
        contract.ledger.add_party(contract.contract_id, make_party("A", True, mechanical="70", performance="70"))
        contract.ledger.add_party(contract.contract_id, make_party("B", True, mechanical="40", performance="40"))
        to_signed(contract)

        with pytest.raises(ActivationBlocked) as exc_info:
            contract.transition_to("active")

        assert exc_info.value.invariant == IssueCode.CONTROLLED_SHARE_EXCEEDED.value
        assert exc_info.value.delta == Decimal("10")
        assert contract.status == ContractStatus.SIGNED

    def test_activation_blocked_by_out_of_range_share(self, contract):
        contract.ledger.add_party(contract.contract_id, make_party("A", performance="-10"))
        to_signed(contract)
        with pytest.raises(ActivationBlocked) as exc_info:
            contract.transition_to("active")
        assert exc_info.value.invariant == IssueCode.SHARE_OUT_OF_RANGE.value

    def test_imbalance_does_not_block_activation(self, contract):
        contract.ledger.add_party(contract.contract_id, make_party("A", performance="40"))
        to_signed(contract)
        contract.transition_to("active")
        assert contract.status == ContractStatus.ACTIVE

    def test_drafts_save_while_invalid(self, contract):
        contract.ledger.add_party(contract.contract_id, make_party("A", True, performance="150"))
        assert contract.validate().has_errors
        assert contract.to_dict()["status"] == "draft"
