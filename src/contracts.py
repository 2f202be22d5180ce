"""
RightsLedger - Contract Aggregate

A contract owns one Party Ledger and one Work Schedule, a typed terms
record selected by its contract type, and contract-level financial terms
that scheduled works may override.

Status is a soft lifecycle. Marking a contract active is gated on the
ledger having no controlled-share or out-of-range errors; right-type
imbalance alone is advisory and does not block activation.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from contract_terms import (
    VALID_STATUS_TRANSITIONS,
    ContractStatus,
    ContractTerms,
    ContractType,
    FinancialTerms,
    terms_from_dict,
)
from ledger_errors import ActivationBlocked, InvalidTransition
from party_ledger import PartyLedger
from right_types import FULL_SHARE
from split_validator import IssueCode, SplitReport, revalidate
from work_schedule import WorkSchedule

logger = logging.getLogger(__name__)


@dataclass
class Contract:
    """An agreement with its ledger, schedule and terms."""

    contract_id: str
    counterparty: str
    contract_type: ContractType
    terms: ContractTerms
    status: ContractStatus = ContractStatus.DRAFT
    territories: set[str] = field(default_factory=set)
    start_date: str | None = None
    end_date: str | None = None
    financial_terms: FinancialTerms = field(default_factory=FinancialTerms)
    ledger: PartyLedger | None = None
    schedule: WorkSchedule | None = None
    status_history: list[dict[str, Any]] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def __post_init__(self):
        if self.ledger is None:
            self.ledger = PartyLedger(self.contract_id)
        if self.schedule is None:
            self.schedule = WorkSchedule(self.contract_id)

    @classmethod
    def create(
        cls,
        counterparty: str,
        contract_type: ContractType | str,
        terms: dict[str, Any] | None = None,
        financial_terms: dict[str, Any] | None = None,
        territories: list[str] | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> "Contract":
        """Create a new draft contract with an empty ledger and schedule."""
        contract_type = ContractType(contract_type)
        return cls(
            contract_id=f"contract_{secrets.token_hex(8)}",
            counterparty=counterparty,
            contract_type=contract_type,
            terms=terms_from_dict(contract_type, terms),
            territories=set(territories or []),
            start_date=start_date,
            end_date=end_date,
            financial_terms=FinancialTerms.from_dict(financial_terms),
        )

    def validate(self) -> SplitReport:
        """Current split report for this contract's ledger."""
        return revalidate(self.ledger)

    def transition_to(self, new_status: ContractStatus | str, report: SplitReport | None = None) -> ContractStatus:
        """
        Move the contract to a new lifecycle status.

        Args:
            new_status: Target status
            report: Report to gate activation on; computed if omitted

        Returns:
            The previous status

        Raises:
            InvalidTransition: If the lifecycle does not allow the move
            ActivationBlocked: If activating with controlled-share or
                out-of-range errors on the ledger
        """
        new_status = ContractStatus(new_status)
        allowed = VALID_STATUS_TRANSITIONS.get(self.status, [])
        if new_status not in allowed:
            raise InvalidTransition(
                f"Invalid transition: {self.status.value} -> {new_status.value}. "
                f"Valid transitions: {[s.value for s in allowed]}"
            )

        if new_status == ContractStatus.ACTIVE:
            report = report or self.validate()
            if report.controlled_over_limit:
                raise ActivationBlocked(
                    IssueCode.CONTROLLED_SHARE_EXCEEDED.value,
                    report.controlled_total - FULL_SHARE,
                    report,
                )
            out_of_range = report.first_issue(IssueCode.SHARE_OUT_OF_RANGE)
            if out_of_range:
                raise ActivationBlocked(IssueCode.SHARE_OUT_OF_RANGE.value, out_of_range.delta, report)
            if report.imbalanced_types:
                logger.warning(
                    "Activating contract with imbalanced right types",
                    extra={
                        "contract_id": self.contract_id,
                        "imbalanced_types": [rt.value for rt in report.imbalanced_types],
                    },
                )

        previous = self.status
        self.status = new_status
        self.updated_at = datetime.utcnow().isoformat()
        self.status_history.append(
            {"from": previous.value, "to": new_status.value, "at": self.updated_at}
        )
        return previous

    def to_dict(self, include_children: bool = True) -> dict[str, Any]:
        """Convert to the nested record shape used by storage."""
        result = {
            "id": self.contract_id,
            "counterparty": self.counterparty,
            "contract_type": self.contract_type.value,
            "status": self.status.value,
            "territories": sorted(self.territories),
            "start_date": self.start_date,
            "end_date": self.end_date,
            "terms": self.terms.to_dict(),
            "financial_terms": self.financial_terms.to_dict(),
            "status_history": list(self.status_history),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_children:
            result["interested_parties"] = [p.to_dict() for p in self.ledger]
            result["schedule_works"] = [w.to_dict() for w in self.schedule]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Contract":
        """Rebuild from a canonical nested record (see normalization)."""
        contract_id = data["id"]
        contract_type = ContractType(data["contract_type"])
        contract = cls(
            contract_id=contract_id,
            counterparty=data.get("counterparty", ""),
            contract_type=contract_type,
            terms=terms_from_dict(contract_type, data.get("terms")),
            status=ContractStatus(data.get("status") or ContractStatus.DRAFT.value),
            territories=set(data.get("territories") or []),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            financial_terms=FinancialTerms.from_dict(data.get("financial_terms")),
            ledger=PartyLedger.from_records(contract_id, data.get("interested_parties") or []),
            schedule=WorkSchedule.from_records(contract_id, data.get("schedule_works") or []),
            status_history=list(data.get("status_history") or []),
        )
        if data.get("created_at"):
            contract.created_at = data["created_at"]
        if data.get("updated_at"):
            contract.updated_at = data["updated_at"]
        return contract
