"""
RightsLedger - Inheritance Resolver

Computes the effective royalty terms for one scheduled work by combining the
contract's Party Ledger and financial terms with the work's inheritance
flags and overrides.

Resolution never invents data. When a work declines inheritance and has
nothing of its own, the field resolves to an explicit sentinel
(``UNDEFINED`` for splits, ``UNSET`` for recoupment) instead of falling back
to contract values. Exporters must treat ``UNDEFINED`` splits as a hard stop.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from contracts import Contract
from party_ledger import InterestedParty, PartyLedger
from right_types import ALL_RIGHT_TYPES, RightType
from work_schedule import ScheduleWork

# =============================================================================
# Enums
# =============================================================================


class Unresolved(str, Enum):
    """Sentinels for fields the work leaves open. Compare equal to their value."""

    UNDEFINED = "undefined"  # Work declines contract splits and defines none
    UNSET = "unset"  # Work-defined value never set


class TermSource(Enum):
    """Where a resolved value came from."""

    CONTRACT = "contract"
    OVERRIDE = "override"
    WORK = "work"
    UNDEFINED = "undefined"


# =============================================================================
# Effective Terms
# =============================================================================


@dataclass
class EffectiveTerms:
    """
    Resolved terms for one work.

    ``splits`` is the contract's live ledger, not a copy: later edits to the
    contract ledger show through unless the work disables inheritance.
    """

    contract_id: str
    work_id: str
    splits: PartyLedger | Unresolved
    splits_source: TermSource
    recoupable: bool | Unresolved
    recoupment_source: TermSource
    inherits_controlled_status: bool
    advance: Decimal
    advance_source: TermSource
    rate_reduction: Decimal
    rate_reduction_source: TermSource
    _contract_ledger: PartyLedger | None = field(default=None, repr=False)

    @property
    def requires_manual_entry(self) -> bool:
        """True when an exporter cannot proceed without manual split entry."""
        return self.splits == Unresolved.UNDEFINED

    @property
    def controlled_parties(self) -> list[InterestedParty]:
        """The contract's ``C`` parties when inherited; otherwise empty."""
        if not self.inherits_controlled_status or self._contract_ledger is None:
            return []
        return self._contract_ledger.controlled_parties()

    def split_table(self) -> dict[str, dict[RightType, Decimal]] | None:
        """Per-party, per-right-type shares read from the live ledger, or None."""
        if isinstance(self.splits, Unresolved):
            return None
        return {
            party.party_id: {rt: party.share(rt) for rt in ALL_RIGHT_TYPES}
            for party in self.splits
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        table = self.split_table()
        return {
            "contract_id": self.contract_id,
            "work_id": self.work_id,
            "splits": (
                self.splits.value
                if isinstance(self.splits, Unresolved)
                else [party.to_dict() for party in self.splits]
            ),
            "splits_source": self.splits_source.value,
            "split_table": (
                {pid: {rt.value: str(v) for rt, v in shares.items()} for pid, shares in table.items()}
                if table is not None
                else None
            ),
            "recoupable": (
                self.recoupable.value if isinstance(self.recoupable, Unresolved) else self.recoupable
            ),
            "recoupment_source": self.recoupment_source.value,
            "controlled_parties": [party.party_id for party in self.controlled_parties],
            "advance": str(self.advance),
            "advance_source": self.advance_source.value,
            "rate_reduction": str(self.rate_reduction),
            "rate_reduction_source": self.rate_reduction_source.value,
            "requires_manual_entry": self.requires_manual_entry,
        }


# =============================================================================
# Resolution
# =============================================================================


def _resolve_amount(override: Decimal | None, contract_value: Decimal) -> tuple[Decimal, TermSource]:
    """An override that is present, zero included, replaces the contract value."""
    if override is not None:
        return override, TermSource.OVERRIDE
    return contract_value, TermSource.CONTRACT


def resolve_effective_terms(contract: Contract, work: ScheduleWork) -> EffectiveTerms:
    """
    Resolve the terms that apply to ``work`` under ``contract``.

    Args:
        contract: The work's parent contract
        work: A work scheduled under that contract

    Returns:
        EffectiveTerms

    Raises:
        ValueError: If the work belongs to a different contract
    """
    if work.contract_id != contract.contract_id:
        raise ValueError(f"Work {work.work_id} is not scheduled under contract {contract.contract_id}")

    # Royalty splits
    if work.inherits_royalty_splits:
        splits: PartyLedger | Unresolved = contract.ledger
        splits_source = TermSource.CONTRACT
    else:
        splits = Unresolved.UNDEFINED
        splits_source = TermSource.UNDEFINED

    # Recoupment status
    if work.inherits_recoupment_status:
        recoupable: bool | Unresolved = contract.financial_terms.recoupable
        recoupment_source = TermSource.CONTRACT
    elif work.recoupable is not None:
        recoupable = work.recoupable
        recoupment_source = TermSource.WORK
    else:
        recoupable = Unresolved.UNSET
        recoupment_source = TermSource.UNDEFINED

    # Financial overrides
    advance, advance_source = _resolve_amount(
        work.advance_override, contract.financial_terms.advance_amount
    )
    rate_reduction, rate_reduction_source = _resolve_amount(
        work.rate_reduction_override, contract.financial_terms.rate_reduction
    )

    return EffectiveTerms(
        contract_id=contract.contract_id,
        work_id=work.work_id,
        splits=splits,
        splits_source=splits_source,
        recoupable=recoupable,
        recoupment_source=recoupment_source,
        inherits_controlled_status=work.inherits_controlled_status,
        advance=advance,
        advance_source=advance_source,
        rate_reduction=rate_reduction,
        rate_reduction_source=rate_reduction_source,
        _contract_ledger=contract.ledger,
    )


def resolve_schedule(contract: Contract) -> list[EffectiveTerms]:
    """Resolve every work on the contract's schedule."""
    return [resolve_effective_terms(contract, work) for work in contract.schedule]
