"""
RightsLedger - Party Ledger

Holds, per contract, the interested parties and their per-right-type
percentage shares together with each party's controlled/non-controlled flag.

The ledger stores raw values. It never rejects an out-of-range percentage:
range and balance checks belong to the split validator so that a half-edited
ledger is visible rather than refused. Callers re-run
``split_validator.revalidate`` after every mutation.
"""

import copy
import logging
import secrets
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from ledger_errors import PartyNotFound
from right_types import (
    ALL_RIGHT_TYPES,
    ControlledStatus,
    PartyType,
    RightType,
    empty_shares,
    parse_right_type,
    to_percentage,
)

logger = logging.getLogger(__name__)

# Optional identifier/contact columns carried through unchanged
PASSTHROUGH_FIELDS = (
    "ipi_number",
    "cae_number",
    "affiliation",
    "original_publisher",
    "administrator_role",
    "co_publisher",
    "email",
    "phone",
    "address",
    "tax_id",
)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class InterestedParty:
    """A contributor attached to exactly one contract."""

    party_id: str
    contract_id: str
    name: str
    alias: str | None = None
    party_type: PartyType = PartyType.WRITER
    controlled_status: ControlledStatus = ControlledStatus.NON_CONTROLLED
    # One raw percentage per right type, independent of each other
    shares: dict[RightType, Decimal] = field(default_factory=empty_shares)
    details: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @property
    def is_controlled(self) -> bool:
        return self.controlled_status == ControlledStatus.CONTROLLED

    def share(self, right_type: RightType) -> Decimal:
        """Percentage held for one right type (0 if never set)."""
        return self.shares.get(right_type, Decimal("0"))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the flat record shape used by storage and the API."""
        result = {
            "id": self.party_id,
            "contract_id": self.contract_id,
            "name": self.name,
            "dba_alias": self.alias,
            "party_type": self.party_type.value,
            "controlled_status": self.controlled_status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        for right_type in ALL_RIGHT_TYPES:
            result[right_type.field_name] = str(self.share(right_type))
        result.update(self.details)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any], contract_id: str | None = None) -> "InterestedParty":
        """
        Build a party from a canonical record.

        Missing percentages default to 0 and a missing controlled status
        defaults to ``NC``.
        """
        shares = empty_shares()
        for right_type in ALL_RIGHT_TYPES:
            if right_type.field_name in data:
                shares[right_type] = to_percentage(data[right_type.field_name])

        party = cls(
            party_id=data.get("id") or f"party_{secrets.token_hex(8)}",
            contract_id=contract_id or data.get("contract_id", ""),
            name=data.get("name", ""),
            alias=data.get("dba_alias"),
            party_type=PartyType(data.get("party_type") or PartyType.WRITER.value),
            controlled_status=ControlledStatus(
                data.get("controlled_status") or ControlledStatus.NON_CONTROLLED.value
            ),
            shares=shares,
            details={k: data[k] for k in PASSTHROUGH_FIELDS if data.get(k) is not None},
        )
        if data.get("created_at"):
            party.created_at = data["created_at"]
        if data.get("updated_at"):
            party.updated_at = data["updated_at"]
        return party


# =============================================================================
# Party Ledger
# =============================================================================


class PartyLedger:
    """
    Ordered collection of a contract's interested parties.

    No uniqueness constraint applies to names: the same writer may appear
    twice under two IPI numbers.
    """

    def __init__(self, contract_id: str, parties: list[InterestedParty] | None = None):
        self.contract_id = contract_id
        self._parties: dict[str, InterestedParty] = {}
        # Bumped on every mutation; lets callers tell a stale report from a fresh one
        self.revision = 0
        for party in parties or []:
            self._parties[party.party_id] = party

    def __iter__(self) -> Iterator[InterestedParty]:
        return iter(list(self._parties.values()))

    def __len__(self) -> int:
        return len(self._parties)

    def __contains__(self, party_id: object) -> bool:
        return party_id in self._parties

    @property
    def parties(self) -> list[InterestedParty]:
        return list(self._parties.values())

    def add_party(self, contract_id: str, party_data: dict[str, Any]) -> str:
        """
        Append a party to the ledger.

        Args:
            contract_id: Contract the party belongs to; must be this ledger's
            party_data: Canonical party fields; percentages default to 0

        Returns:
            The new party id
        """
        if contract_id != self.contract_id:
            raise ValueError(
                f"Party for contract {contract_id} cannot join ledger of {self.contract_id}"
            )
        party = InterestedParty.from_dict(party_data, contract_id=contract_id)
        self._parties[party.party_id] = party
        self.revision += 1
        logger.debug("Party added", extra={"contract_id": contract_id, "party_id": party.party_id})
        return party.party_id

    def get_party(self, party_id: str) -> InterestedParty:
        """Look up a party, raising PartyNotFound if absent."""
        party = self._parties.get(party_id)
        if party is None:
            raise PartyNotFound(f"Party {party_id} not found on contract {self.contract_id}")
        return party

    def remove_party(self, party_id: str) -> InterestedParty:
        """Remove a party. Totals change, so the caller must revalidate."""
        party = self.get_party(party_id)
        del self._parties[party_id]
        self.revision += 1
        logger.debug("Party removed", extra={"contract_id": self.contract_id, "party_id": party_id})
        return party

    def update_share(self, party_id: str, right_type: RightType | str, percentage: Any) -> Decimal:
        """
        Store a raw percentage for one right type.

        Out-of-range values are kept as entered; the split validator flags them.

        Returns:
            The stored value
        """
        party = self.get_party(party_id)
        value = to_percentage(percentage)
        party.shares[parse_right_type(right_type)] = value
        party.updated_at = datetime.utcnow().isoformat()
        self.revision += 1
        return value

    def set_controlled_status(self, party_id: str, status: ControlledStatus | str) -> None:
        """Flip a party between ``C`` and ``NC``."""
        party = self.get_party(party_id)
        party.controlled_status = ControlledStatus(status)
        party.updated_at = datetime.utcnow().isoformat()
        self.revision += 1

    def controlled_parties(self) -> list[InterestedParty]:
        """Parties flagged ``C``."""
        return [party for party in self._parties.values() if party.is_controlled]

    def snapshot(self) -> "PartyLedger":
        """Detached copy; later edits to this ledger do not reach it."""
        clone = PartyLedger(self.contract_id, copy.deepcopy(self.parties))
        clone.revision = self.revision
        return clone

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "contract_id": self.contract_id,
            "revision": self.revision,
            "parties": [party.to_dict() for party in self._parties.values()],
        }

    @classmethod
    def from_records(cls, contract_id: str, records: list[dict[str, Any]]) -> "PartyLedger":
        """Rebuild a ledger from stored party records."""
        return cls(contract_id, [InterestedParty.from_dict(r, contract_id=contract_id) for r in records])
