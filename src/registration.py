"""
RightsLedger - Registration Status Tracker

Tracks each scheduled work's registration with external collecting bodies
(PROs/CMOs). Every (work, collecting body) pair is an independent state
machine; there is no aggregation across bodies.

Protocol edges:
    not_registered       -> pending_registration
    pending_registration -> fully_registered | needs_amendment
    needs_amendment      -> pending_registration   (retry)

Automatic transitions (acknowledgement processing) may only follow those
edges. A manual transition may move to any other state to model real-world
corrections, but the caller has to ask for it with ``manual=True``.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ledger_errors import InvalidTransition, LedgerError, RegistrationNotFound

logger = logging.getLogger(__name__)

# =============================================================================
# Enums
# =============================================================================


class RegistrationStatus(Enum):
    """Registration state of one work with one collecting body."""

    NOT_REGISTERED = "not_registered"
    PENDING_REGISTRATION = "pending_registration"
    FULLY_REGISTERED = "fully_registered"
    NEEDS_AMENDMENT = "needs_amendment"


class CollectingBody(Enum):
    """External rights-collection organizations."""

    ASCAP = "ascap"
    BMI = "bmi"
    SESAC = "sesac"
    SOCAN = "socan"
    PRS = "prs"
    GEMA = "gema"
    SACEM = "sacem"
    MLC = "mlc"
    HFA = "hfa"
    OTHER = "other"


# Edges that fire without an explicit manual request
PROTOCOL_TRANSITIONS = {
    RegistrationStatus.NOT_REGISTERED: [RegistrationStatus.PENDING_REGISTRATION],
    RegistrationStatus.PENDING_REGISTRATION: [
        RegistrationStatus.FULLY_REGISTERED,
        RegistrationStatus.NEEDS_AMENDMENT,
    ],
    RegistrationStatus.NEEDS_AMENDMENT: [RegistrationStatus.PENDING_REGISTRATION],
    RegistrationStatus.FULLY_REGISTERED: [],
}


def can_transition(current: RegistrationStatus, target: RegistrationStatus, manual: bool = False) -> bool:
    """Whether ``current -> target`` is allowed for the given mode."""
    if current == target:
        return False
    if manual:
        return True
    return target in PROTOCOL_TRANSITIONS.get(current, [])


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class StatusChange:
    """One entry in a registration's history."""

    from_status: RegistrationStatus
    to_status: RegistrationStatus
    manual: bool
    at: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "from": self.from_status.value,
            "to": self.to_status.value,
            "manual": self.manual,
            "at": self.at,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StatusChange":
        return cls(
            from_status=RegistrationStatus(data["from"]),
            to_status=RegistrationStatus(data["to"]),
            manual=bool(data.get("manual", False)),
            at=data.get("at") or datetime.utcnow().isoformat(),
            note=data.get("note"),
        )


@dataclass
class RegistrationRecord:
    """Registration of one work with one collecting body."""

    record_id: str
    work_id: str
    body: CollectingBody
    territory: str | None = None
    work_number: str | None = None  # Body-assigned external work number
    status: RegistrationStatus = RegistrationStatus.NOT_REGISTERED
    history: list[StatusChange] = field(default_factory=list)
    updated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.record_id,
            "work_id": self.work_id,
            "body": self.body.value,
            "territory": self.territory,
            "work_number": self.work_number,
            "status": self.status.value,
            "history": [change.to_dict() for change in self.history],
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RegistrationRecord":
        return cls(
            record_id=data.get("id") or f"reg_{secrets.token_hex(8)}",
            work_id=data["work_id"],
            body=CollectingBody(data["body"]),
            territory=data.get("territory"),
            work_number=data.get("work_number"),
            status=RegistrationStatus(data.get("status") or RegistrationStatus.NOT_REGISTERED.value),
            history=[StatusChange.from_dict(h) for h in data.get("history") or []],
            updated_at=data.get("updated_at") or datetime.utcnow().isoformat(),
        )


# =============================================================================
# Tracker
# =============================================================================


class RegistrationTracker:
    """Registration records keyed by (work id, collecting body)."""

    def __init__(self, records: list[RegistrationRecord] | None = None):
        self._records: dict[tuple[str, CollectingBody], RegistrationRecord] = {}
        for record in records or []:
            self._records[(record.work_id, record.body)] = record

    def __len__(self) -> int:
        return len(self._records)

    def register(
        self,
        work_id: str,
        body: CollectingBody | str,
        territory: str | None = None,
        work_number: str | None = None,
    ) -> RegistrationRecord:
        """
        Start tracking a (work, body) pair in ``not_registered``.

        Raises:
            LedgerError: If the pair is already tracked
        """
        body = CollectingBody(body)
        key = (work_id, body)
        if key in self._records:
            raise LedgerError(f"Work {work_id} is already tracked with {body.value}")
        record = RegistrationRecord(
            record_id=f"reg_{secrets.token_hex(8)}",
            work_id=work_id,
            body=body,
            territory=territory,
            work_number=work_number,
        )
        self._records[key] = record
        return record

    def get(self, work_id: str, body: CollectingBody | str) -> RegistrationRecord:
        """Look up a record, raising RegistrationNotFound if the pair is untracked."""
        body = CollectingBody(body)
        record = self._records.get((work_id, body))
        if record is None:
            raise RegistrationNotFound(f"Work {work_id} has no registration with {body.value}")
        return record

    def records_for_work(self, work_id: str) -> list[RegistrationRecord]:
        return [r for (wid, _), r in self._records.items() if wid == work_id]

    def transition(
        self,
        work_id: str,
        body: CollectingBody | str,
        new_status: RegistrationStatus | str,
        manual: bool = False,
        work_number: str | None = None,
        note: str | None = None,
    ) -> RegistrationRecord:
        """
        Move one (work, body) registration to ``new_status``.

        Raises:
            InvalidTransition: If the move is not allowed in this mode
        """
        record = self.get(work_id, body)
        new_status = RegistrationStatus(new_status)

        if not can_transition(record.status, new_status, manual=manual):
            allowed = [s.value for s in PROTOCOL_TRANSITIONS.get(record.status, [])]
            hint = "" if manual else f" Protocol transitions: {allowed}; pass manual=True to correct."
            raise InvalidTransition(
                f"Invalid transition: {record.status.value} -> {new_status.value}.{hint}"
            )

        record.history.append(
            StatusChange(from_status=record.status, to_status=new_status, manual=manual, note=note)
        )
        record.status = new_status
        if work_number:
            record.work_number = work_number
        record.updated_at = datetime.utcnow().isoformat()

        logger.info(
            "Registration status changed",
            extra={
                "work_id": work_id,
                "body": record.body.value,
                "status": new_status.value,
                "manual": manual,
            },
        )
        return record

    def apply_acknowledgement(
        self,
        work_id: str,
        body: CollectingBody | str,
        accepted: bool,
        work_number: str | None = None,
        response_message: str | None = None,
    ) -> RegistrationRecord:
        """
        Process a collecting body's response to a pending registration.

        Accepted responses move to ``fully_registered``; rejections to
        ``needs_amendment``. Both are automatic protocol transitions.
        """
        target = RegistrationStatus.FULLY_REGISTERED if accepted else RegistrationStatus.NEEDS_AMENDMENT
        return self.transition(
            work_id, body, target, manual=False, work_number=work_number, note=response_message
        )

    def to_list(self) -> list[dict[str, Any]]:
        return [record.to_dict() for record in self._records.values()]
