"""
RightsLedger - Ledger Exceptions

Validation findings are data (see split_validator); these exceptions cover
lookups that fail and actions that a validation error blocks.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """Base exception for ledger-related errors."""
    pass


class ContractNotFound(LedgerError):
    """Raised when a contract id is unknown."""
    pass


class PartyNotFound(LedgerError):
    """Raised when a party id is not on the ledger."""
    pass


class WorkNotFound(LedgerError):
    """Raised when a work id is not on the schedule."""
    pass


class RegistrationNotFound(LedgerError):
    """Raised when a work is not tracked with a collecting body."""
    pass


class InvalidTransition(LedgerError):
    """Raised when a status change is not permitted from the current state."""
    pass


class ActionBlocked(LedgerError):
    """
    Raised when a validation error gates the requested action.

    Carries the violated invariant code, the numeric delta past the limit
    and the report that produced it so callers can render their own message.
    """

    def __init__(self, invariant: str, delta: Decimal | None = None, report: Any = None):
        self.invariant = invariant
        self.delta = delta
        self.report = report
        detail = f" (delta {delta})" if delta is not None else ""
        super().__init__(f"{invariant}{detail}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "invariant": self.invariant,
            "delta": str(self.delta) if self.delta is not None else None,
            "report": self.report.to_dict() if self.report is not None else None,
        }


class FinalizeBlocked(ActionBlocked):
    """A schedule work cannot be finalized."""
    pass


class ActivationBlocked(ActionBlocked):
    """A contract cannot be marked active."""
    pass


class ManualEntryRequired(LedgerError):
    """Raised by exporters when a work's splits are undefined."""

    def __init__(self, work_id: str, reason: str = "work declines contract inheritance"):
        self.work_id = work_id
        self.reason = reason
        super().__init__(f"Manual split entry required for work {work_id}: {reason}")
