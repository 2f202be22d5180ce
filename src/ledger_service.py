"""
RightsLedger - Ledger Service

Orchestrates the contract store and the core: loads a contract through the
normalization boundary, applies one mutation, persists the touched record,
and revalidates. Every ledger mutation returns the fresh split report so
callers never hold a stale one.

Methods return ``(success, result)`` tuples. Domain failures (unknown ids,
blocked actions, invalid transitions, bad input) come back as
``(False, {"error": ..., "error_type": ...})``; storage failures are
StorageError and propagate unchanged.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime
from functools import wraps
from typing import Any

from contracts import Contract
from inheritance_resolver import resolve_effective_terms, resolve_schedule
from ledger_errors import ActionBlocked, ContractNotFound, LedgerError, WorkNotFound
from monitoring import LoggingContext, get_logger
from normalization import normalize_contract, normalize_party, normalize_work, normalize_writer
from registration import RegistrationRecord, RegistrationTracker
from registration_export import build_registration_rows
from split_validator import SplitReport, revalidate
from storage import ContractStore, MemoryStorage

logger = get_logger(__name__)

# Maximum audit events kept in memory
MAX_EVENTS = 1000


@dataclass
class LedgerEvent:
    """Audit trail entry."""

    event_id: str
    event_type: str
    timestamp: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp,
            "data": self.data,
        }


def _failure(error: Exception) -> tuple[bool, dict[str, Any]]:
    result: dict[str, Any] = {"error": str(error), "error_type": type(error).__name__}
    if isinstance(error, ActionBlocked):
        result.update(error.to_dict())
    return False, result


def guarded(method):
    """Turn domain errors raised by a service method into a failure tuple."""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except (LedgerError, ValueError) as e:
            logger.info(
                "Ledger operation rejected",
                extra={"operation": method.__name__, "error_type": type(e).__name__, "reason": str(e)},
            )
            return _failure(e)

    return wrapper


class RoyaltyLedgerService:
    """
    Service for managing contracts, their party ledgers and schedules.

    Integrates the split validator, inheritance resolver and registration
    tracker with a ContractStore backend.
    """

    def __init__(self, store: ContractStore | None = None):
        """
        Initialize the ledger service.

        Args:
            store: Storage backend; in-memory storage if omitted
        """
        self.store = store if store is not None else MemoryStorage()

        # Audit trail
        self.events: list[LedgerEvent] = []

    # =========================================================================
    # Loading
    # =========================================================================

    def load_contract(self, contract_id: str) -> Contract:
        """
        Load a contract with its ledger and schedule.

        Raises:
            ContractNotFound: If the store has no such contract
        """
        record = self.store.load_contract(contract_id)
        if record is None:
            raise ContractNotFound(f"Contract {contract_id} not found")
        return Contract.from_dict(normalize_contract(record))

    def _report(self, contract: Contract) -> SplitReport:
        report = contract.validate()
        logger.debug(
            "Ledger revalidated",
            extra={
                "contract_id": contract.contract_id,
                "controlled_total": str(report.controlled_total),
                "issue_count": len(report.issues),
            },
        )
        return report

    def _touch(self, contract: Contract) -> None:
        contract.updated_at = datetime.utcnow().isoformat()
        self.store.save_contract(contract.to_dict(include_children=False))

    # =========================================================================
    # Contracts
    # =========================================================================

    @guarded
    def create_contract(
        self,
        counterparty: str,
        contract_type: str,
        terms: dict[str, Any] | None = None,
        financial_terms: dict[str, Any] | None = None,
        territories: list[str] | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> tuple[bool, dict[str, Any]]:
        """
        Create a draft contract with an empty ledger and schedule.

        Returns:
            Tuple of (success, contract record)
        """
        if not counterparty or not str(counterparty).strip():
            raise ValueError("counterparty is required")

        # Route legacy financial field names through the same mapping as stored records
        canonical = normalize_contract({
            "id": "new",
            "counterparty": counterparty,
            "contract_type": contract_type,
            "terms": terms or {},
            "financial_terms": financial_terms or {},
            "territories": territories,
        })
        contract = Contract.create(
            counterparty=counterparty,
            contract_type=contract_type,
            terms=canonical["terms"],
            financial_terms=canonical["financial_terms"],
            territories=canonical["territories"],
            start_date=start_date,
            end_date=end_date,
        )
        self.store.save_contract(contract.to_dict())

        self._emit_event("contract_created", {
            "contract_id": contract.contract_id,
            "contract_type": contract.contract_type.value,
        })
        logger.info("Contract created", extra={"contract_id": contract.contract_id})
        return True, contract.to_dict()

    @guarded
    def get_contract(self, contract_id: str) -> tuple[bool, dict[str, Any]]:
        """Contract with children and its current split report."""
        contract = self.load_contract(contract_id)
        result = contract.to_dict()
        result["report"] = self._report(contract).to_dict()
        return True, result

    def list_contracts(self) -> list[dict[str, Any]]:
        """Contract summaries, newest first."""
        records = self.store.list_contracts()
        return sorted(records, key=lambda r: r.get("created_at") or "", reverse=True)

    @guarded
    def transition_contract(self, contract_id: str, new_status: str) -> tuple[bool, dict[str, Any]]:
        """
        Move a contract through its lifecycle.

        Activation is refused with an ActivationBlocked failure while the
        ledger has controlled-share or out-of-range errors.
        """
        with LoggingContext(contract_id=contract_id, operation="transition_contract"):
            contract = self.load_contract(contract_id)
            report = self._report(contract)
            previous = contract.transition_to(new_status, report)
            self._touch(contract)

            self._emit_event("contract_status_changed", {
                "contract_id": contract_id,
                "from": previous.value,
                "to": contract.status.value,
            })
            logger.info("Contract status changed", extra={"from": previous.value, "to": contract.status.value})
            return True, {
                "contract_id": contract_id,
                "previous_status": previous.value,
                "status": contract.status.value,
                "report": report.to_dict(),
            }

    # =========================================================================
    # Party Ledger
    # =========================================================================

    @guarded
    def validate(self, contract_id: str) -> tuple[bool, dict[str, Any]]:
        """Split report for a contract's ledger."""
        contract = self.load_contract(contract_id)
        return True, self._report(contract).to_dict()

    @guarded
    def add_party(self, contract_id: str, party_data: dict[str, Any]) -> tuple[bool, dict[str, Any]]:
        """
        Add an interested party and revalidate.

        Returns:
            Tuple of (success, {"party": ..., "report": ...})
        """
        with LoggingContext(contract_id=contract_id, operation="add_party"):
            contract = self.load_contract(contract_id)
            party_id = contract.ledger.add_party(contract_id, normalize_party(party_data))
            party = contract.ledger.get_party(party_id)
            self.store.save_party(contract_id, party.to_dict())
            report = self._report(contract)

            self._emit_event("party_added", {"contract_id": contract_id, "party_id": party_id})
            logger.info("Party added", extra={"party_id": party_id})
            return True, {"party": party.to_dict(), "report": report.to_dict()}

    @guarded
    def update_share(
        self,
        contract_id: str,
        party_id: str,
        right_type: str,
        percentage: Any,
    ) -> tuple[bool, dict[str, Any]]:
        """Set one party's share for one right type and revalidate."""
        with LoggingContext(contract_id=contract_id, operation="update_share"):
            contract = self.load_contract(contract_id)
            stored = contract.ledger.update_share(party_id, right_type, percentage)
            party = contract.ledger.get_party(party_id)
            self.store.save_party(contract_id, party.to_dict())
            report = self._report(contract)

            self._emit_event("share_updated", {
                "contract_id": contract_id,
                "party_id": party_id,
                "right_type": str(right_type),
                "percentage": str(stored),
            })
            return True, {"party": party.to_dict(), "report": report.to_dict()}

    @guarded
    def set_controlled_status(self, contract_id: str, party_id: str, status: str) -> tuple[bool, dict[str, Any]]:
        """Flip a party between C and NC and revalidate."""
        with LoggingContext(contract_id=contract_id, operation="set_controlled_status"):
            contract = self.load_contract(contract_id)
            contract.ledger.set_controlled_status(party_id, status)
            party = contract.ledger.get_party(party_id)
            self.store.save_party(contract_id, party.to_dict())
            report = self._report(contract)

            self._emit_event("controlled_status_changed", {
                "contract_id": contract_id,
                "party_id": party_id,
                "controlled_status": party.controlled_status.value,
            })
            return True, {"party": party.to_dict(), "report": report.to_dict()}

    @guarded
    def remove_party(self, contract_id: str, party_id: str) -> tuple[bool, dict[str, Any]]:
        """Remove a party and revalidate."""
        with LoggingContext(contract_id=contract_id, operation="remove_party"):
            contract = self.load_contract(contract_id)
            contract.ledger.remove_party(party_id)
            self.store.delete_party(party_id)
            report = self._report(contract)

            self._emit_event("party_removed", {"contract_id": contract_id, "party_id": party_id})
            return True, {"party_id": party_id, "report": report.to_dict()}

    # =========================================================================
    # Work Schedule
    # =========================================================================

    def _save_work(self, contract: Contract, work_id: str) -> dict[str, Any]:
        record = contract.schedule.get_work(work_id).to_dict()
        self.store.save_schedule_work(contract.contract_id, record)
        return record

    @guarded
    def add_work(self, contract_id: str, work_data: dict[str, Any]) -> tuple[bool, dict[str, Any]]:
        """Schedule a work; inheritance flags default to true."""
        with LoggingContext(contract_id=contract_id, operation="add_work"):
            contract = self.load_contract(contract_id)
            work_id = contract.schedule.add_work(contract_id, normalize_work(work_data))
            record = self._save_work(contract, work_id)

            self._emit_event("work_added", {"contract_id": contract_id, "work_id": work_id})
            logger.info("Work scheduled", extra={"work_id": work_id})
            return True, record

    @guarded
    def get_work(self, contract_id: str, work_id: str) -> tuple[bool, dict[str, Any]]:
        contract = self.load_contract(contract_id)
        return True, contract.schedule.get_work(work_id).to_dict()

    @guarded
    def update_work(self, contract_id: str, work_id: str, changes: dict[str, Any]) -> tuple[bool, dict[str, Any]]:
        """Edit a work's descriptive fields or inheritance flags."""
        contract = self.load_contract(contract_id)
        contract.schedule.update_work(work_id, **changes)
        record = self._save_work(contract, work_id)

        self._emit_event("work_updated", {
            "contract_id": contract_id,
            "work_id": work_id,
            "fields": sorted(changes),
        })
        return True, record

    @guarded
    def remove_work(self, contract_id: str, work_id: str) -> tuple[bool, dict[str, Any]]:
        contract = self.load_contract(contract_id)
        contract.schedule.remove_work(work_id)
        self.store.delete_schedule_work(work_id)

        self._emit_event("work_removed", {"contract_id": contract_id, "work_id": work_id})
        return True, {"work_id": work_id}

    @guarded
    def set_override(self, contract_id: str, work_id: str, name: str, value: Any) -> tuple[bool, dict[str, Any]]:
        """Set a work-specific financial override; 0 is a real override."""
        contract = self.load_contract(contract_id)
        stored = contract.schedule.set_override(work_id, name, value)
        record = self._save_work(contract, work_id)

        self._emit_event("override_set", {
            "contract_id": contract_id,
            "work_id": work_id,
            "field": name,
            "value": str(stored),
        })
        return True, record

    @guarded
    def clear_override(self, contract_id: str, work_id: str, name: str) -> tuple[bool, dict[str, Any]]:
        """Remove an override so the contract value applies again."""
        contract = self.load_contract(contract_id)
        contract.schedule.clear_override(work_id, name)
        record = self._save_work(contract, work_id)

        self._emit_event("override_cleared", {"contract_id": contract_id, "work_id": work_id, "field": name})
        return True, record

    @guarded
    def add_writer(self, contract_id: str, work_id: str, writer_data: dict[str, Any]) -> tuple[bool, dict[str, Any]]:
        """Credit a writer on a work and report the writer share total."""
        contract = self.load_contract(contract_id)
        writer_id = contract.schedule.add_writer(work_id, normalize_writer(writer_data))
        record = self._save_work(contract, work_id)
        work = contract.schedule.get_work(work_id)
        report = revalidate(contract.ledger, writer_shares=work.writer_shares())

        self._emit_event("writer_added", {"contract_id": contract_id, "work_id": work_id, "writer_id": writer_id})
        return True, {"writer_id": writer_id, "work": record, "report": report.to_dict()}

    @guarded
    def remove_writer(self, contract_id: str, work_id: str, writer_id: str) -> tuple[bool, dict[str, Any]]:
        contract = self.load_contract(contract_id)
        contract.schedule.remove_writer(work_id, writer_id)
        record = self._save_work(contract, work_id)

        self._emit_event("writer_removed", {"contract_id": contract_id, "work_id": work_id, "writer_id": writer_id})
        return True, record

    @guarded
    def finalize_work(self, contract_id: str, work_id: str) -> tuple[bool, dict[str, Any]]:
        """
        Finalize a work for external registration.

        Refused with a FinalizeBlocked failure (invariant code and delta)
        unless writer shares total exactly 100 and no controlled share
        exceeds 100.
        """
        with LoggingContext(contract_id=contract_id, work_id=work_id, operation="finalize_work"):
            contract = self.load_contract(contract_id)
            work = contract.schedule.get_work(work_id)
            report = revalidate(contract.ledger, writer_shares=work.writer_shares())
            try:
                contract.schedule.finalize_work(work_id, report)
            except ActionBlocked as e:
                logger.warning(
                    "Finalize blocked",
                    extra={"invariant": e.invariant, "delta": str(e.delta)},
                )
                raise
            record = self._save_work(contract, work_id)

            self._emit_event("work_finalized", {"contract_id": contract_id, "work_id": work_id})
            return True, {"work": record, "report": report.to_dict()}

    # =========================================================================
    # Effective Terms and Export
    # =========================================================================

    @guarded
    def resolve_effective_terms(self, contract_id: str, work_id: str) -> tuple[bool, dict[str, Any]]:
        """Terms that apply to one work, read live from the contract."""
        contract = self.load_contract(contract_id)
        terms = resolve_effective_terms(contract, contract.schedule.get_work(work_id))
        return True, terms.to_dict()

    @guarded
    def resolve_schedule(self, contract_id: str) -> tuple[bool, dict[str, Any]]:
        contract = self.load_contract(contract_id)
        return True, {
            "contract_id": contract_id,
            "works": [terms.to_dict() for terms in resolve_schedule(contract)],
        }

    @guarded
    def export_registration_rows(self, contract_id: str, work_id: str) -> tuple[bool, dict[str, Any]]:
        """
        Registration export rows for one work.

        A work that declines split inheritance fails with
        ManualEntryRequired instead of exporting zero shares.
        """
        contract = self.load_contract(contract_id)
        rows = build_registration_rows(contract, contract.schedule.get_work(work_id))
        self._emit_event("registration_exported", {"contract_id": contract_id, "work_id": work_id})
        return True, {"contract_id": contract_id, "work_id": work_id, "rows": rows}

    # =========================================================================
    # Registration Status
    # =========================================================================

    def _tracker(self, work_id: str) -> RegistrationTracker:
        records = self.store.load_registrations(work_id)
        return RegistrationTracker([RegistrationRecord.from_dict(r) for r in records])

    @guarded
    def register_work(
        self,
        contract_id: str,
        work_id: str,
        body: str,
        territory: str | None = None,
        work_number: str | None = None,
    ) -> tuple[bool, dict[str, Any]]:
        """Start tracking a work with a collecting body."""
        contract = self.load_contract(contract_id)
        if work_id not in contract.schedule:
            raise WorkNotFound(f"Work {work_id} not found on contract {contract_id}")

        record = self._tracker(work_id).register(work_id, body, territory=territory, work_number=work_number)
        self.store.save_registration(record.to_dict())

        self._emit_event("registration_tracked", {"work_id": work_id, "body": record.body.value})
        return True, record.to_dict()

    @guarded
    def transition_registration(
        self,
        work_id: str,
        body: str,
        new_status: str,
        manual: bool = False,
        work_number: str | None = None,
        note: str | None = None,
    ) -> tuple[bool, dict[str, Any]]:
        """
        Move a registration to a new status.

        Protocol transitions only, unless ``manual`` is set for an
        administrative correction.
        """
        with LoggingContext(work_id=work_id, operation="transition_registration"):
            record = self._tracker(work_id).transition(
                work_id, body, new_status, manual=manual, work_number=work_number, note=note
            )
            self.store.save_registration(record.to_dict())

            self._emit_event("registration_status_changed", {
                "work_id": work_id,
                "body": record.body.value,
                "status": record.status.value,
                "manual": manual,
            })
            return True, record.to_dict()

    @guarded
    def acknowledge_registration(
        self,
        work_id: str,
        body: str,
        accepted: bool,
        work_number: str | None = None,
        response_message: str | None = None,
    ) -> tuple[bool, dict[str, Any]]:
        """Apply a collecting body's accept/reject response."""
        record = self._tracker(work_id).apply_acknowledgement(
            work_id, body, accepted, work_number=work_number, response_message=response_message
        )
        self.store.save_registration(record.to_dict())

        self._emit_event("registration_acknowledged", {
            "work_id": work_id,
            "body": record.body.value,
            "accepted": accepted,
        })
        return True, record.to_dict()

    def list_registrations(self, work_id: str | None = None) -> list[dict[str, Any]]:
        return self.store.load_registrations(work_id)

    # =========================================================================
    # Audit Trail
    # =========================================================================

    def get_events(self, limit: int = 100, event_type: str | None = None) -> list[dict[str, Any]]:
        """Most recent audit events, newest first."""
        events = self.events
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return [e.to_dict() for e in reversed(events[-limit:])]

    def _emit_event(self, event_type: str, data: dict[str, Any]) -> None:
        """Emit an internal event for audit trail."""
        event = LedgerEvent(
            event_id=f"evt_{secrets.token_hex(8)}",
            event_type=event_type,
            timestamp=datetime.utcnow().isoformat(),
            data=data,
        )
        self.events.append(event)
        if len(self.events) > MAX_EVENTS:
            self.events = self.events[-MAX_EVENTS:]
