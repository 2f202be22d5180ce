"""
RightsLedger - Work Schedule

Holds, per contract, the musical works scheduled under it. Each work carries
three inheritance flags and optional work-specific overrides; those are the
only fields the inheritance resolver consumes. Works also carry writer
records whose shares gate finalization.

Override fields distinguish "absent" (None) from "explicitly set", so an
advance can legitimately be overridden down to 0.
"""

import logging
import secrets
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from ledger_errors import FinalizeBlocked, WorkNotFound
from right_types import FULL_SHARE, ZERO_SHARE, ControlledStatus, to_flag, to_percentage
from split_validator import IssueCode, SplitReport

logger = logging.getLogger(__name__)

OVERRIDE_FIELDS = ("advance_override", "rate_reduction_override")
INHERITANCE_FLAGS = (
    "inherits_royalty_splits",
    "inherits_recoupment_status",
    "inherits_controlled_status",
)
# Plain descriptive fields update_work may touch
EDITABLE_FIELDS = (
    "title",
    "artist",
    "album",
    "work_code",
    "isrc",
    "iswc",
    "copyright_id",
    "recoupable",
) + INHERITANCE_FLAGS + OVERRIDE_FIELDS


def _optional_flag(value: Any, name: str) -> bool | None:
    return None if value is None else to_flag(value, name)


class WorkStatus(Enum):
    """Completeness of a scheduled work's metadata."""

    DRAFT = "draft"
    FINAL = "final"  # Complete enough to register externally


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class WorkWriter:
    """Writer credit on a scheduled work (writer-only percentage)."""

    writer_id: str
    name: str
    share: Decimal = field(default_factory=lambda: Decimal("0"))
    controlled_status: ControlledStatus = ControlledStatus.NON_CONTROLLED
    ipi_number: str | None = None
    pro_affiliation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.writer_id,
            "name": self.name,
            "share": str(self.share),
            "controlled_status": self.controlled_status.value,
            "ipi_number": self.ipi_number,
            "pro_affiliation": self.pro_affiliation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkWriter":
        """Build from a canonical writer record."""
        return cls(
            writer_id=data.get("id") or f"writer_{secrets.token_hex(6)}",
            name=data.get("name", ""),
            share=to_percentage(data.get("share")),
            controlled_status=ControlledStatus(data.get("controlled_status") or "NC"),
            ipi_number=data.get("ipi_number"),
            pro_affiliation=data.get("pro_affiliation"),
        )


@dataclass
class ScheduleWork:
    """A musical work scheduled under exactly one contract."""

    work_id: str
    contract_id: str
    title: str
    artist: str | None = None
    album: str | None = None
    # External identifiers
    work_code: str | None = None
    isrc: str | None = None
    iswc: str | None = None
    copyright_id: str | None = None  # Link to an external catalog record
    # Inheritance flags
    inherits_royalty_splits: bool = True
    inherits_recoupment_status: bool = True
    inherits_controlled_status: bool = True
    # Work-specific overrides; None means absent
    advance_override: Decimal | None = None
    rate_reduction_override: Decimal | None = None
    # Only consulted when recoupment is not inherited; None means never set
    recoupable: bool | None = None
    writers: list[WorkWriter] = field(default_factory=list)
    status: WorkStatus = WorkStatus.DRAFT
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def writer_shares(self) -> list[Decimal]:
        return [w.share for w in self.writers]

    def controlled_writer_share(self) -> Decimal:
        """Sum of shares held by controlled writers."""
        return sum(
            (w.share for w in self.writers if w.controlled_status == ControlledStatus.CONTROLLED),
            ZERO_SHARE,
        )

    def has_override(self, name: str) -> bool:
        return getattr(self, name) is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.work_id,
            "contract_id": self.contract_id,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "work_code": self.work_code,
            "isrc": self.isrc,
            "iswc": self.iswc,
            "copyright_id": self.copyright_id,
            "inherits_royalty_splits": self.inherits_royalty_splits,
            "inherits_recoupment_status": self.inherits_recoupment_status,
            "inherits_controlled_status": self.inherits_controlled_status,
            "advance_override": str(self.advance_override) if self.advance_override is not None else None,
            "rate_reduction_override": (
                str(self.rate_reduction_override) if self.rate_reduction_override is not None else None
            ),
            "recoupable": self.recoupable,
            "writers": [w.to_dict() for w in self.writers],
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], contract_id: str | None = None) -> "ScheduleWork":
        """Build from a canonical work record; flags default to inheriting."""
        work = cls(
            work_id=data.get("id") or f"work_{secrets.token_hex(8)}",
            contract_id=contract_id or data.get("contract_id", ""),
            title=data.get("title", ""),
            artist=data.get("artist"),
            album=data.get("album"),
            work_code=data.get("work_code"),
            isrc=data.get("isrc"),
            iswc=data.get("iswc"),
            copyright_id=data.get("copyright_id"),
            recoupable=_optional_flag(data.get("recoupable"), "recoupable"),
            writers=[WorkWriter.from_dict(w) for w in data.get("writers") or []],
            status=WorkStatus(data.get("status") or WorkStatus.DRAFT.value),
        )
        for flag in INHERITANCE_FLAGS:
            if data.get(flag) is not None:
                setattr(work, flag, to_flag(data[flag], flag))
        for name in OVERRIDE_FIELDS:
            if data.get(name) is not None:
                setattr(work, name, to_percentage(data[name]))
        if data.get("created_at"):
            work.created_at = data["created_at"]
        if data.get("updated_at"):
            work.updated_at = data["updated_at"]
        return work


# =============================================================================
# Work Schedule
# =============================================================================


class WorkSchedule:
    """Ordered collection of the works scheduled under one contract."""

    def __init__(self, contract_id: str, works: list[ScheduleWork] | None = None):
        self.contract_id = contract_id
        self._works: dict[str, ScheduleWork] = {}
        for work in works or []:
            self._works[work.work_id] = work

    def __iter__(self) -> Iterator[ScheduleWork]:
        return iter(list(self._works.values()))

    def __len__(self) -> int:
        return len(self._works)

    def __contains__(self, work_id: object) -> bool:
        return work_id in self._works

    @property
    def works(self) -> list[ScheduleWork]:
        return list(self._works.values())

    def add_work(self, contract_id: str, work_data: dict[str, Any]) -> str:
        """
        Schedule a work under this contract.

        Returns:
            The new work id
        """
        if contract_id != self.contract_id:
            raise ValueError(
                f"Work for contract {contract_id} cannot join schedule of {self.contract_id}"
            )
        work = ScheduleWork.from_dict(work_data, contract_id=contract_id)
        self._works[work.work_id] = work
        logger.debug("Work scheduled", extra={"contract_id": contract_id, "work_id": work.work_id})
        return work.work_id

    def get_work(self, work_id: str) -> ScheduleWork:
        """Look up a work, raising WorkNotFound if absent."""
        work = self._works.get(work_id)
        if work is None:
            raise WorkNotFound(f"Work {work_id} not found on contract {self.contract_id}")
        return work

    def remove_work(self, work_id: str) -> ScheduleWork:
        """Remove a work from the schedule."""
        work = self.get_work(work_id)
        del self._works[work_id]
        return work

    def update_work(self, work_id: str, **changes: Any) -> ScheduleWork:
        """
        Update descriptive fields, flags or overrides.

        Raises:
            ValueError: If a field is not editable
        """
        work = self.get_work(work_id)
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")
        for name, value in changes.items():
            if name in OVERRIDE_FIELDS and value is not None:
                value = to_percentage(value)
            elif name in INHERITANCE_FLAGS:
                value = to_flag(value, name)
            elif name == "recoupable":
                value = _optional_flag(value, name)
            setattr(work, name, value)
        work.updated_at = datetime.utcnow().isoformat()
        return work

    def set_override(self, work_id: str, name: str, value: Any) -> Decimal:
        """Set an override explicitly, including to 0."""
        if name not in OVERRIDE_FIELDS:
            raise ValueError(f"Unknown override field: {name}")
        if value is None:
            raise ValueError("Use clear_override to remove an override")
        amount = to_percentage(value)
        self.update_work(work_id, **{name: amount})
        return amount

    def clear_override(self, work_id: str, name: str) -> None:
        """Return an override to absent so the contract value applies."""
        if name not in OVERRIDE_FIELDS:
            raise ValueError(f"Unknown override field: {name}")
        self.update_work(work_id, **{name: None})

    def add_writer(self, work_id: str, writer_data: dict[str, Any]) -> str:
        """Attach a writer credit to a work. Returns the writer id."""
        work = self.get_work(work_id)
        writer = WorkWriter.from_dict(writer_data)
        work.writers.append(writer)
        self._writers_changed(work)
        return writer.writer_id

    def remove_writer(self, work_id: str, writer_id: str) -> None:
        work = self.get_work(work_id)
        remaining = [w for w in work.writers if w.writer_id != writer_id]
        if len(remaining) == len(work.writers):
            raise WorkNotFound(f"Writer {writer_id} not found on work {work_id}")
        work.writers = remaining
        self._writers_changed(work)

    def _writers_changed(self, work: ScheduleWork) -> None:
        # Finalization was checked against the old writer shares
        if work.status == WorkStatus.FINAL:
            work.status = WorkStatus.DRAFT
            logger.info(
                "Work returned to draft after writer change",
                extra={"contract_id": self.contract_id, "work_id": work.work_id},
            )
        work.updated_at = datetime.utcnow().isoformat()

    def finalize_work(self, work_id: str, report: SplitReport) -> ScheduleWork:
        """
        Mark a work complete enough to register externally.

        Args:
            work_id: Work to finalize
            report: Report computed with this work's writer shares

        Raises:
            FinalizeBlocked: If writer shares are not exactly 100 or a
                controlled share exceeds 100
        """
        work = self.get_work(work_id)

        if report.writer_share_exact is not True:
            total = report.writer_share_total if report.writer_share_total is not None else ZERO_SHARE
            raise FinalizeBlocked(IssueCode.WRITER_SHARE_NOT_EXACT.value, total - FULL_SHARE, report)

        if report.controlled_over_limit:
            raise FinalizeBlocked(
                IssueCode.CONTROLLED_SHARE_EXCEEDED.value,
                report.controlled_total - FULL_SHARE,
                report,
            )

        controlled_writers = work.controlled_writer_share()
        if controlled_writers > FULL_SHARE:
            raise FinalizeBlocked(
                IssueCode.CONTROLLED_SHARE_EXCEEDED.value,
                controlled_writers - FULL_SHARE,
                report,
            )

        work.status = WorkStatus.FINAL
        work.updated_at = datetime.utcnow().isoformat()
        logger.info("Work finalized", extra={"contract_id": self.contract_id, "work_id": work_id})
        return work

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "contract_id": self.contract_id,
            "works": [work.to_dict() for work in self._works.values()],
        }

    @classmethod
    def from_records(cls, contract_id: str, records: list[dict[str, Any]]) -> "WorkSchedule":
        """Rebuild a schedule from stored work records."""
        return cls(contract_id, [ScheduleWork.from_dict(r, contract_id=contract_id) for r in records])
