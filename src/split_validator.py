"""
RightsLedger - Split Validator

Turns a Party Ledger snapshot into a diagnostic report. It never raises on
an inconsistent ledger: contracts are edited incrementally, so imbalance is
surfaced as data and the caller decides whether to block an action
(finalizing a work, activating a contract) or only show a banner.

Rules:
- Per right type, percentages summed across all parties should be exactly
  100. Over 100 is an error, under 100 a warning.
- Controlled share is the sum, over controlled parties, of each party's
  largest percentage across right types. Over 100 is always an error.
- Writer shares (when supplied) must total exactly 100 before a work can be
  finalized.
- Any single percentage outside [0, 100] is an error.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from party_ledger import InterestedParty, PartyLedger
from right_types import ALL_RIGHT_TYPES, FULL_SHARE, ZERO_SHARE, RightType, to_percentage

# =============================================================================
# Enums
# =============================================================================


class Severity(Enum):
    """How a finding should be treated by the caller."""

    WARNING = "warning"  # Advisory; never blocks a save
    ERROR = "error"  # Blocks the specific action gated on it


class IssueCode(Enum):
    """The invariant a finding refers to."""

    RIGHT_TYPE_UNDER_ALLOCATED = "right_type_under_allocated"
    RIGHT_TYPE_OVER_ALLOCATED = "right_type_over_allocated"
    CONTROLLED_SHARE_EXCEEDED = "controlled_share_exceeded"
    WRITER_SHARE_NOT_EXACT = "writer_share_not_exact"
    SHARE_OUT_OF_RANGE = "share_out_of_range"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class ValidationIssue:
    """One finding. ``delta`` is the signed distance from the limit."""

    code: IssueCode
    severity: Severity
    total: Decimal
    delta: Decimal
    right_type: RightType | None = None
    party_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "code": self.code.value,
            "severity": self.severity.value,
            "total": str(self.total),
            "delta": str(self.delta),
            "right_type": self.right_type.value if self.right_type else None,
            "party_id": self.party_id,
        }


@dataclass(frozen=True)
class SplitReport:
    """
    Structured validation result for one ledger snapshot.

    ``writer_share_total`` and ``writer_share_exact`` are None when no writer
    shares were supplied, i.e. the ledger does not model writer percentages.
    """

    per_right_type_total: dict[RightType, Decimal]
    imbalanced_types: tuple[RightType, ...]
    controlled_total: Decimal
    controlled_over_limit: bool
    writer_share_total: Decimal | None = None
    writer_share_exact: bool | None = None
    issues: tuple[ValidationIssue, ...] = field(default_factory=tuple)
    ledger_revision: int | None = None

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def is_balanced(self) -> bool:
        """True when every right type totals exactly 100."""
        return not self.imbalanced_types

    def first_issue(self, code: IssueCode) -> ValidationIssue | None:
        """The first finding with the given code, if any."""
        for issue in self.issues:
            if issue.code == code:
                return issue
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "per_right_type_total": {rt.value: str(v) for rt, v in self.per_right_type_total.items()},
            "imbalanced_types": [rt.value for rt in self.imbalanced_types],
            "controlled_total": str(self.controlled_total),
            "controlled_over_limit": self.controlled_over_limit,
            "writer_share_total": (
                str(self.writer_share_total) if self.writer_share_total is not None else None
            ),
            "writer_share_exact": self.writer_share_exact,
            "issues": [issue.to_dict() for issue in self.issues],
            "has_errors": self.has_errors,
            "has_warnings": self.has_warnings,
            "ledger_revision": self.ledger_revision,
        }


# =============================================================================
# Rules
# =============================================================================


def controlled_share(party: InterestedParty) -> Decimal:
    """
    Administrative share a controlled party contributes to the controlled total.

    "Controlled" describes control of the party's interest, not a summable
    royalty pool, so the party counts once at its largest right-type share.
    """
    return max((party.share(rt) for rt in ALL_RIGHT_TYPES), default=ZERO_SHARE)


def right_type_totals(parties: Iterable[InterestedParty]) -> dict[RightType, Decimal]:
    """Sum each right type across all parties."""
    totals = {rt: ZERO_SHARE for rt in ALL_RIGHT_TYPES}
    for party in parties:
        for rt in ALL_RIGHT_TYPES:
            totals[rt] += party.share(rt)
    return totals


def controlled_total(
    parties: Iterable[InterestedParty],
    rule: Callable[[InterestedParty], Decimal] = controlled_share,
) -> Decimal:
    """Sum of ``rule(party)`` over controlled parties only."""
    return sum((rule(p) for p in parties if p.is_controlled), ZERO_SHARE)


def writer_share_total(shares: Iterable[Any]) -> Decimal:
    """Sum of writer-only percentages."""
    return sum((to_percentage(s) for s in shares), ZERO_SHARE)


# =============================================================================
# Validator
# =============================================================================


def revalidate(
    ledger: PartyLedger | Iterable[InterestedParty],
    writer_shares: Iterable[Any] | None = None,
    controlled_rule: Callable[[InterestedParty], Decimal] = controlled_share,
) -> SplitReport:
    """
    Validate a ledger snapshot.

    Pure: reads the parties, mutates nothing, and returns equal reports for
    an unchanged ledger.

    Args:
        ledger: A PartyLedger or any iterable of parties
        writer_shares: Optional writer-only percentages (e.g. a scheduled
            work's writer records); enables the exact-100 writer check
        controlled_rule: Per-party controlled-share rule

    Returns:
        SplitReport
    """
    parties = list(ledger)
    issues: list[ValidationIssue] = []

    # Individual shares outside [0, 100]
    for party in parties:
        for rt in ALL_RIGHT_TYPES:
            value = party.share(rt)
            if value < ZERO_SHARE or value > FULL_SHARE:
                delta = value - FULL_SHARE if value > FULL_SHARE else value
                issues.append(
                    ValidationIssue(
                        code=IssueCode.SHARE_OUT_OF_RANGE,
                        severity=Severity.ERROR,
                        total=value,
                        delta=delta,
                        right_type=rt,
                        party_id=party.party_id,
                    )
                )

    # Per right type balance
    totals = right_type_totals(parties)
    imbalanced = []
    for rt in ALL_RIGHT_TYPES:
        total = totals[rt]
        if total == FULL_SHARE:
            continue
        imbalanced.append(rt)
        over = total > FULL_SHARE
        issues.append(
            ValidationIssue(
                code=IssueCode.RIGHT_TYPE_OVER_ALLOCATED if over else IssueCode.RIGHT_TYPE_UNDER_ALLOCATED,
                severity=Severity.ERROR if over else Severity.WARNING,
                total=total,
                delta=total - FULL_SHARE,
                right_type=rt,
            )
        )

    # Controlled administrative share
    controlled = controlled_total(parties, controlled_rule)
    over_limit = controlled > FULL_SHARE
    if over_limit:
        issues.append(
            ValidationIssue(
                code=IssueCode.CONTROLLED_SHARE_EXCEEDED,
                severity=Severity.ERROR,
                total=controlled,
                delta=controlled - FULL_SHARE,
            )
        )

    # Writer shares, only when modelled
    writer_total = None
    writer_exact = None
    if writer_shares is not None:
        writer_total = writer_share_total(writer_shares)
        writer_exact = writer_total == FULL_SHARE
        if not writer_exact:
            issues.append(
                ValidationIssue(
                    code=IssueCode.WRITER_SHARE_NOT_EXACT,
                    severity=Severity.ERROR,
                    total=writer_total,
                    delta=writer_total - FULL_SHARE,
                )
            )

    return SplitReport(
        per_right_type_total=totals,
        imbalanced_types=tuple(imbalanced),
        controlled_total=controlled,
        controlled_over_limit=over_limit,
        writer_share_total=writer_total,
        writer_share_exact=writer_exact,
        issues=tuple(issues),
        ledger_revision=getattr(ledger, "revision", None),
    )
