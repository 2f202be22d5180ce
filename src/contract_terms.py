"""
RightsLedger - Contract Terms

Lifecycle status, contract-type discriminator and the type-specific terms
record attached to every contract.

Terms are a tagged union: one dataclass per ContractType, selected by the
discriminator. ``terms_from_dict`` is the only way stored terms become
typed records; keys a variant does not declare are kept in ``extra`` so
nothing is lost, but the core never reads them.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from right_types import to_flag, to_percentage

# =============================================================================
# Enums
# =============================================================================


class ContractStatus(Enum):
    """Soft lifecycle of a contract. Contracts are never hard-deleted here."""

    DRAFT = "draft"
    SIGNED = "signed"
    ACTIVE = "active"
    EXPIRED = "expired"
    TERMINATED = "terminated"


class ContractType(Enum):
    """Discriminator selecting the terms variant."""

    PUBLISHING = "publishing"
    ARTIST = "artist"
    PRODUCER = "producer"
    SYNC = "sync"
    DISTRIBUTION = "distribution"


class PublishingAgreementType(Enum):
    """Publishing deal structures."""

    ADMINISTRATION = "administration"
    CO_PUBLISHING = "co_publishing"
    EXCLUSIVE_SONGWRITER = "exclusive_songwriter"
    CATALOG_ACQUISITION = "catalog_acquisition"


# Valid status transitions; anything else is rejected by Contract.transition_to
VALID_STATUS_TRANSITIONS = {
    ContractStatus.DRAFT: [ContractStatus.SIGNED, ContractStatus.TERMINATED],
    ContractStatus.SIGNED: [ContractStatus.ACTIVE, ContractStatus.TERMINATED],
    ContractStatus.ACTIVE: [ContractStatus.EXPIRED, ContractStatus.TERMINATED],
    ContractStatus.EXPIRED: [],
    ContractStatus.TERMINATED: [],
}


# =============================================================================
# Financial Terms
# =============================================================================


@dataclass
class FinancialTerms:
    """Contract-level money terms that scheduled works may override."""

    advance_amount: Decimal = field(default_factory=lambda: Decimal("0"))
    rate_reduction: Decimal = field(default_factory=lambda: Decimal("0"))
    recoupable: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "advance_amount": str(self.advance_amount),
            "rate_reduction": str(self.rate_reduction),
            "recoupable": self.recoupable,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "FinancialTerms":
        """Build from a canonical dictionary."""
        data = data or {}
        return cls(
            advance_amount=to_percentage(data.get("advance_amount")),
            rate_reduction=to_percentage(data.get("rate_reduction")),
            recoupable=data.get("recoupable") is not None and to_flag(data["recoupable"], "recoupable"),
        )


# =============================================================================
# Terms Variants
# =============================================================================


@dataclass
class _TermsBase:
    """Shared serialization for the terms variants."""

    contract_type: ClassVar[ContractType]
    decimal_fields: ClassVar[tuple[str, ...]] = ()

    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, tagged with the contract type."""
        result: dict[str, Any] = {"contract_type": self.contract_type.value}
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, Enum):
                value = value.value
            result[f.name] = value
        if self.extra:
            result["extra"] = dict(self.extra)
        return result


@dataclass
class PublishingTerms(_TermsBase):
    """Administration, co-publishing, songwriter and acquisition deals."""

    contract_type: ClassVar[ContractType] = ContractType.PUBLISHING
    decimal_fields: ClassVar[tuple[str, ...]] = (
        "admin_fee_percentage",
        "admin_controlled_share",
        "writer_share_percentage",
        "publisher_share_percentage",
        "mechanical_royalty_rate",
        "sync_royalty_rate",
        "print_royalty_rate",
        "acquisition_price",
    )

    agreement_type: PublishingAgreementType = PublishingAgreementType.ADMINISTRATION
    admin_fee_percentage: Decimal | None = None
    admin_controlled_share: Decimal | None = None
    writer_share_percentage: Decimal | None = None
    publisher_share_percentage: Decimal | None = None
    mechanical_royalty_rate: Decimal | None = None
    sync_royalty_rate: Decimal | None = None
    print_royalty_rate: Decimal | None = None
    acquisition_price: Decimal | None = None
    exclusivity_period_start: str | None = None
    exclusivity_period_end: str | None = None
    option_periods: int | None = None
    tail_period_months: int | None = None
    reversion_clause: str | None = None


@dataclass
class ArtistTerms(_TermsBase):
    """Recording artist deals."""

    contract_type: ClassVar[ContractType] = ContractType.ARTIST
    decimal_fields: ClassVar[tuple[str, ...]] = (
        "marketing_advance",
        "artist_royalty_rate",
        "net_receipts_percentage",
    )

    deal_type: str | None = None
    contract_term: str | None = None
    album_commitment: int | None = None
    option_periods: int | None = None
    marketing_advance: Decimal | None = None
    artist_royalty_rate: Decimal | None = None
    net_receipts_percentage: Decimal | None = None
    exclusive: bool = True


@dataclass
class ProducerTerms(_TermsBase):
    """Producer agreements (flat fee, points or hybrid)."""

    contract_type: ClassVar[ContractType] = ContractType.PRODUCER
    decimal_fields: ClassVar[tuple[str, ...]] = (
        "upfront_fee",
        "producer_points",
        "publishing_share",
    )

    producer_type: str | None = None
    royalty_base: str | None = None
    upfront_fee: Decimal | None = None
    producer_points: Decimal | None = None
    publishing_share: Decimal | None = None
    track_count: int | None = None
    exclusive_production: bool = False


@dataclass
class SyncTerms(_TermsBase):
    """Synchronization licenses."""

    contract_type: ClassVar[ContractType] = ContractType.SYNC
    decimal_fields: ClassVar[tuple[str, ...]] = ("license_fee", "reuse_fee", "festival_fee")

    sync_type: str | None = None
    production_title: str | None = None
    media_usage: str | None = None
    license_fee: Decimal | None = None
    reuse_fee: Decimal | None = None
    festival_fee: Decimal | None = None
    term_years: int | None = None
    exclusive_usage: bool = False


@dataclass
class DistributionTerms(_TermsBase):
    """Distribution and label-services deals."""

    contract_type: ClassVar[ContractType] = ContractType.DISTRIBUTION
    decimal_fields: ClassVar[tuple[str, ...]] = (
        "artist_revenue_share",
        "label_revenue_share",
        "marketing_advance",
    )

    distribution_type: str | None = None
    exclusivity: str | None = None  # exclusive, non_exclusive, semi_exclusive
    contract_term: str | None = None
    artist_revenue_share: Decimal | None = None
    label_revenue_share: Decimal | None = None
    marketing_advance: Decimal | None = None
    cross_collateralization: bool = False


ContractTerms = PublishingTerms | ArtistTerms | ProducerTerms | SyncTerms | DistributionTerms

TERMS_BY_TYPE: dict[ContractType, type] = {
    ContractType.PUBLISHING: PublishingTerms,
    ContractType.ARTIST: ArtistTerms,
    ContractType.PRODUCER: ProducerTerms,
    ContractType.SYNC: SyncTerms,
    ContractType.DISTRIBUTION: DistributionTerms,
}


def terms_from_dict(contract_type: ContractType | str, data: dict[str, Any] | None) -> ContractTerms:
    """
    Build the terms variant selected by ``contract_type``.

    Args:
        contract_type: Discriminator (enum or its value)
        data: Canonical terms dictionary (already normalized)

    Returns:
        Typed terms record

    Raises:
        ValueError: On an unknown contract type or a non-numeric amount
    """
    if not isinstance(contract_type, ContractType):
        contract_type = ContractType(contract_type)
    terms_cls = TERMS_BY_TYPE[contract_type]
    data = dict(data or {})
    data.pop("contract_type", None)

    known = {f.name for f in fields(terms_cls)} - {"extra"}
    kwargs: dict[str, Any] = {}
    extra = dict(data.pop("extra", None) or {})
    for key, value in data.items():
        if key not in known:
            extra[key] = value
            continue
        if key in terms_cls.decimal_fields and value is not None:
            value = to_percentage(value)
        elif key == "agreement_type" and value is not None:
            value = PublishingAgreementType(value)
        kwargs[key] = value

    return terms_cls(extra=extra, **kwargs)
