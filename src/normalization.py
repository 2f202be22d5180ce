"""
RightsLedger - Record Normalization

Maps stored records onto one canonical field per concept before they reach
the core. Older records and imports use several near-duplicate names for the
same value (``recording_advance`` / ``minimum_advance`` / ``advance_amount``,
``performance_share`` / ``ownership_percentage``, ...). This module is the
single place that decides which of them is authoritative; the core reads
canonical names only.

Precedence: the canonical name wins when present; otherwise aliases are
tried in the listed order. A present value of 0 counts as present, except
for the legacy per-work override columns (see ``LEGACY_ZERO_MEANS_ABSENT``).
"""

import logging
from typing import Any

from right_types import ALL_RIGHT_TYPES, RightType, to_percentage

logger = logging.getLogger(__name__)

# canonical name -> aliases, in precedence order
PARTY_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("writer_name", "party_name"),
    "dba_alias": ("alias",),
    "affiliation": ("pro_affiliation",),
    RightType.PERFORMANCE.field_name: ("performance_share", "ownership_percentage"),
    RightType.MECHANICAL.field_name: ("mechanical_share", "ownership_percentage"),
    RightType.SYNCH.field_name: ("synchronization_share", "sync_share", "ownership_percentage"),
    RightType.PRINT.field_name: ("print_share",),
    RightType.GRAND_RIGHTS.field_name: ("grand_rights_share",),
    RightType.KARAOKE.field_name: ("karaoke_share",),
}

WORK_ALIASES: dict[str, tuple[str, ...]] = {
    "title": ("song_title", "work_title"),
    "artist": ("artist_name",),
    "album": ("album_title",),
    "work_code": ("work_id", "external_work_id"),
    "advance_override": ("work_specific_advance",),
    "rate_reduction_override": ("work_specific_rate_reduction",),
}

WRITER_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("writer_name",),
    "share": ("ownership_percentage", "writer_share"),
    "controlled_status": ("controlled",),
    "pro_affiliation": ("proAffiliation", "affiliation"),
    "ipi_number": ("ipi",),
}

CONTRACT_ALIASES: dict[str, tuple[str, ...]] = {
    "counterparty": ("counterparty_name", "client_name"),
    "end_date": ("expiration_date",),
    "interested_parties": ("contract_interested_parties",),
    "schedule_works": ("contract_schedule_works",),
}

FINANCIAL_ALIASES: dict[str, tuple[str, ...]] = {
    "advance_amount": ("recording_advance", "minimum_advance", "advance"),
    "rate_reduction": ("rate_reduction_percentage",),
    "recoupable": ("is_recoupable",),
}

# Legacy override columns defaulted to 0 for every work and could not say
# "no override"; a 0 found under these names reads as absent.
LEGACY_ZERO_MEANS_ABSENT = {"work_specific_advance", "work_specific_rate_reduction"}


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


def _canonicalize(record: dict[str, Any], aliases: dict[str, tuple[str, ...]], kind: str) -> dict[str, Any]:
    """Copy ``record`` with aliased keys folded into their canonical names."""
    result = dict(record)
    consumed: set[str] = set()

    for canonical, names in aliases.items():
        consumed.update(names)
        if _is_present(record.get(canonical)):
            continue
        for alias in names:
            value = record.get(alias)
            if not _is_present(value):
                continue
            if alias in LEGACY_ZERO_MEANS_ABSENT and to_percentage(value) == 0:
                continue
            result[canonical] = value
            logger.debug("Normalized %s field %s -> %s", kind, alias, canonical)
            break

    for alias in consumed:
        if alias not in aliases:
            result.pop(alias, None)
    return result


def normalize_party(record: dict[str, Any]) -> dict[str, Any]:
    """Canonical interested-party record."""
    result = _canonicalize(record, PARTY_ALIASES, "party")
    if result.get("controlled_status") in (True, False):
        result["controlled_status"] = "C" if result["controlled_status"] else "NC"
    for right_type in ALL_RIGHT_TYPES:
        result.setdefault(right_type.field_name, 0)
    return result


def normalize_writer(record: dict[str, Any]) -> dict[str, Any]:
    """Canonical writer-credit record."""
    result = _canonicalize(record, WRITER_ALIASES, "writer")
    if result.get("controlled_status") in (True, False):
        result["controlled_status"] = "C" if result["controlled_status"] else "NC"
    return result


def normalize_work(record: dict[str, Any]) -> dict[str, Any]:
    """Canonical schedule-work record, including its writer credits."""
    result = _canonicalize(record, WORK_ALIASES, "work")
    result["writers"] = [normalize_writer(w) for w in record.get("writers") or []]
    return result


def normalize_financial_terms(record: dict[str, Any]) -> dict[str, Any]:
    """
    Canonical financial terms.

    Reads the nested ``financial_terms`` block first and falls back to the
    same keys at the contract's top level or inside its terms bag, where
    older records kept them.
    """
    merged: dict[str, Any] = {}
    for source in (record.get("terms") or {}, record, record.get("financial_terms") or {}):
        for key, value in source.items():
            if _is_present(value):
                merged[key] = value
    canonical = _canonicalize(merged, FINANCIAL_ALIASES, "financial")
    return {key: canonical[key] for key in FINANCIAL_ALIASES if key in canonical}


def normalize_contract(record: dict[str, Any]) -> dict[str, Any]:
    """
    Canonical nested contract record, ready for ``Contract.from_dict``.

    Normalizes the contract's own fields, its financial terms, and every
    child party and work record.
    """
    result = _canonicalize(record, CONTRACT_ALIASES, "contract")

    territories = result.get("territories")
    if territories is None and result.get("territory"):
        territories = result.pop("territory")
    if isinstance(territories, str):
        territories = [t.strip() for t in territories.split(",") if t.strip()]
    result["territories"] = list(territories or [])

    result["financial_terms"] = normalize_financial_terms(record)
    terms = dict(result.get("terms") or {})
    for key in FINANCIAL_ALIASES:
        for name in (key,) + FINANCIAL_ALIASES[key]:
            terms.pop(name, None)
    result["terms"] = terms

    result["interested_parties"] = [normalize_party(p) for p in result.get("interested_parties") or []]
    result["schedule_works"] = [normalize_work(w) for w in result.get("schedule_works") or []]
    return result
