"""
RightsLedger - Registration Export

Builds the rows a collecting-body submission needs for one scheduled work:
a work header, one row per interested party carrying its per-right-type
shares, one row per credited writer, and a recording row when the work has
an ISRC.

Shares always come from the resolved effective terms, so a work that
inherits its splits exports the contract ledger as it is at export time.
A work that declines inheritance has no splits to export; rather than
zero-fill, the exporter stops with ManualEntryRequired.
"""

from typing import Any

from contracts import Contract
from inheritance_resolver import EffectiveTerms, resolve_effective_terms
from ledger_errors import ManualEntryRequired
from monitoring import get_logger
from party_ledger import InterestedParty
from right_types import ALL_RIGHT_TYPES, ControlledStatus
from work_schedule import ScheduleWork

logger = get_logger(__name__)

# Row record types, in emission order
WORK_ROW = "work"
PARTY_ROW = "party"
WRITER_ROW = "writer"
RECORDING_ROW = "recording"


def _party_row(party: InterestedParty, controlled_ids: set[str]) -> dict[str, Any]:
    row = {
        "record_type": PARTY_ROW,
        "party_id": party.party_id,
        "name": party.name,
        "party_type": party.party_type.value,
        # Controlled only when the work inherits the contract's designation
        "controlled": party.party_id in controlled_ids,
        "ipi_number": party.details.get("ipi_number"),
        "affiliation": party.details.get("affiliation"),
    }
    for right_type in ALL_RIGHT_TYPES:
        row[right_type.field_name] = str(party.share(right_type))
    return row


def build_registration_rows(contract: Contract, work: ScheduleWork) -> list[dict[str, Any]]:
    """
    Build export rows for one work.

    Args:
        contract: The work's parent contract
        work: A work scheduled under that contract

    Returns:
        Rows in emission order (work, parties, writers, recording)

    Raises:
        ManualEntryRequired: If the work declines split inheritance
        ValueError: If the work belongs to a different contract
    """
    terms: EffectiveTerms = resolve_effective_terms(contract, work)
    if terms.requires_manual_entry:
        logger.warning(
            "Export stopped: splits undefined",
            extra={"contract_id": contract.contract_id, "work_id": work.work_id},
        )
        raise ManualEntryRequired(work.work_id)

    rows: list[dict[str, Any]] = [{
        "record_type": WORK_ROW,
        "work_id": work.work_id,
        "title": work.title,
        "work_code": work.work_code,
        "iswc": work.iswc,
        "contract_id": contract.contract_id,
        "territories": sorted(contract.territories),
        "recoupable": terms.to_dict()["recoupable"],
        "advance": str(terms.advance),
        "rate_reduction": str(terms.rate_reduction),
    }]

    controlled_ids = {party.party_id for party in terms.controlled_parties}
    rows.extend(_party_row(party, controlled_ids) for party in terms.splits)

    for writer in work.writers:
        rows.append({
            "record_type": WRITER_ROW,
            "writer_id": writer.writer_id,
            "name": writer.name,
            "share": str(writer.share),
            "controlled": writer.controlled_status == ControlledStatus.CONTROLLED,
            "ipi_number": writer.ipi_number,
            "pro_affiliation": writer.pro_affiliation,
        })

    if work.isrc:
        rows.append({
            "record_type": RECORDING_ROW,
            "isrc": work.isrc,
            "artist": work.artist,
            "album": work.album,
        })

    logger.debug(
        "Built registration rows",
        extra={"work_id": work.work_id, "row_count": len(rows)},
    )
    return rows
