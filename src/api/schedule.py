"""
RightsLedger - Work Schedule API Blueprint

REST API endpoints for the works scheduled under a contract.

Provides access to:
- Schedule, edit and remove works
- Set and clear work-specific overrides
- Writer credits and finalization
- Effective terms and registration export rows
"""

from flask import Blueprint

from .state import get_service
from .utils import bad_request, get_json_body, missing_fields, respond

schedule_bp = Blueprint("schedule", __name__)


# =============================================================================
# Work Endpoints
# =============================================================================


@schedule_bp.route("/contracts/<contract_id>/works", methods=["POST"])
def add_work(contract_id):
    """
    Schedule a work under a contract.

    Request body:
        {
            "title": "Midnight Drive",
            "artist": "The Example",              // Optional
            "isrc": "USABC2400001",               // Optional
            "inherits_royalty_splits": true,      // Flags default to true
            "inherits_recoupment_status": true,
            "inherits_controlled_status": true,
            "advance_override": "0"               // Optional; absent means inherit
        }
    """
    data = get_json_body()
    missing = missing_fields(data, ["title"])
    if missing:
        return bad_request(f"Missing required fields: {missing}")
    return respond(*get_service().add_work(contract_id, data), created=True)


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>", methods=["GET"])
def get_work(contract_id, work_id):
    return respond(*get_service().get_work(contract_id, work_id))


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>", methods=["PATCH"])
def update_work(contract_id, work_id):
    """Edit descriptive fields or inheritance flags."""
    data = get_json_body()
    if not data:
        return bad_request("Request body must be a non-empty JSON object")
    return respond(*get_service().update_work(contract_id, work_id, data))


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>", methods=["DELETE"])
def remove_work(contract_id, work_id):
    return respond(*get_service().remove_work(contract_id, work_id))


# =============================================================================
# Override Endpoints
# =============================================================================


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>/overrides/<name>", methods=["PUT"])
def set_override(contract_id, work_id, name):
    """
    Set a work-specific override. A value of 0 is stored as an override.

    Request body:
        {"value": "2500"}
    """
    data = get_json_body()
    if "value" not in data:
        return bad_request("Missing required field: value")
    return respond(*get_service().set_override(contract_id, work_id, name, data["value"]))


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>/overrides/<name>", methods=["DELETE"])
def clear_override(contract_id, work_id, name):
    """Clear an override so the contract value applies."""
    return respond(*get_service().clear_override(contract_id, work_id, name))


# =============================================================================
# Writer and Finalization Endpoints
# =============================================================================


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>/writers", methods=["POST"])
def add_writer(contract_id, work_id):
    """
    Credit a writer on a work.

    Request body:
        {"name": "Jane Writer", "share": "50", "controlled_status": "C"}
    """
    data = get_json_body()
    missing = missing_fields(data, ["name"])
    if missing:
        return bad_request(f"Missing required fields: {missing}")
    return respond(*get_service().add_writer(contract_id, work_id, data), created=True)


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>/writers/<writer_id>", methods=["DELETE"])
def remove_writer(contract_id, work_id, writer_id):
    return respond(*get_service().remove_writer(contract_id, work_id, writer_id))


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>/finalize", methods=["POST"])
def finalize_work(contract_id, work_id):
    """
    Finalize a work for registration.

    Answers 409 with the violated rule and delta when writer shares do not
    total exactly 100 or a controlled share exceeds 100.
    """
    return respond(*get_service().finalize_work(contract_id, work_id))


# =============================================================================
# Effective Terms and Export
# =============================================================================


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>/effective-terms", methods=["GET"])
def effective_terms(contract_id, work_id):
    """Resolved splits, recoupment and financial terms for one work."""
    return respond(*get_service().resolve_effective_terms(contract_id, work_id))


@schedule_bp.route("/contracts/<contract_id>/effective-terms", methods=["GET"])
def schedule_effective_terms(contract_id):
    """Resolved terms for every scheduled work."""
    return respond(*get_service().resolve_schedule(contract_id))


@schedule_bp.route("/contracts/<contract_id>/works/<work_id>/export", methods=["GET"])
def export_work(contract_id, work_id):
    """Registration export rows; 409 when the work's splits are undefined."""
    return respond(*get_service().export_registration_rows(contract_id, work_id))
