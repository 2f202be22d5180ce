"""
RightsLedger - Contracts API Blueprint

REST API endpoints for contracts and their party ledgers.

Provides access to:
- Create, list and fetch contracts
- Move contracts through their lifecycle
- Add, edit and remove interested parties
- Split validation reports

Every ledger mutation responds with the freshly recomputed report.
"""

from flask import Blueprint, jsonify

from .state import get_service
from .utils import bad_request, get_json_body, missing_fields, respond

contracts_bp = Blueprint("contracts", __name__)


# =============================================================================
# Contract Endpoints
# =============================================================================


@contracts_bp.route("/contracts", methods=["POST"])
def create_contract():
    """
    Create a draft contract.

    Request body:
        {
            "counterparty": "Northside Music",
            "contract_type": "publishing",       // publishing, artist, producer, sync, distribution
            "terms": {...},                       // Optional, shape depends on contract_type
            "financial_terms": {                  // Optional
                "advance_amount": "5000",
                "rate_reduction": "0",
                "recoupable": true
            },
            "territories": ["US", "CA"],          // Optional
            "start_date": "2024-01-01",           // Optional
            "end_date": "2027-01-01"              // Optional
        }

    Returns:
        Contract record
    """
    data = get_json_body()
    missing = missing_fields(data, ["counterparty", "contract_type"])
    if missing:
        return bad_request(f"Missing required fields: {missing}")

    success, result = get_service().create_contract(
        counterparty=data["counterparty"],
        contract_type=data["contract_type"],
        terms=data.get("terms"),
        financial_terms=data.get("financial_terms"),
        territories=data.get("territories"),
        start_date=data.get("start_date"),
        end_date=data.get("end_date"),
    )
    return respond(success, result, created=True)


@contracts_bp.route("/contracts", methods=["GET"])
def list_contracts():
    """List contract summaries."""
    contracts = get_service().list_contracts()
    return jsonify({"count": len(contracts), "contracts": contracts})


@contracts_bp.route("/contracts/<contract_id>", methods=["GET"])
def get_contract(contract_id):
    """Get a contract with its parties, works and validation report."""
    return respond(*get_service().get_contract(contract_id))


@contracts_bp.route("/contracts/<contract_id>/status", methods=["POST"])
def transition_contract(contract_id):
    """
    Change a contract's lifecycle status.

    Request body:
        {"status": "active"}

    Activation answers 409 while the ledger has controlled-share or
    out-of-range errors.
    """
    data = get_json_body()
    if not data.get("status"):
        return bad_request("Missing required field: status")
    return respond(*get_service().transition_contract(contract_id, data["status"]))


@contracts_bp.route("/contracts/<contract_id>/validation", methods=["GET"])
def validate_contract(contract_id):
    """Split validation report for the contract's ledger."""
    return respond(*get_service().validate(contract_id))


# =============================================================================
# Party Ledger Endpoints
# =============================================================================


@contracts_bp.route("/contracts/<contract_id>/parties", methods=["POST"])
def add_party(contract_id):
    """
    Add an interested party.

    Request body:
        {
            "name": "Jane Writer",
            "party_type": "writer",
            "controlled_status": "C",             // C or NC, default NC
            "performance_percentage": "50",       // Any right type, default 0
            "ipi_number": "00012345678"           // Optional identifiers
        }

    Returns:
        The party and the fresh validation report
    """
    data = get_json_body()
    if not data:
        return bad_request("Request body must be a JSON object")
    return respond(*get_service().add_party(contract_id, data), created=True)


@contracts_bp.route("/contracts/<contract_id>/parties/<party_id>/shares", methods=["PUT"])
def update_share(contract_id, party_id):
    """
    Set one party's percentage for one right type.

    Request body:
        {"right_type": "performance", "percentage": "60"}
    """
    data = get_json_body()
    missing = missing_fields(data, ["right_type", "percentage"])
    if missing:
        return bad_request(f"Missing required fields: {missing}")
    return respond(*get_service().update_share(
        contract_id, party_id, data["right_type"], data["percentage"]
    ))


@contracts_bp.route("/contracts/<contract_id>/parties/<party_id>/controlled-status", methods=["PUT"])
def set_controlled_status(contract_id, party_id):
    """
    Flip a party between controlled and non-controlled.

    Request body:
        {"controlled_status": "C"}
    """
    data = get_json_body()
    if not data.get("controlled_status"):
        return bad_request("Missing required field: controlled_status")
    return respond(*get_service().set_controlled_status(
        contract_id, party_id, data["controlled_status"]
    ))


@contracts_bp.route("/contracts/<contract_id>/parties/<party_id>", methods=["DELETE"])
def remove_party(contract_id, party_id):
    """Remove a party; responds with the fresh report."""
    return respond(*get_service().remove_party(contract_id, party_id))
