"""
RightsLedger - Registrations API Blueprint

REST API endpoints for tracking work registrations with collecting bodies.
"""

from flask import Blueprint, jsonify

from .state import get_service
from .utils import bad_request, get_json_body, missing_fields, parse_bool, respond

registrations_bp = Blueprint("registrations", __name__)


@registrations_bp.route("/contracts/<contract_id>/works/<work_id>/registrations", methods=["POST"])
def register_work(contract_id, work_id):
    """
    Start tracking a work with a collecting body.

    Request body:
        {"body": "ascap", "territory": "US", "work_number": "..."}
    """
    data = get_json_body()
    missing = missing_fields(data, ["body"])
    if missing:
        return bad_request(f"Missing required fields: {missing}")
    return respond(*get_service().register_work(
        contract_id,
        work_id,
        data["body"],
        territory=data.get("territory"),
        work_number=data.get("work_number"),
    ), created=True)


@registrations_bp.route("/works/<work_id>/registrations", methods=["GET"])
def list_registrations(work_id):
    records = get_service().list_registrations(work_id)
    return jsonify({"count": len(records), "registrations": records})


@registrations_bp.route("/works/<work_id>/registrations/<body>/status", methods=["POST"])
def transition_registration(work_id, body):
    """
    Change a registration's status.

    Request body:
        {
            "status": "pending_registration",
            "manual": false,          // true allows administrative corrections
            "work_number": "...",     // Optional
            "note": "..."             // Optional
        }
    """
    data = get_json_body()
    if not data.get("status"):
        return bad_request("Missing required field: status")
    try:
        manual = parse_bool(data.get("manual"), "manual")
    except ValueError as e:
        return bad_request(str(e))
    return respond(*get_service().transition_registration(
        work_id,
        body,
        data["status"],
        manual=manual,
        work_number=data.get("work_number"),
        note=data.get("note"),
    ))


@registrations_bp.route("/works/<work_id>/registrations/<body>/acknowledgement", methods=["POST"])
def acknowledge_registration(work_id, body):
    """
    Apply a collecting body's response.

    Request body:
        {"accepted": true, "work_number": "...", "message": "..."}
    """
    data = get_json_body()
    if "accepted" not in data:
        return bad_request("Missing required field: accepted")
    try:
        accepted = parse_bool(data["accepted"], "accepted")
    except ValueError as e:
        return bad_request(str(e))
    return respond(*get_service().acknowledge_registration(
        work_id,
        body,
        accepted,
        work_number=data.get("work_number"),
        response_message=data.get("message"),
    ))
