"""
Shared utilities for the RightsLedger API.

Request parsing helpers and the mapping from service results to HTTP
responses used across all blueprints.
"""

from typing import Any

from flask import jsonify, request

from right_types import to_flag

# ============================================================
# Error Mapping
# ============================================================

NOT_FOUND_ERRORS = {"ContractNotFound", "PartyNotFound", "WorkNotFound", "RegistrationNotFound"}
BLOCKED_ERRORS = {"ActionBlocked", "FinalizeBlocked", "ActivationBlocked", "ManualEntryRequired"}

BLOCKED_ACTIONS = {
    "FinalizeBlocked": "Finalize blocked",
    "ActivationBlocked": "Activation blocked",
    "ManualEntryRequired": "Export blocked",
}


def status_for(result: dict[str, Any]) -> int:
    """HTTP status for a failed service result."""
    error_type = result.get("error_type")
    if error_type in NOT_FOUND_ERRORS:
        return 404
    if error_type in BLOCKED_ERRORS:
        return 409
    return 400


def blocked_message(result: dict[str, Any]) -> str:
    """
    Human-readable message naming the violated rule and the delta.

    Example: "Finalize blocked: writer_share_not_exact (off by -10)"
    """
    action = BLOCKED_ACTIONS.get(result.get("error_type"), "Action blocked")
    invariant = result.get("invariant")
    if not invariant:
        return f"{action}: {result.get('error')}"
    delta = result.get("delta")
    detail = f" (off by {delta})" if delta is not None else ""
    return f"{action}: {invariant}{detail}"


def respond(success: bool, result: Any, created: bool = False):
    """Convert a service ``(success, result)`` tuple into a Flask response."""
    if success:
        return jsonify(result), 201 if created else 200

    status = status_for(result)
    if status == 409:
        result = dict(result, message=blocked_message(result))
    return jsonify(result), status


# ============================================================
# Request Parsing
# ============================================================


def get_json_body() -> dict[str, Any]:
    """Request JSON as a dict; empty when missing or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def missing_fields(data: dict[str, Any], required: list[str]) -> list[str]:
    return [f for f in required if data.get(f) is None or data.get(f) == ""]


def bad_request(message: str):
    return jsonify({"error": message, "error_type": "BadRequest"}), 400


def parse_bool(value: Any, name: str, default: bool = False) -> bool:
    """
    Booleans from JSON bodies ("true", "no", 1, ...).

    Raises:
        ValueError: For values that are not recognizably true or false
    """
    if value is None:
        return default
    return to_flag(value, name)
