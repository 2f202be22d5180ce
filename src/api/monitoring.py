"""
Health and audit endpoints for the RightsLedger API.

Endpoints:
- /health: Service status, version and contract store status
- /health/live: 200 while the process runs
- /health/ready: 503 until the contract store is usable
- /events: Recent audit events from the ledger service
"""

import time
from importlib.metadata import PackageNotFoundError, version

from flask import Blueprint, jsonify, request

from . import state

monitoring_bp = Blueprint("monitoring", __name__)


def _package_version() -> str:
    try:
        return version("rightsledger")
    except PackageNotFoundError:
        return "0.1.0"


def _store_status() -> dict:
    store = state.get_service().store
    usable = store.is_available()
    return {"status": "ok" if usable else "degraded", "available": usable, "backend": type(store).__name__}


@monitoring_bp.route("/health", methods=["GET"])
def health():
    """Always 200; a degraded store is reported under checks.storage."""
    body = {
        "status": "healthy",
        "service": "RightsLedger API",
        "version": _package_version(),
        "uptime_seconds": round(time.time() - state.startup_time, 3),
        "checks": {"storage": _store_status()},
    }
    return jsonify(body)


@monitoring_bp.route("/health/live", methods=["GET"])
def liveness():
    return jsonify(status="alive")


@monitoring_bp.route("/health/ready", methods=["GET"])
def readiness():
    if _store_status()["available"]:
        return jsonify(status="ready")
    return jsonify(status="not_ready", issues=["storage: not available"]), 503


@monitoring_bp.route("/events", methods=["GET"])
def events():
    """
    Recent audit events.

    Query params:
        limit: Maximum events (default 100, max 1000)
        type: Only events of this type
    """
    try:
        limit = max(1, min(int(request.args.get("limit", 100)), 1000))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400
    items = state.get_service().get_events(limit=limit, event_type=request.args.get("type"))
    return jsonify({"count": len(items), "events": items})
