"""
RightsLedger API Package.

This package contains the Flask blueprints for the RightsLedger API.

Blueprints:
- contracts: Contracts, lifecycle, party ledger and validation reports
- schedule: Scheduled works, overrides, finalization, effective terms, export
- registrations: Registration status with collecting bodies
- monitoring: Health checks and the audit trail
"""

from flask import Flask, jsonify

from api import state
from api.contracts import contracts_bp
from api.monitoring import monitoring_bp
from api.registrations import registrations_bp
from api.schedule import schedule_bp
from ledger_service import RoyaltyLedgerService
from monitoring import get_logger, setup_request_logging
from storage import ContractStore, StorageError

logger = get_logger(__name__)

# List of all blueprints for registration
# Tuple format: (blueprint, url_prefix)
ALL_BLUEPRINTS = [
    (contracts_bp, ''),
    (schedule_bp, ''),
    (registrations_bp, ''),
    (monitoring_bp, ''),
]


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    for blueprint, url_prefix in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=url_prefix)


def register_error_handlers(app):
    """JSON error responses; storage failures answer 503."""

    @app.errorhandler(StorageError)
    def storage_error(error):
        logger.error("Storage failure", extra={"error": str(error)})
        return jsonify({"error": str(error), "error_type": type(error).__name__}), 503

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({"error": "Internal server error"}), 500


def create_app(
    service: RoyaltyLedgerService | None = None,
    store: ContractStore | None = None,
) -> Flask:
    """
    Build the Flask application.

    Args:
        service: Ledger service to serve (tests pass one in)
        store: Backend for a new service; environment-configured if omitted
    """
    app = Flask(__name__)
    app.json.sort_keys = False

    state.init_service(service, store)
    register_blueprints(app)
    register_error_handlers(app)
    setup_request_logging(app)
    return app
