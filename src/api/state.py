"""
Shared state for the RightsLedger API.

Holds the ledger service instance used by every blueprint. ``create_app``
installs it; blueprints read it through ``get_service``.
"""

import time

from ledger_service import RoyaltyLedgerService
from storage import ContractStore, get_storage_backend

# Set by init_service
service: RoyaltyLedgerService | None = None

# Track startup time
startup_time = time.time()


def init_service(
    ledger_service: RoyaltyLedgerService | None = None,
    store: ContractStore | None = None,
) -> RoyaltyLedgerService:
    """
    Install the shared ledger service.

    Args:
        ledger_service: Ready-made service (tests pass one in)
        store: Backend for a new service; the environment-configured
            backend when both arguments are omitted
    """
    global service
    if ledger_service is None:
        ledger_service = RoyaltyLedgerService(store if store is not None else get_storage_backend())
    service = ledger_service
    return service


def get_service() -> RoyaltyLedgerService:
    """The shared service, created from the environment on first use."""
    if service is None:
        return init_service()
    return service
