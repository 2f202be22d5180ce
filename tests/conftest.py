"""
Pytest configuration and shared fixtures for RightsLedger tests.

This module provides shared fixtures and test configuration including:
- Party ledgers and contracts built in memory
- A ledger service over memory storage
- Flask app and test client wired to that service
"""

import os
import sys

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

# Set up test environment before any imports
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.setdefault("LOG_LEVEL", "WARNING")


def make_party(name, controlled=False, **shares):
    """Party record with ``performance=60``-style keyword shares."""
    record = {"name": name, "controlled_status": "C" if controlled else "NC"}
    for right_type, value in shares.items():
        record[f"{right_type}_percentage"] = value
    return record


@pytest.fixture
def ledger():
    """Empty party ledger for contract_test."""
    from party_ledger import PartyLedger
    return PartyLedger("contract_test")


@pytest.fixture
def contract():
    """Draft publishing contract with a 5000 recoupable advance."""
    from contracts import Contract
    return Contract.create(
        counterparty="Northside Music",
        contract_type="publishing",
        terms={"agreement_type": "co_publishing"},
        financial_terms={"advance_amount": "5000", "rate_reduction": "10", "recoupable": True},
        territories=["US", "CA"],
    )


@pytest.fixture
def memory_store():
    from storage import MemoryStorage
    return MemoryStorage()


@pytest.fixture
def service(memory_store):
    """Ledger service over fresh memory storage."""
    from ledger_service import RoyaltyLedgerService
    return RoyaltyLedgerService(memory_store)


@pytest.fixture
def created_contract(service):
    """Contract id of a draft publishing contract saved through the service."""
    success, result = service.create_contract(
        counterparty="Northside Music",
        contract_type="publishing",
        financial_terms={"advance_amount": "5000", "recoupable": True},
    )
    assert success, result
    return result["id"]


@pytest.fixture
def flask_app(service):
    """Flask test app serving the shared test service."""
    from api import create_app
    app = create_app(service=service)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def flask_client(flask_app):
    """Create Flask test client."""
    return flask_app.test_client()
