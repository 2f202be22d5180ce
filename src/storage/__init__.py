"""
Persistence for the royalty ledger.

Contracts, their interested parties, schedule works and registrations are
kept in named tables behind the ContractStore interface. Two backends ship:

- ``json``: one JSON document on disk (default, CONTRACT_DATA_FILE)
- ``memory``: process-local, for tests and throwaway servers

    from storage import get_storage_backend

    store = get_storage_backend()
    store.save_party(contract_id, party.to_dict())
    record = store.load_contract(contract_id)
"""

import os

from storage.base import (
    ContractStore,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from storage.json_file import JSONFileStorage
from storage.memory import MemoryStorage

__all__ = [
    "ContractStore",
    "JSONFileStorage",
    "MemoryStorage",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "get_storage_backend",
]

_BACKENDS = {
    "json": lambda: JSONFileStorage(os.getenv("CONTRACT_DATA_FILE", "contract_data.json")),
    "memory": MemoryStorage,
}


def get_storage_backend() -> ContractStore:
    """
    Build the backend named by STORAGE_BACKEND (``json`` when unset).

    Raises:
        StorageError: For an unrecognized backend name
    """
    name = os.getenv("STORAGE_BACKEND", "json").lower()
    factory = _BACKENDS.get(name)
    if factory is None:
        raise StorageError(f"Unknown storage backend: {name}")
    return factory()

