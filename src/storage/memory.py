"""
Process-local storage backend.

Used by the test suite, by ``STORAGE_BACKEND=memory`` and as the fallback
when a RoyaltyLedgerService is built without a store.
"""

import copy
import threading
from typing import Any

from storage.base import ContractStore, empty_tables


class MemoryStorage(ContractStore):
    """Holds the ledger tables in a dict; nothing survives the process."""

    def __init__(self):
        super().__init__()
        self._snapshot: dict[str, dict[str, Any]] | None = None
        self._guard = threading.RLock()

    def load_tables(self) -> dict[str, dict[str, Any]]:
        # Callers mutate what they load, so hand out copies
        with self._guard:
            return empty_tables() if self._snapshot is None else copy.deepcopy(self._snapshot)

    def save_tables(self, tables: dict[str, dict[str, Any]]) -> None:
        snapshot = copy.deepcopy(tables)
        with self._guard:
            self._snapshot = snapshot

    def is_available(self) -> bool:
        return True

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        with self._guard:
            info["has_data"] = self._snapshot is not None
        return info

    def clear(self) -> None:
        """Drop every stored contract, party, work and registration."""
        with self._guard:
            self._snapshot = None
