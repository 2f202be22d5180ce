"""
Abstract base class for contract storage backends.

This module defines the persistence contract the ledger service relies on.
Backends only have to implement whole-document ``load_tables``/``save_tables``;
the record-level operations have default implementations built on those.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any

TABLES = ("contracts", "parties", "works", "registrations")


class StorageError(Exception):
    """A ledger backend could not complete a read or write."""


class StorageReadError(StorageError):
    """Stored ledger data could not be read or decoded."""


class StorageWriteError(StorageError):
    """Ledger data could not be persisted."""


def empty_tables() -> dict[str, dict[str, Any]]:
    return {name: {} for name in TABLES}


class ContractStore(ABC):
    """
    Abstract base class for contract storage backends.

    Records are plain dictionaries. Contracts are stored without their
    children; parties, works and registrations are stored flat and keyed by
    their own id, each carrying its parent id.

    Write operations return True on success and False when the target does
    not exist; backend failures raise a StorageError subclass. Nothing here
    retries.
    """

    def __init__(self):
        # Serializes load-modify-save cycles in the default implementations
        self._mutation_lock = threading.RLock()

    @abstractmethod
    def load_tables(self) -> dict[str, dict[str, Any]]:
        """
        Load every table from storage.

        Returns:
            Dictionary of table name -> {record id -> record}; empty tables
            when nothing has been stored yet.

        Raises:
            StorageReadError: If the stored data cannot be read
        """

    @abstractmethod
    def save_tables(self, tables: dict[str, dict[str, Any]]) -> None:
        """
        Persist every table.

        Raises:
            StorageWriteError: If the tables cannot be persisted
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Whether reads and writes are expected to succeed right now."""

    def get_info(self) -> dict[str, Any]:
        """Backend name, availability and per-table record counts."""
        info = {
            "backend_type": self.__class__.__name__,
            "available": self.is_available(),
        }
        if info["available"]:
            tables = self.load_tables()
            info.update({f"{name}_count": len(tables.get(name, {})) for name in TABLES})
        return info

    # Reads

    def load_contract(self, contract_id: str) -> dict[str, Any] | None:
        """
        Load a contract with its parties and schedule works nested.

        Returns:
            Nested contract record, or None if the contract does not exist
        """
        tables = self.load_tables()
        contract = tables["contracts"].get(contract_id)
        if contract is None:
            return None
        record = dict(contract)
        record["interested_parties"] = [
            p for p in tables["parties"].values() if p.get("contract_id") == contract_id
        ]
        record["schedule_works"] = [
            w for w in tables["works"].values() if w.get("contract_id") == contract_id
        ]
        return record

    def list_contracts(self) -> list[dict[str, Any]]:
        """Contract records without children."""
        return list(self.load_tables()["contracts"].values())

    def load_registrations(self, work_id: str | None = None) -> list[dict[str, Any]]:
        """Registration records, optionally for one work."""
        records = self.load_tables()["registrations"].values()
        return [r for r in records if work_id is None or r.get("work_id") == work_id]

    # Writes

    def _upsert(self, table: str, record_id: str, record: dict[str, Any]) -> bool:
        with self._mutation_lock:
            tables = self.load_tables()
            tables[table][record_id] = record
            self.save_tables(tables)
        return True

    def _delete(self, table: str, record_id: str) -> bool:
        with self._mutation_lock:
            tables = self.load_tables()
            if record_id not in tables[table]:
                return False
            del tables[table][record_id]
            self.save_tables(tables)
        return True

    def save_contract(self, contract: dict[str, Any]) -> bool:
        """Save a contract record; nested children are stored separately."""
        with self._mutation_lock:
            tables = self.load_tables()
            contract_id = contract["id"]
            parties = contract.get("interested_parties")
            works = contract.get("schedule_works")
            tables["contracts"][contract_id] = {
                k: v for k, v in contract.items() if k not in ("interested_parties", "schedule_works")
            }
            if parties is not None:
                for party in parties:
                    tables["parties"][party["id"]] = dict(party, contract_id=contract_id)
            if works is not None:
                for work in works:
                    tables["works"][work["id"]] = dict(work, contract_id=contract_id)
            self.save_tables(tables)
        return True

    def save_party(self, contract_id: str, party: dict[str, Any]) -> bool:
        """Insert or replace one interested party."""
        return self._upsert("parties", party["id"], dict(party, contract_id=contract_id))

    def delete_party(self, party_id: str) -> bool:
        return self._delete("parties", party_id)

    def save_schedule_work(self, contract_id: str, work: dict[str, Any]) -> bool:
        """Insert or replace one schedule work."""
        return self._upsert("works", work["id"], dict(work, contract_id=contract_id))

    def delete_schedule_work(self, work_id: str) -> bool:
        return self._delete("works", work_id)

    def save_registration(self, registration: dict[str, Any]) -> bool:
        return self._upsert("registrations", registration["id"], dict(registration))

    def close(self) -> None:
        """Release backend resources. The bundled backends hold none."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
