"""
Single-document JSON storage backend.

The default backend. Every ledger table lives in one JSON object keyed by
table name; writes go to ``<path>.tmp`` first and are swapped into place.
"""

import json
import os
import shutil
import threading
from datetime import UTC, datetime
from typing import Any

from storage.base import (
    TABLES,
    ContractStore,
    StorageReadError,
    StorageWriteError,
    empty_tables,
)


class JSONFileStorage(ContractStore):
    """
    Stores contracts, parties, schedule works and registrations in one file.

    Args:
        file_path: Location of the JSON document. Its directory must exist.
    """

    def __init__(self, file_path: str = "contract_data.json"):
        super().__init__()
        self.file_path = file_path
        self._io_lock = threading.Lock()

    def _read_document(self) -> Any:
        if not os.path.exists(self.file_path):
            return None
        try:
            with open(self.file_path, encoding="utf-8") as handle:
                text = handle.read()
        except PermissionError as e:
            raise StorageReadError(f"Permission denied: {self.file_path}") from e
        except OSError as e:
            raise StorageReadError(f"Could not read {self.file_path}: {e}") from e

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageReadError(f"{self.file_path} is not valid JSON: {e}") from e

    def load_tables(self) -> dict[str, dict[str, Any]]:
        """
        Read every table from disk.

        A missing or blank file reads as an empty ledger.

        Raises:
            StorageReadError: If the file is unreadable, is not JSON, or its
                root or one of its tables is not an object
        """
        with self._io_lock:
            document = self._read_document()

        tables = empty_tables()
        if document is None:
            return tables
        if not isinstance(document, dict):
            raise StorageReadError(f"Unexpected document root in {self.file_path}")
        for name in TABLES:
            records = document.get(name) or {}
            if not isinstance(records, dict):
                raise StorageReadError(f"Table {name!r} in {self.file_path} is not an object")
            tables[name].update(records)
        return tables

    def save_tables(self, tables: dict[str, dict[str, Any]]) -> None:
        """Serialize the tables and atomically replace the file."""
        try:
            payload = json.dumps(tables, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as e:
            raise StorageWriteError(f"Ledger tables are not serializable: {e}") from e

        staging = f"{self.file_path}.tmp"
        with self._io_lock:
            try:
                with open(staging, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(staging, self.file_path)
            except PermissionError as e:
                raise StorageWriteError(f"Permission denied: {self.file_path}") from e
            except OSError as e:
                raise StorageWriteError(f"Could not write {self.file_path}: {e}") from e

    def is_available(self) -> bool:
        parent = os.path.dirname(self.file_path) or "."
        return os.path.isdir(parent) and os.access(parent, os.W_OK)

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        info["file_path"] = self.file_path
        try:
            stat = os.stat(self.file_path)
        except OSError:
            info["file_exists"] = False
            return info
        info.update(file_exists=True, file_size_bytes=stat.st_size, last_modified=stat.st_mtime)
        return info

    def backup(self, backup_path: str | None = None) -> str:
        """
        Copy the ledger file aside and return the copy's path.

        Without an explicit destination the copy is written next to the
        original with a UTC timestamp suffix.

        Raises:
            StorageReadError: If the ledger file does not exist yet
            StorageWriteError: If the copy fails
        """
        if not os.path.exists(self.file_path):
            raise StorageReadError(f"Nothing to back up: {self.file_path} does not exist")
        target = backup_path or f"{self.file_path}.{datetime.now(UTC):%Y%m%d%H%M%S}.bak"
        with self._io_lock:
            try:
                shutil.copy2(self.file_path, target)
            except OSError as e:
                raise StorageWriteError(f"Backup failed: {e}") from e
        return target
