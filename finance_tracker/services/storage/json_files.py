"""
JSON File Storage Implementation

DESIGN DECISION: Flat JSON documents in a data directory are the storage
backend because:
1. The data set is personal-scale (thousands of records at most)
2. No database setup required
3. Users can read, back up and edit their data by hand
4. The documents stay compatible with earlier versions of the app

Layout of the data directory:
- expenses.json    list of transaction records
- categories.json  list of category names
- settings.json    user settings object
- audit.jsonl      append-only audit trail, one event per line

Writes go to a temporary file in the same directory which then replaces
the document, so a crash never leaves a half-written collection.

TRADEOFFS:
- Read-modify-write without locking: concurrent writers lose updates
- Whole collection loaded for every operation (we filter in Python)
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import ValidationError

from finance_tracker.config import get_settings
from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.transaction import Transaction, UserSettings
from finance_tracker.services.storage.interface import (
    DEFAULT_CATEGORIES,
    AuditStorageInterface,
    CategoryStorageInterface,
    SettingsStorageInterface,
    StorageError,
    TransactionStorageInterface,
)


TRANSACTIONS_FILE = "expenses.json"
CATEGORIES_FILE = "categories.json"
SETTINGS_FILE = "settings.json"


class JsonFileClient:
    """
    Low-level access to the JSON documents in the data directory.

    Missing documents are created with their default content on first
    access.
    """

    def __init__(self, data_dir: Optional[Union[str, Path]] = None):
        if data_dir is None:
            data_dir = get_settings().storage.data_dir
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path(self, name: str) -> Path:
        return self._data_dir / name

    def ensure_data_dir(self) -> None:
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self._data_dir}: {e}")

    def read_document(self, name: str, default: Any) -> Any:
        """
        Read and decode one document, creating it from `default` if missing.

        Raises:
            StorageError: If the file cannot be read or is not valid JSON
        """
        path = self.path(name)
        if not path.exists():
            self.write_document(name, default)
            return default

        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt document {path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def write_document(self, name: str, data: Any) -> None:
        """
        Replace one document atomically.

        Raises:
            StorageError: If the document cannot be written
        """
        self.ensure_data_dir()
        path = self.path(name)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._data_dir,
            prefix=f".{name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write {path}: {e}")

    def append_line(self, name: str, line: str) -> None:
        self.ensure_data_dir()
        path = self.path(name)
        try:
            with path.open("a", encoding="utf-8") as f:
                f.write(line.rstrip("\n") + "\n")
        except OSError as e:
            raise StorageError(f"Failed to append to {path}: {e}")

    def read_lines(self, name: str) -> list[str]:
        path = self.path(name)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as f:
                return [line for line in f.read().splitlines() if line.strip()]
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")


class JsonTransactionStorage(TransactionStorageInterface):
    """
    Transaction collection stored in expenses.json.
    """

    def __init__(self, client: Optional[JsonFileClient] = None):
        self._client = client or JsonFileClient()

    async def load_transactions(self) -> list[Transaction]:
        records = self._client.read_document(TRANSACTIONS_FILE, [])
        if not isinstance(records, list):
            raise StorageError(f"{TRANSACTIONS_FILE} must hold a JSON list")

        transactions = []
        for index, record in enumerate(records):
            try:
                transactions.append(Transaction.model_validate(record))
            except ValidationError as e:
                raise StorageError(
                    f"Invalid transaction record at position {index}: {e}"
                )
        return transactions

    async def save_transactions(self, transactions: list[Transaction]) -> None:
        self._client.write_document(
            TRANSACTIONS_FILE,
            [txn.to_record() for txn in transactions],
        )


class JsonCategoryStorage(CategoryStorageInterface):
    """
    Category list stored in categories.json.
    """

    def __init__(self, client: Optional[JsonFileClient] = None):
        self._client = client or JsonFileClient()

    async def load_categories(self) -> list[str]:
        categories = self._client.read_document(CATEGORIES_FILE, list(DEFAULT_CATEGORIES))
        if not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
            raise StorageError(f"{CATEGORIES_FILE} must hold a JSON list of strings")
        return categories

    async def save_categories(self, categories: list[str]) -> None:
        self._client.write_document(CATEGORIES_FILE, list(categories))


class JsonSettingsStorage(SettingsStorageInterface):
    """
    User settings stored in settings.json.
    """

    def __init__(self, client: Optional[JsonFileClient] = None):
        self._client = client or JsonFileClient()

    async def load_settings(self) -> UserSettings:
        record = self._client.read_document(SETTINGS_FILE, UserSettings().to_record())
        if not isinstance(record, dict):
            raise StorageError(f"{SETTINGS_FILE} must hold a JSON object")
        try:
            return UserSettings.model_validate(record)
        except ValidationError as e:
            raise StorageError(f"Invalid settings document: {e}")

    async def save_settings(self, settings: UserSettings) -> None:
        self._client.write_document(SETTINGS_FILE, settings.to_record())


class JsonAuditStorage(AuditStorageInterface):
    """
    Append-only audit trail stored as JSON lines.
    """

    def __init__(
        self,
        client: Optional[JsonFileClient] = None,
        file_name: Optional[str] = None,
    ):
        self._client = client or JsonFileClient()
        self._file_name = file_name or get_settings().storage.audit_file_name

    def _read_events(self) -> list[AuditEvent]:
        events = []
        for line in self._client.read_lines(self._file_name):
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValidationError as e:
                raise StorageError(f"Invalid audit line in {self._file_name}: {e}")
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        self._client.append_line(self._file_name, event.to_json_line())
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        # File order is append order, which is chronological
        return [e for e in self._read_events() if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._read_events()))[:limit]
