"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements flat JSON documents as the backend, but designed to be
swappable.
"""

from finance_tracker.services.storage.interface import (
    DEFAULT_CATEGORIES,
    AuditStorageInterface,
    CategoryStorageInterface,
    NotFoundError,
    SettingsStorageInterface,
    StorageError,
    TransactionStorageInterface,
)
from finance_tracker.services.storage.json_files import (
    JsonAuditStorage,
    JsonCategoryStorage,
    JsonFileClient,
    JsonSettingsStorage,
    JsonTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "SettingsStorageInterface",
    "TransactionStorageInterface",
    "DEFAULT_CATEGORIES",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # JSON file implementation
    "JsonAuditStorage",
    "JsonCategoryStorage",
    "JsonFileClient",
    "JsonSettingsStorage",
    "JsonTransactionStorage",
]
