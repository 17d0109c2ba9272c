"""Services package."""

from finance_tracker.services.receipt import (
    AllModelsFailedError,
    GeminiReceiptService,
    InvalidUploadError,
    ReceiptConfigurationError,
    ReceiptParseError,
    ReceiptScanError,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    CategoryStorageInterface,
    JsonAuditStorage,
    JsonCategoryStorage,
    JsonFileClient,
    JsonSettingsStorage,
    JsonTransactionStorage,
    NotFoundError,
    SettingsStorageInterface,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Receipt services
    "AllModelsFailedError",
    "GeminiReceiptService",
    "InvalidUploadError",
    "ReceiptConfigurationError",
    "ReceiptParseError",
    "ReceiptScanError",
    # Storage services
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "JsonAuditStorage",
    "JsonCategoryStorage",
    "JsonFileClient",
    "JsonSettingsStorage",
    "JsonTransactionStorage",
    "NotFoundError",
    "SettingsStorageInterface",
    "StorageError",
    "TransactionStorageInterface",
]
