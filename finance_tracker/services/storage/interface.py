"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the JSON files for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Each collection is a complete-replacement document: a read returns the
whole collection, a write replaces it. Flows do read-modify-write; there
is no conflict detection between concurrent writers.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.transaction import Transaction, UserSettings


DEFAULT_CATEGORIES = [
    "Food",
    "Groceries",
    "Transport",
    "Utilities",
    "Shopping",
    "Entertainment",
    "Other",
]


class TransactionStorageInterface(ABC):
    """
    Abstract interface for the transaction collection.
    """

    @abstractmethod
    async def load_transactions(self) -> list[Transaction]:
        """
        Load every stored transaction, in stored order.

        Raises:
            StorageError: If the collection cannot be read
        """
        pass

    @abstractmethod
    async def save_transactions(self, transactions: list[Transaction]) -> None:
        """
        Replace the stored collection with `transactions`.

        The write is all-or-nothing.

        Raises:
            StorageError: If the collection cannot be written
        """
        pass


class CategoryStorageInterface(ABC):
    """
    Abstract interface for the ordered category list.
    """

    @abstractmethod
    async def load_categories(self) -> list[str]:
        pass

    @abstractmethod
    async def save_categories(self, categories: list[str]) -> None:
        pass


class SettingsStorageInterface(ABC):
    """
    Abstract interface for the user settings document.
    """

    @abstractmethod
    async def load_settings(self) -> UserSettings:
        pass

    @abstractmethod
    async def save_settings(self, settings: UserSettings) -> None:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one receipt scan).

        Args:
            correlation_id: The correlation identifier

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")
