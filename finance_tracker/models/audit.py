"""
Audit Models for Finance Tracker

Every mutation and every receipt scan is logged for audit purposes.
This provides:
1. Traceability of all changes to the stored collections
2. Debugging information when an external call fails
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    RECURRING_SERIES_EXPANDED = "recurring_series_expanded"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    VALIDATION_FAILED = "validation_failed"

    # Categories and settings
    CATEGORY_ADDED = "category_added"
    SETTINGS_UPDATED = "settings_updated"

    # Receipt scanning
    RECEIPT_SCAN_STARTED = "receipt_scan_started"
    RECEIPT_MODEL_FAILED = "receipt_model_failed"
    RECEIPT_SCAN_COMPLETED = "receipt_scan_completed"
    RECEIPT_SCAN_FAILED = "receipt_scan_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'receipt', 'settings')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one scan)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """Serialize as one line of the append-only audit file."""
        return json.dumps(self.model_dump(mode="json"), ensure_ascii=False)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(txn_id, amount, correlation_id)
        event = AuditEventBuilder.receipt_scan_failed(error, models, correlation_id)
    """

    @staticmethod
    def transaction_created(
        transaction_id: str,
        amount: str,
        is_income: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        kind = "income" if is_income else "expense"
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction created: {kind} {amount}",
            details={
                "amount": amount,
                "is_income": is_income,
            },
            is_user_action=True,
        )

    @staticmethod
    def recurring_series_expanded(
        frequency: str,
        created: int,
        first_date: str,
        last_date: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_SERIES_EXPANDED,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Recurring {frequency} series expanded into {created} transactions",
            details={
                "frequency": frequency,
                "created": created,
                "first_date": first_date,
                "last_date": last_date,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        fields: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction updated ({len(fields)} fields)",
            details={
                "fields": fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def transaction_not_found(
        transaction_id: str,
        operation: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Cannot {operation}: transaction not found",
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def category_added(
        name: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_ADDED,
            entity_type="category",
            entity_id=name,
            correlation_id=correlation_id,
            description=f"Category added: {name}",
            is_user_action=True,
        )

    @staticmethod
    def settings_updated(
        fields: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            entity_type="settings",
            correlation_id=correlation_id,
            description="Settings updated",
            details={
                "fields": fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def receipt_scan_started(
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_STARTED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt uploaded: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def receipt_model_failed(
        model_name: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_MODEL_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Model {model_name} failed, trying next model",
            error_message=error_message,
            details={
                "model": model_name,
            },
        )

    @staticmethod
    def receipt_scan_completed(
        model_name: Optional[str],
        place_recognized: bool,
        amount_recognized: bool,
        item_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_COMPLETED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt scanned with {model_name or 'unknown model'}",
            details={
                "model": model_name,
                "place_recognized": place_recognized,
                "amount_recognized": amount_recognized,
                "item_count": item_count,
            },
        )

    @staticmethod
    def receipt_scan_failed(
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt scan failed: {error_type}",
            error_message=error_message,
            details={
                "error_type": error_type,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
