"""
Audit Logger

DESIGN DECISION: Every mutation and every receipt scan is logged.
This provides:
1. Complete traceability of changes to the stored collections
2. Debugging capability when the analysis service misbehaves
3. A history the user can inspect

The audit logger:
- Is async to match the storage interface
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
- Never receives secrets: events carry field names, not settings values
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finance_tracker.services.storage import AuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except StorageError as e:
                # Audit persistence must not break the main flow
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_created(
        self,
        transaction_id: str,
        amount: str,
        is_income: bool,
        correlation_id: UUID,
    ) -> None:
        """Log a single transaction create."""
        await self.log(AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            amount=amount,
            is_income=is_income,
            correlation_id=correlation_id,
        ))

    async def log_recurring_expanded(
        self,
        frequency: str,
        created: int,
        first_date: str,
        last_date: str,
        correlation_id: UUID,
    ) -> None:
        """Log a recurring template expanded into stored instances."""
        await self.log(AuditEventBuilder.recurring_series_expanded(
            frequency=frequency,
            created=created,
            first_date=first_date,
            last_date=last_date,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        transaction_id: str,
        fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_transaction_not_found(
        self,
        transaction_id: str,
        operation: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_not_found(
            transaction_id=transaction_id,
            operation=operation,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_category_added(
        self,
        name: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_added(
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_settings_updated(
        self,
        fields: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log a settings change (field names only, never values)."""
        await self.log(AuditEventBuilder.settings_updated(
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_receipt_scan_started(
        self,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_scan_started(
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        ))

    async def log_receipt_model_failed(
        self,
        model_name: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_model_failed(
            model_name=model_name,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_receipt_scan_completed(
        self,
        model_name: Optional[str],
        place_recognized: bool,
        amount_recognized: bool,
        item_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_scan_completed(
            model_name=model_name,
            place_recognized=place_recognized,
            amount_recognized=amount_recognized,
            item_count=item_count,
            correlation_id=correlation_id,
        ))

    async def log_receipt_scan_failed(
        self,
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_scan_failed(
            error_type=error_type,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., receipt scan).
    Pass it through all subsequent operations.
    """
    return uuid4()
