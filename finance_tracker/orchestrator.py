"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
end-to-end flows behind each collection endpoint:
1. Transactions (list, create single or recurring, update, delete)
2. Categories (list, add)
3. Settings (read, shallow-merge update)
4. Receipt scan (upload -> analyze -> normalize, nothing stored)
5. Reports (dashboard, categories, items, recurring, monthly, yearly)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Input is validated before storage is touched
- A recurring create is one read and one write
- A receipt scan never mutates stored state and always removes its upload
- Every mutation is audited

Storage is read-modify-write on whole collections. Two concurrent writers
can overwrite each other's changes (last writer wins); there is no locking.
"""

import tempfile
from datetime import date, datetime
from pathlib import Path
from typing import Any, NamedTuple, Optional, Union
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import get_settings
from finance_tracker.ledger import expand_recurrence
from finance_tracker.models.receipt import ReceiptData
from finance_tracker.models.report import (
    CategoryDetail,
    CategoryTotal,
    DashboardStats,
    ItemDetail,
    ItemStatistic,
    MonthlyReport,
    RecurringPattern,
    YearlyReport,
)
from finance_tracker.models.transaction import (
    RecurrenceExpansion,
    Transaction,
    TransactionKind,
    UserSettings,
    ValidationResult,
    to_wire_keys,
)
from finance_tracker.receipts import normalize_receipt
from finance_tracker.reports import aggregation
from finance_tracker.services.receipt import (
    GeminiReceiptService,
    InvalidUploadError,
    ReceiptConfigurationError,
    ReceiptScanError,
)
from finance_tracker.services.storage import (
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
from finance_tracker.validation import TransactionValidationError, TransactionValidator


logger = structlog.get_logger(__name__)

# Fields a client may send but never changes
_IMMUTABLE_FIELDS = {"id", "createdAt"}


class TransactionFlow:
    """
    Orchestrates changes to the transaction collection.

    Flow for every mutation:
    1. Validate → reject malformed input before any read
    2. Load → whole collection
    3. Modify → in memory
    4. Save → one complete-replacement write
    5. Audit
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        max_recurrences: Optional[int] = None,
    ):
        self._storage = transaction_storage
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self._max_recurrences = max_recurrences or get_settings().app.max_recurrences

    async def _audit_validation_failure(
        self,
        error: TransactionValidationError,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                entity_type="transaction",
                issues=error.to_dicts(),
                correlation_id=correlation_id,
            )

    def _log_warnings(self, result: ValidationResult, correlation_id: UUID) -> None:
        if result.warnings:
            logger.warning(
                "transaction_warnings",
                warnings=result.warnings,
                correlation_id=str(correlation_id),
            )

    async def list_transactions(self) -> list[Transaction]:
        """Return every stored transaction, in stored order."""
        return await self._storage.load_transactions()

    async def get_transaction(self, transaction_id: str) -> Transaction:
        """
        Raises:
            NotFoundError: If no transaction has this id
        """
        for txn in await self._storage.load_transactions():
            if txn.id == transaction_id:
                return txn
        raise NotFoundError("transaction", transaction_id)

    async def create_transaction(
        self,
        payload: Any,
        correlation_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> Union[Transaction, RecurrenceExpansion]:
        """
        Create one transaction, or expand and store a recurring series.

        Args:
            payload: Create payload (camelCase or snake_case keys)
            correlation_id: Correlates the audit events of this action
            now: Creation timestamp override

        Returns:
            The stored Transaction, or a RecurrenceExpansion when the
            payload is recurring

        Raises:
            TransactionValidationError: If the payload is malformed
            StorageError: If the collection cannot be read or written
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            transaction_input, result = self._validator.validate_create(payload)
        except TransactionValidationError as e:
            await self._audit_validation_failure(e, correlation_id)
            raise
        self._log_warnings(result, correlation_id)

        transactions = await self._storage.load_transactions()

        if transaction_input.is_recurring:
            expansion = expand_recurrence(
                transaction_input,
                max_instances=self._max_recurrences,
                now=now,
            )
            transactions.extend(expansion.transactions)
            await self._storage.save_transactions(transactions)

            if self._audit_logger:
                await self._audit_logger.log_recurring_expanded(
                    frequency=transaction_input.recurring_frequency.value,
                    created=expansion.created,
                    first_date=expansion.transactions[0].date.isoformat(),
                    last_date=expansion.transactions[-1].date.isoformat(),
                    correlation_id=correlation_id,
                )
            return expansion

        transaction = Transaction.from_input(transaction_input, created_at=now)
        transactions.append(transaction)
        await self._storage.save_transactions(transactions)

        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                transaction_id=transaction.id,
                amount=str(transaction.amount),
                is_income=transaction.is_income,
                correlation_id=correlation_id,
            )
        return transaction

    async def update_transaction(
        self,
        transaction_id: str,
        changes: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Shallow-merge `changes` into an existing transaction.

        id and createdAt cannot be changed. The merged record is validated
        as a whole.

        Raises:
            NotFoundError: If no transaction has this id
            TransactionValidationError: If the merged record is invalid
        """
        correlation_id = correlation_id or create_correlation_id()

        transactions = await self._storage.load_transactions()
        index = next(
            (i for i, txn in enumerate(transactions) if txn.id == transaction_id),
            None,
        )
        if index is None:
            if self._audit_logger:
                await self._audit_logger.log_transaction_not_found(
                    transaction_id=transaction_id,
                    operation="update",
                    correlation_id=correlation_id,
                )
            raise NotFoundError("transaction", transaction_id)

        try:
            updated, result = self._validator.validate_update(transactions[index], changes)
        except TransactionValidationError as e:
            await self._audit_validation_failure(e, correlation_id)
            raise
        self._log_warnings(result, correlation_id)

        transactions[index] = updated
        await self._storage.save_transactions(transactions)

        if self._audit_logger:
            fields = sorted(
                key for key in to_wire_keys(Transaction, changes)
                if key not in _IMMUTABLE_FIELDS
            )
            await self._audit_logger.log_transaction_updated(
                transaction_id=transaction_id,
                fields=fields,
                correlation_id=correlation_id,
            )
        return updated

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Remove a transaction.

        Returns:
            The removed transaction

        Raises:
            NotFoundError: If no transaction has this id (nothing is written)
        """
        correlation_id = correlation_id or create_correlation_id()

        transactions = await self._storage.load_transactions()
        remaining = [txn for txn in transactions if txn.id != transaction_id]

        if len(remaining) == len(transactions):
            if self._audit_logger:
                await self._audit_logger.log_transaction_not_found(
                    transaction_id=transaction_id,
                    operation="delete",
                    correlation_id=correlation_id,
                )
            raise NotFoundError("transaction", transaction_id)

        deleted = next(txn for txn in transactions if txn.id == transaction_id)
        await self._storage.save_transactions(remaining)

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction_id,
                correlation_id=correlation_id,
            )
        return deleted


class CategoryFlow:
    """Ordered category list with idempotent add."""

    def __init__(
        self,
        category_storage: CategoryStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = category_storage
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    async def list_categories(self) -> list[str]:
        return await self._storage.load_categories()

    async def add_category(
        self,
        name: Any,
        correlation_id: Optional[UUID] = None,
    ) -> list[str]:
        """
        Append a category name.

        Adding a name that already exists returns the list unchanged and
        writes nothing.

        Returns:
            The category list after the add

        Raises:
            TransactionValidationError: If the name is blank
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            cleaned = self._validator.validate_category_name(name)
        except TransactionValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    entity_type="category",
                    issues=e.to_dicts(),
                    correlation_id=correlation_id,
                )
            raise

        categories = await self._storage.load_categories()
        if cleaned in categories:
            return categories

        categories.append(cleaned)
        await self._storage.save_categories(categories)

        if self._audit_logger:
            await self._audit_logger.log_category_added(
                name=cleaned,
                correlation_id=correlation_id,
            )
        return categories


class SettingsFlow:
    """User settings: read, and shallow-merge update."""

    def __init__(
        self,
        settings_storage: SettingsStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = settings_storage
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    async def get_settings(self) -> UserSettings:
        return await self._storage.load_settings()

    async def update_settings(
        self,
        changes: Any,
        correlation_id: Optional[UUID] = None,
    ) -> UserSettings:
        """
        Merge supplied fields over the current settings and store them.

        Raises:
            TransactionValidationError: If the merged settings are invalid
        """
        correlation_id = correlation_id or create_correlation_id()

        current = await self._storage.load_settings()
        try:
            updated = self._validator.validate_settings_update(current, changes)
        except TransactionValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    entity_type="settings",
                    issues=e.to_dicts(),
                    correlation_id=correlation_id,
                )
            raise

        await self._storage.save_settings(updated)

        if self._audit_logger:
            # Field names only: the API key value must never reach the logs
            await self._audit_logger.log_settings_updated(
                fields=sorted(to_wire_keys(UserSettings, changes)),
                correlation_id=correlation_id,
            )
        return updated


class ReceiptScanFlow:
    """
    Orchestrates a receipt scan.

    Flow:
    1. Check the upload (present, size limit, image type)
    2. Write it to a temporary upload file
    3. Resolve the API key (user settings, then environment)
    4. Analyze with the model fallback list
    5. Normalize the answer
    6. Delete the temporary file, whatever happened

    The result is a proposal only. Nothing is stored; the client submits
    it as a regular create once the user has reviewed it.
    """

    def __init__(
        self,
        settings_storage: SettingsStorageInterface,
        receipt_service: Optional[GeminiReceiptService] = None,
        audit_logger: Optional[AuditLogger] = None,
        upload_dir: Optional[Path] = None,
    ):
        self._settings_storage = settings_storage
        self._receipt_service = receipt_service or GeminiReceiptService()
        self._audit_logger = audit_logger
        self._app_settings = get_settings().app
        self._upload_dir = Path(upload_dir or get_settings().storage.upload_dir)

    def _check_upload(self, image_bytes: bytes, filename: str, mime_type: str) -> None:
        if not image_bytes:
            raise InvalidUploadError("No file uploaded")

        if len(image_bytes) > self._app_settings.max_upload_size_bytes:
            raise InvalidUploadError(
                f"File too large: limit is {self._app_settings.max_upload_size_mb} MB"
            )

        extension = Path(filename or "").suffix.lower().lstrip(".")
        if not (mime_type or "").startswith("image/") and (
            extension not in self._app_settings.supported_formats_list
        ):
            raise InvalidUploadError(f"Unsupported file type: {mime_type or filename}")

    def _write_upload(self, image_bytes: bytes, filename: str) -> Path:
        try:
            self._upload_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=self._upload_dir,
                prefix="receipt-",
                suffix=Path(filename or "").suffix,
                delete=False,
            ) as f:
                f.write(image_bytes)
                return Path(f.name)
        except OSError as e:
            raise StorageError(f"Cannot store upload: {e}")

    async def _resolve_api_key(self) -> str:
        user_settings = await self._settings_storage.load_settings()
        if user_settings.has_api_key:
            return user_settings.gemini_api_key
        return get_settings().gemini.api_key

    async def scan_receipt(
        self,
        image_bytes: bytes,
        filename: str,
        mime_type: str,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ReceiptData:
        """
        Analyze an uploaded receipt image.

        Args:
            image_bytes: Uploaded file content
            filename: Original file name
            mime_type: Uploaded MIME type
            today: Fallback date for unreadable receipt dates

        Returns:
            Normalized ReceiptData (not stored)

        Raises:
            InvalidUploadError: Missing, oversized or non-image upload
            ReceiptConfigurationError: No API key configured
            AllModelsFailedError: Every model failed
            ReceiptParseError: Model answer held no JSON
        """
        correlation_id = correlation_id or create_correlation_id()
        today = today or date.today()

        try:
            self._check_upload(image_bytes, filename, mime_type)
        except InvalidUploadError as e:
            if self._audit_logger:
                await self._audit_logger.log_receipt_scan_failed(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_receipt_scan_started(
                filename=filename,
                file_size=len(image_bytes),
                correlation_id=correlation_id,
            )

        async def record_model_failure(model_name: str, error: Exception) -> None:
            if self._audit_logger:
                await self._audit_logger.log_receipt_model_failed(
                    model_name=model_name,
                    error_message=str(error),
                    correlation_id=correlation_id,
                )

        upload_path = self._write_upload(image_bytes, filename)
        try:
            api_key = await self._resolve_api_key()
            if not api_key:
                raise ReceiptConfigurationError("Gemini API key not configured")

            raw = await self._receipt_service.analyze(
                upload_path.read_bytes(),
                mime_type or "image/jpeg",
                api_key,
                on_model_failure=record_model_failure,
            )
            receipt = normalize_receipt(raw, today)
        except ReceiptScanError as e:
            if self._audit_logger:
                await self._audit_logger.log_receipt_scan_failed(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        finally:
            upload_path.unlink(missing_ok=True)

        if self._audit_logger:
            await self._audit_logger.log_receipt_scan_completed(
                model_name=receipt.model,
                place_recognized=receipt.place_recognized,
                amount_recognized=receipt.amount_recognized,
                item_count=len(receipt.items),
                correlation_id=correlation_id,
            )
        return receipt


class ReportFlow:
    """
    Read-only reports over the transaction collection.

    Each call loads the collection (and settings where the month start day
    matters) and delegates to the pure aggregation functions with an
    explicit "today".
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        settings_storage: SettingsStorageInterface,
    ):
        self._transactions = transaction_storage
        self._settings = settings_storage

    async def dashboard(self, today: Optional[date] = None) -> DashboardStats:
        transactions = await self._transactions.load_transactions()
        user_settings = await self._settings.load_settings()
        return aggregation.dashboard_stats(
            transactions,
            today or date.today(),
            user_settings.start_date,
        )

    async def categories(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[CategoryTotal]:
        transactions = await self._transactions.load_transactions()
        return aggregation.category_totals(transactions, start=start, end=end)

    async def category_detail(self, category: str) -> CategoryDetail:
        transactions = await self._transactions.load_transactions()
        return aggregation.category_detail(transactions, category)

    async def items(self, search: Optional[str] = None) -> list[ItemStatistic]:
        transactions = await self._transactions.load_transactions()
        return aggregation.item_statistics(transactions, search=search)

    async def top_items(self, limit: int = 3) -> list[ItemStatistic]:
        transactions = await self._transactions.load_transactions()
        return aggregation.top_items(transactions, limit=limit)

    async def item_detail(self, name: str) -> Optional[ItemDetail]:
        transactions = await self._transactions.load_transactions()
        return aggregation.item_detail(transactions, name)

    async def recurring(self) -> list[RecurringPattern]:
        transactions = await self._transactions.load_transactions()
        return aggregation.recurring_patterns(transactions)

    async def monthly(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
        today: Optional[date] = None,
    ) -> MonthlyReport:
        """Report for a calendar month; defaults to the month containing today."""
        today = today or date.today()
        transactions = await self._transactions.load_transactions()
        return aggregation.monthly_report(
            transactions,
            year or today.year,
            month or today.month,
        )

    async def yearly(
        self,
        year: Optional[int] = None,
        today: Optional[date] = None,
    ) -> YearlyReport:
        today = today or date.today()
        transactions = await self._transactions.load_transactions()
        return aggregation.yearly_report(transactions, year or today.year)

    async def filter(
        self,
        category: Optional[str] = None,
        kind: Optional[Union[TransactionKind, str]] = None,
        month: Optional[str] = None,
        year: Optional[int] = None,
    ) -> list[Transaction]:
        transactions = await self._transactions.load_transactions()
        return aggregation.filter_transactions(
            transactions,
            category=category,
            kind=kind,
            month=month,
            year=year,
        )


class AppComponents(NamedTuple):
    transactions: TransactionFlow
    categories: CategoryFlow
    settings: SettingsFlow
    receipts: ReceiptScanFlow
    reports: ReportFlow
    client: JsonFileClient


def create_app_components(
    data_dir: Optional[Union[str, Path]] = None,
    receipt_service: Optional[GeminiReceiptService] = None,
    upload_dir: Optional[Union[str, Path]] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        data_dir: Directory of the JSON documents (defaults to
                  STORAGE_DATA_DIR / "data")
        receipt_service: Receipt analysis backend (defaults to Gemini)
        upload_dir: Directory for temporary uploads

    Returns:
        AppComponents with one flow per endpoint group
    """
    client = JsonFileClient(data_dir)
    transaction_storage = JsonTransactionStorage(client)
    category_storage = JsonCategoryStorage(client)
    settings_storage = JsonSettingsStorage(client)
    audit_logger = AuditLogger(JsonAuditStorage(client))
    validator = TransactionValidator()

    return AppComponents(
        transactions=TransactionFlow(
            transaction_storage,
            validator=validator,
            audit_logger=audit_logger,
        ),
        categories=CategoryFlow(
            category_storage,
            validator=validator,
            audit_logger=audit_logger,
        ),
        settings=SettingsFlow(
            settings_storage,
            validator=validator,
            audit_logger=audit_logger,
        ),
        receipts=ReceiptScanFlow(
            settings_storage,
            receipt_service=receipt_service,
            audit_logger=audit_logger,
            upload_dir=Path(upload_dir) if upload_dir else None,
        ),
        reports=ReportFlow(transaction_storage, settings_storage),
        client=client,
    )
