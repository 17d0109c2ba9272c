"""
Two-Stage Validation

DESIGN DECISION: Input validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking through the pydantic models
- Required field presence (amount, date)
- Recurring transactions must name a frequency
- Any failure here rejects the request before storage is touched

STAGE 2 - SEMANTIC CHECKS:
- Recurring end date before the start date
- Itemized prices adding up to more than the amount
- These are reported as warnings; the request still goes through

IMPORTANT: Validation NEVER silently fixes issues. Errors are raised as
TransactionValidationError carrying every issue found.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from finance_tracker.models.transaction import (
    Transaction,
    TransactionFields,
    TransactionInput,
    UserSettings,
    ValidationIssue,
    ValidationResult,
)


class TransactionValidationError(Exception):
    """Input rejected before any write."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        messages = [issue.message for issue in issues if issue.severity == "error"]
        super().__init__("; ".join(messages) or "Invalid input")

    def to_dicts(self) -> list[dict]:
        return [issue.model_dump() for issue in self.issues]


def issues_from_validation_error(error: ValidationError) -> list[ValidationIssue]:
    """Translate pydantic errors into ValidationIssue records."""
    issues = []
    for err in error.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "payload"
        issues.append(ValidationIssue(
            field=field,
            issue_type="missing" if err.get("type") == "missing" else "invalid_value",
            message=f"{field}: {err.get('msg', 'invalid value')}",
            severity="error",
        ))
    return issues


def _require_mapping(payload: Any, entity: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise TransactionValidationError([ValidationIssue(
            field="payload",
            issue_type="invalid_value",
            message=f"{entity} payload must be a JSON object",
            severity="error",
        )])
    return payload


class TransactionValidator:
    """
    Validates create/update payloads, category names and settings changes.
    """

    def _semantic_issues(self, fields: TransactionFields) -> list[ValidationIssue]:
        """
        Stage 2: checks that never block the write.
        """
        issues = []

        end_date = getattr(fields, "recurring_end_date", None)
        if fields.is_recurring and end_date is not None and end_date < fields.date:
            issues.append(ValidationIssue(
                field="recurringEndDate",
                issue_type="inconsistent",
                message=(
                    f"Recurring end date ({end_date}) is before the start date "
                    f"({fields.date}); only one transaction will be created"
                ),
                severity="warning",
                suggested_fix="Please verify both dates",
            ))

        items_total = sum((item.price for item in fields.items), Decimal("0"))
        if fields.amount > 0 and items_total > fields.amount:
            issues.append(ValidationIssue(
                field="items",
                issue_type="inconsistent",
                message=(
                    f"Item prices add up to {items_total}, more than the "
                    f"amount {fields.amount}"
                ),
                severity="warning",
                suggested_fix="Please verify the item prices",
            ))

        return issues

    def validate_create(
        self,
        payload: Any,
    ) -> tuple[TransactionInput, ValidationResult]:
        """
        Validate a create payload.

        Returns:
            The parsed payload and a result holding any warnings

        Raises:
            TransactionValidationError: If the payload is malformed
        """
        data = _require_mapping(payload, "Transaction")
        try:
            transaction_input = TransactionInput.model_validate(data)
        except ValidationError as e:
            raise TransactionValidationError(issues_from_validation_error(e))

        issues = self._semantic_issues(transaction_input)
        return transaction_input, ValidationResult(is_valid=True, issues=issues)

    def validate_update(
        self,
        existing: Transaction,
        changes: Any,
    ) -> tuple[Transaction, ValidationResult]:
        """
        Validate a shallow merge of `changes` over an existing transaction.

        Raises:
            TransactionValidationError: If the merged record is invalid
        """
        data = _require_mapping(changes, "Transaction")
        try:
            updated = existing.merged(data)
        except ValidationError as e:
            raise TransactionValidationError(issues_from_validation_error(e))

        issues = self._semantic_issues(updated)
        return updated, ValidationResult(is_valid=True, issues=issues)

    def validate_category_name(self, name: Any) -> str:
        """
        Return the trimmed category name.

        Raises:
            TransactionValidationError: If the name is blank or too long
        """
        if not isinstance(name, str) or not name.strip():
            raise TransactionValidationError([ValidationIssue(
                field="name",
                issue_type="missing",
                message="Category name is required",
                severity="error",
            )])

        cleaned = name.strip()
        if len(cleaned) > 100:
            raise TransactionValidationError([ValidationIssue(
                field="name",
                issue_type="invalid_value",
                message="Category name must be at most 100 characters",
                severity="error",
            )])
        return cleaned

    def validate_settings_update(
        self,
        current: UserSettings,
        changes: Any,
    ) -> UserSettings:
        """
        Validate a shallow merge of `changes` over the current settings.

        Raises:
            TransactionValidationError: If the merged settings are invalid
        """
        data = _require_mapping(changes, "Settings")
        try:
            return current.merged(data)
        except ValidationError as e:
            raise TransactionValidationError(issues_from_validation_error(e))

    def get_user_friendly_summary(
        self,
        issues: Optional[list[ValidationIssue]],
    ) -> str:
        """
        One-paragraph summary of validation issues for display.
        """
        if not issues:
            return "All checks passed."

        lines = []
        errors = [i for i in issues if i.severity == "error"]
        warnings = [i for i in issues if i.severity == "warning"]

        if errors:
            lines.append("Some fields need to be corrected:")
            lines.extend(f"  - {issue.message}" for issue in errors)
        if warnings:
            lines.append("Please double-check:")
            lines.extend(f"  - {issue.message}" for issue in warnings)

        return "\n".join(lines)
