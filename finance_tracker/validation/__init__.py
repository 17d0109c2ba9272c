"""Input validation."""

from finance_tracker.validation.validator import (
    TransactionValidationError,
    TransactionValidator,
    issues_from_validation_error,
)

__all__ = [
    "TransactionValidationError",
    "TransactionValidator",
    "issues_from_validation_error",
]
