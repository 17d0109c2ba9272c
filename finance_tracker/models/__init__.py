"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.transaction import (
    Frequency,
    RecurrenceExpansion,
    Theme,
    Transaction,
    TransactionInput,
    TransactionItem,
    TransactionKind,
    UserSettings,
    ValidationIssue,
    ValidationResult,
)
from finance_tracker.models.receipt import UNRECOGNIZED, ReceiptData
from finance_tracker.models.report import (
    CategoryDetail,
    CategoryTotal,
    DashboardStats,
    ItemDetail,
    ItemPurchase,
    ItemStatistic,
    MonthlyReport,
    MonthSummary,
    RecurringPattern,
    YearlyReport,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "Frequency",
    "RecurrenceExpansion",
    "Theme",
    "Transaction",
    "TransactionInput",
    "TransactionItem",
    "TransactionKind",
    "UserSettings",
    "ValidationIssue",
    "ValidationResult",
    # Receipt models
    "UNRECOGNIZED",
    "ReceiptData",
    # Report models
    "CategoryDetail",
    "CategoryTotal",
    "DashboardStats",
    "ItemDetail",
    "ItemPurchase",
    "ItemStatistic",
    "MonthlyReport",
    "MonthSummary",
    "RecurringPattern",
    "YearlyReport",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
