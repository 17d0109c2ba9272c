"""Ledger package: calendar arithmetic and recurrence expansion."""

from finance_tracker.ledger.dates import (
    add_months,
    add_years,
    clamp_day_to_month,
    month_key,
    parse_date,
)
from finance_tracker.ledger.recurrence import (
    DEFAULT_MAX_INSTANCES,
    RecurrenceError,
    expand_recurrence,
    iter_occurrences,
    occurrence_date,
)

__all__ = [
    "DEFAULT_MAX_INSTANCES",
    "RecurrenceError",
    "add_months",
    "add_years",
    "clamp_day_to_month",
    "expand_recurrence",
    "iter_occurrences",
    "month_key",
    "occurrence_date",
    "parse_date",
]
