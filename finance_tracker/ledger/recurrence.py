"""
Recurrence Expansion

Turns a recurring template into the concrete, dated transactions that get
stored. Expansion is deterministic for a given template: the dates depend
only on the template's date, frequency and end date.

Rules:
- the first instance is always the template's own date
- daily +1 day, weekly +7 days
- monthly / yearly keep the template's day-of-month, clamped to the
  target month length (Jan 31 -> Feb 29 -> Mar 31)
- stop once the next date would pass the end date, or at max_instances
- an end date before the start date still yields the start instance
"""

from collections.abc import Callable, Iterator
from datetime import date, datetime, timedelta
from itertools import count
from typing import Optional

from finance_tracker.ledger.dates import add_months, add_years
from finance_tracker.models.transaction import (
    Frequency,
    RecurrenceExpansion,
    Transaction,
    TransactionInput,
    new_transaction_id,
    utc_now,
)


DEFAULT_MAX_INSTANCES = 365


class RecurrenceError(ValueError):
    """The template cannot be expanded."""
    pass


def occurrence_date(start: date, frequency: Frequency, index: int) -> date:
    """Date of the index-th occurrence (0 = start) of a series."""
    if frequency == Frequency.DAILY:
        return start + timedelta(days=index)
    if frequency == Frequency.WEEKLY:
        return start + timedelta(weeks=index)
    if frequency == Frequency.MONTHLY:
        return add_months(start, index, anchor_day=start.day)
    if frequency == Frequency.YEARLY:
        return add_years(start, index, anchor_day=start.day)
    raise RecurrenceError(f"Unsupported recurring frequency: {frequency}")


def iter_occurrences(
    start: date,
    frequency: Frequency,
    end: Optional[date] = None,
    max_instances: int = DEFAULT_MAX_INSTANCES,
) -> Iterator[date]:
    """Yield the dates of a series, honouring the end date and the cap."""
    if max_instances < 1:
        raise RecurrenceError("max_instances must be at least 1")

    for index in count():
        if index >= max_instances:
            return
        current = occurrence_date(start, frequency, index)
        if index > 0 and end is not None and current > end:
            return
        yield current


def expand_recurrence(
    template: TransactionInput,
    *,
    max_instances: int = DEFAULT_MAX_INSTANCES,
    now: Optional[datetime] = None,
    id_factory: Callable[[], str] = new_transaction_id,
) -> RecurrenceExpansion:
    """
    Expand a recurring template into dated transaction instances.

    Args:
        template: Validated create payload with is_recurring set
        max_instances: Safety cap on generated instances
        now: Creation timestamp for every instance (defaults to now)
        id_factory: Generator for instance ids

    Returns:
        RecurrenceExpansion with the instances and their count

    Raises:
        RecurrenceError: If the template is not recurring
    """
    if not template.is_recurring or template.recurring_frequency is None:
        raise RecurrenceError("Template is not a recurring transaction")

    created_at = now or utc_now()
    transactions = [
        Transaction.from_input(
            template,
            on=occurrence,
            transaction_id=id_factory(),
            created_at=created_at,
        )
        for occurrence in iter_occurrences(
            template.date,
            template.recurring_frequency,
            end=template.recurring_end_date,
            max_instances=max_instances,
        )
    ]

    return RecurrenceExpansion(created=len(transactions), transactions=transactions)
