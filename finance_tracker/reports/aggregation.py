"""
Aggregation Engine

DESIGN DECISION: Every function here is pure. It receives the full
transaction list and, where time matters, an explicit "today". Nothing
reads the wall clock or storage, so every number on a report can be
reproduced from its inputs.

Sign convention for totals: expenses minus income. A positive total means
money went out; displays use the absolute value.
"""

from collections.abc import Collection, Iterable, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from finance_tracker.ledger.dates import add_months, clamp_day_to_month, month_key
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
from finance_tracker.models.transaction import Transaction, TransactionKind


ZERO = Decimal("0")
CENT = Decimal("0.01")
UNCATEGORIZED = "Uncategorized"


# =============================================================================
# WINDOWS AND SIGNED TOTALS
# =============================================================================

def month_window(today: date, start_day: int) -> tuple[date, date]:
    """
    Reporting month containing `today`, as a half-open range [start, end).

    The month starts on `start_day`. If today is before this month's start
    day, the window began in the previous calendar month. A start day past
    the end of a short month is clamped to that month's last day.
    """
    if not 1 <= start_day <= 31:
        raise ValueError(f"start_day must be between 1 and 31, got {start_day}")

    start = date(
        today.year,
        today.month,
        clamp_day_to_month(today.year, today.month, start_day),
    )
    if start > today:
        start = add_months(start, -1, anchor_day=start_day)
    end = add_months(start, 1, anchor_day=start_day)
    return start, end


def signed_amount(transaction: Transaction) -> Decimal:
    """Amount with direction: positive for expenses, negative for income."""
    return -transaction.amount if transaction.is_income else transaction.amount


def signed_total(transactions: Iterable[Transaction]) -> Decimal:
    """Sum of expenses minus sum of income."""
    return sum((signed_amount(t) for t in transactions), ZERO)


def split_totals(transactions: Iterable[Transaction]) -> tuple[Decimal, Decimal]:
    """Return (income, expense) sums."""
    income = expense = ZERO
    for t in transactions:
        if t.is_income:
            income += t.amount
        else:
            expense += t.amount
    return income, expense


def in_window(transaction: Transaction, start: date, end: date) -> bool:
    return start <= transaction.date < end


def today_total(transactions: Iterable[Transaction], today: date) -> Decimal:
    return signed_total(t for t in transactions if t.date == today)


def month_total(
    transactions: Iterable[Transaction],
    today: date,
    start_day: int,
) -> Decimal:
    start, end = month_window(today, start_day)
    return signed_total(t for t in transactions if in_window(t, start, end))


def net_total(transactions: Iterable[Transaction]) -> Decimal:
    """All-time expenses minus all-time income."""
    return signed_total(transactions)


def dashboard_stats(
    transactions: Sequence[Transaction],
    today: date,
    start_day: int,
) -> DashboardStats:
    """Headline numbers for today, the reporting month and all time."""
    start, end = month_window(today, start_day)
    return DashboardStats(
        today=today,
        month_start=start,
        month_end=end,
        today_total=today_total(transactions, today),
        month_total=signed_total(t for t in transactions if in_window(t, start, end)),
        net_total=net_total(transactions),
    )


# =============================================================================
# CATEGORIES
# =============================================================================

def category_label(
    transaction: Transaction,
    known_categories: Optional[Collection[str]] = None,
) -> str:
    """
    Display category for a transaction.

    Empty categories, and categories missing from `known_categories` when
    it is given, display as "Uncategorized".
    """
    if not transaction.category:
        return UNCATEGORIZED
    if known_categories is not None and transaction.category not in known_categories:
        return UNCATEGORIZED
    return transaction.category


def category_totals(
    transactions: Iterable[Transaction],
    start: Optional[date] = None,
    end: Optional[date] = None,
    known_categories: Optional[Collection[str]] = None,
) -> list[CategoryTotal]:
    """
    Expense totals per category, in order of first appearance.

    Income is excluded. `start`/`end` optionally limit the range to
    [start, end).
    """
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.is_income:
            continue
        if start is not None and t.date < start:
            continue
        if end is not None and t.date >= end:
            continue
        label = category_label(t, known_categories)
        totals[label] = totals.get(label, ZERO) + t.amount

    return [CategoryTotal(category=name, total=total) for name, total in totals.items()]


def category_detail(
    transactions: Iterable[Transaction],
    category: str,
) -> CategoryDetail:
    """Count, amount and item totals of the transactions in one category."""
    members = [t for t in transactions if category_label(t) == category]
    return CategoryDetail(
        category=category,
        transaction_count=len(members),
        total_amount=sum((t.amount for t in members), ZERO),
        total_items=sum(len(t.items) for t in members),
        transactions=members,
    )


# =============================================================================
# ITEMS
# =============================================================================

def _normalize_name(name: str) -> str:
    return name.strip().lower()


def item_statistics(
    transactions: Iterable[Transaction],
    search: Optional[str] = None,
) -> list[ItemStatistic]:
    """
    Purchase statistics per distinct item name.

    Names match case-insensitively after trimming, so "Milk" and " milk "
    are one entry. Results are sorted by purchase count, most frequent
    first; equal counts keep the order of first appearance. The last
    purchase is the latest date, with ties going to the earlier input.
    """
    stats: dict[str, dict] = {}
    for t in transactions:
        for item in t.items:
            key = item.key
            if not key:
                continue
            entry = stats.get(key)
            if entry is None:
                stats[key] = {
                    "count": 1,
                    "total": item.price,
                    "last_date": t.date,
                    "last_id": t.id,
                }
                continue
            entry["count"] += 1
            entry["total"] += item.price
            if t.date > entry["last_date"]:
                entry["last_date"] = t.date
                entry["last_id"] = t.id

    needle = _normalize_name(search) if search else ""
    results = [
        ItemStatistic(
            name=name,
            count=entry["count"],
            total_spent=entry["total"],
            average_price=(entry["total"] / entry["count"]).quantize(
                CENT, rounding=ROUND_HALF_UP
            ),
            last_date=entry["last_date"],
            last_transaction_id=entry["last_id"],
        )
        for name, entry in stats.items()
        if needle in name
    ]
    results.sort(key=lambda s: s.count, reverse=True)
    return results


def top_items(transactions: Iterable[Transaction], limit: int = 3) -> list[ItemStatistic]:
    """Most frequently purchased items."""
    return item_statistics(transactions)[:limit]


def item_detail(
    transactions: Sequence[Transaction],
    name: str,
) -> Optional[ItemDetail]:
    """Statistics and purchase history for one item, or None if never bought."""
    key = _normalize_name(name)
    stats = [s for s in item_statistics(transactions) if s.name == key]
    if not stats:
        return None

    purchases = [
        ItemPurchase(
            transaction_id=t.id,
            place=t.place,
            date=t.date,
            price=item.price,
        )
        for t in transactions
        for item in t.items
        if item.key == key
    ]
    return ItemDetail(statistic=stats[0], purchases=purchases)


# =============================================================================
# RECURRING PATTERNS
# =============================================================================

def recurring_patterns(transactions: Iterable[Transaction]) -> list[RecurringPattern]:
    """
    Group stored recurring instances by (place, category, amount, frequency).

    Each group reports how many instances exist and the latest date among
    them. Groups keep the order of their first instance.
    """
    groups: dict[tuple, dict] = {}
    for t in transactions:
        if not t.is_recurring or t.recurring_frequency is None:
            continue
        key = (t.place, t.category, t.amount, t.recurring_frequency)
        group = groups.get(key)
        if group is None:
            groups[key] = {"first": t, "count": 1, "latest": t.date}
            continue
        group["count"] += 1
        if t.date > group["latest"]:
            group["latest"] = t.date

    return [
        RecurringPattern(
            place=group["first"].place,
            category=group["first"].category,
            amount=group["first"].amount,
            frequency=group["first"].recurring_frequency,
            is_income=group["first"].is_income,
            count=group["count"],
            latest_date=group["latest"],
        )
        for group in groups.values()
    ]


# =============================================================================
# CALENDAR REPORTS
# =============================================================================

def month_summary(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
) -> MonthSummary:
    income, expense = split_totals(t for t in transactions if t.matches_month(year, month))
    return MonthSummary(year=year, month=month, income=income, expense=expense)


def monthly_report(
    transactions: Sequence[Transaction],
    year: int,
    month: int,
) -> MonthlyReport:
    """Income, expense, net, expense categories and the month's transactions."""
    members = [t for t in transactions if t.matches_month(year, month)]
    income, expense = split_totals(members)
    return MonthlyReport(
        summary=MonthSummary(year=year, month=month, income=income, expense=expense),
        categories=category_totals(members),
        transactions=sorted(members, key=lambda t: t.date, reverse=True),
    )


def yearly_report(transactions: Sequence[Transaction], year: int) -> YearlyReport:
    """Income/expense summaries for every month of `year`."""
    return YearlyReport(
        year=year,
        months=[month_summary(transactions, year, month) for month in range(1, 13)],
    )


def filter_transactions(
    transactions: Iterable[Transaction],
    category: Optional[str] = None,
    kind: Optional[Union[TransactionKind, str]] = None,
    month: Optional[str] = None,
    year: Optional[int] = None,
) -> list[Transaction]:
    """
    Filter the transaction list, newest first.

    Args:
        category: Exact category name
        kind: "expense" or "income"
        month: Calendar month as YYYY-MM
        year: Calendar year
    """
    kind = TransactionKind(kind) if kind else None

    result = []
    for t in transactions:
        if category and t.category != category:
            continue
        if kind == TransactionKind.EXPENSE and t.is_income:
            continue
        if kind == TransactionKind.INCOME and not t.is_income:
            continue
        if month and month_key(t.date) != month:
            continue
        if year is not None and t.date.year != year:
            continue
        result.append(t)

    result.sort(key=lambda t: t.date, reverse=True)
    return result
