"""
Report Models

Results of the aggregation engine. These are display-ready summaries
computed from the transaction list; none of them is stored.

Signed totals follow one convention throughout: expenses minus income.
A positive value means money went out.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.transaction import Frequency, Transaction


class DashboardStats(BaseModel):
    """Headline numbers: today, the current reporting month, all time."""

    today: dt.date
    month_start: dt.date
    month_end: dt.date = Field(description="Exclusive end of the month window")
    today_total: Decimal
    month_total: Decimal
    net_total: Decimal

    @property
    def today_display(self) -> Decimal:
        return abs(self.today_total)

    @property
    def month_display(self) -> Decimal:
        return abs(self.month_total)

    @property
    def net_display(self) -> Decimal:
        return abs(self.net_total)


class CategoryTotal(BaseModel):
    """Expense total for one category."""

    category: str
    total: Decimal


class CategoryDetail(BaseModel):
    """Everything recorded under one category."""

    category: str
    transaction_count: int = Field(ge=0)
    total_amount: Decimal
    total_items: int = Field(ge=0)
    transactions: list[Transaction] = Field(default_factory=list)


class ItemStatistic(BaseModel):
    """Purchase statistics for one item name (case-insensitive)."""

    name: str = Field(description="Normalized item name (trimmed, lower case)")
    count: int = Field(ge=1)
    total_spent: Decimal
    average_price: Decimal
    last_date: dt.date
    last_transaction_id: str

    @property
    def display_name(self) -> str:
        return self.name[:1].upper() + self.name[1:]


class ItemPurchase(BaseModel):
    """One occurrence of an item on a transaction."""

    transaction_id: str
    place: Optional[str] = None
    date: dt.date
    price: Decimal


class ItemDetail(BaseModel):
    """Statistics plus purchase history for one item."""

    statistic: ItemStatistic
    purchases: list[ItemPurchase] = Field(default_factory=list)


class RecurringPattern(BaseModel):
    """
    Recurring transactions grouped by (place, category, amount, frequency).

    This is a display convenience; no such entity is stored.
    """

    place: Optional[str] = None
    category: str
    amount: Decimal
    frequency: Frequency
    is_income: bool
    count: int = Field(ge=1)
    latest_date: dt.date


class MonthSummary(BaseModel):
    """Income/expense totals for one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    income: Decimal
    expense: Decimal

    @property
    def net(self) -> Decimal:
        """Income minus expense: positive is a surplus."""
        return self.income - self.expense

    @property
    def label(self) -> str:
        return dt.date(self.year, self.month, 1).strftime("%b")


class MonthlyReport(BaseModel):
    """Breakdown of one calendar month."""

    summary: MonthSummary
    categories: list[CategoryTotal] = Field(default_factory=list)
    transactions: list[Transaction] = Field(
        default_factory=list,
        description="Transactions of the month, newest first"
    )

    @property
    def title(self) -> str:
        return dt.date(self.summary.year, self.summary.month, 1).strftime("%B %Y")


class YearlyReport(BaseModel):
    """Twelve month summaries plus yearly totals."""

    year: int
    months: list[MonthSummary] = Field(default_factory=list)

    @property
    def income(self) -> Decimal:
        return sum((m.income for m in self.months), Decimal("0"))

    @property
    def expense(self) -> Decimal:
        return sum((m.expense for m in self.months), Decimal("0"))

    @property
    def net(self) -> Decimal:
        return self.income - self.expense
