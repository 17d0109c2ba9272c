"""Reporting package: pure aggregation over the transaction list."""

from finance_tracker.reports.aggregation import (
    UNCATEGORIZED,
    category_detail,
    category_label,
    category_totals,
    dashboard_stats,
    filter_transactions,
    item_detail,
    item_statistics,
    month_summary,
    month_total,
    month_window,
    monthly_report,
    net_total,
    recurring_patterns,
    signed_total,
    split_totals,
    today_total,
    top_items,
    yearly_report,
)

__all__ = [
    "UNCATEGORIZED",
    "category_detail",
    "category_label",
    "category_totals",
    "dashboard_stats",
    "filter_transactions",
    "item_detail",
    "item_statistics",
    "month_summary",
    "month_total",
    "month_window",
    "monthly_report",
    "net_total",
    "recurring_patterns",
    "signed_total",
    "split_totals",
    "today_total",
    "top_items",
    "yearly_report",
]
