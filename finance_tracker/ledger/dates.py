"""Calendar arithmetic shared by recurrence expansion and reporting."""

import calendar
from datetime import date, datetime
from typing import Optional


# Formats tried, in order, when a date is not ISO. Day-first wins over
# month-first for ambiguous numeric dates.
DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%d.%m.%Y",
    "%m/%d/%Y",
    "%d-%m-%y",
    "%d/%m/%y",
    "%d.%m.%y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d.%m.%Y %H:%M",
    "%d/%m/%Y %H:%M",
)


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to valid range for the given year/month."""
    max_day = calendar.monthrange(year, month)[1]
    return min(day, max_day)


def add_months(d: date, n: int, anchor_day: Optional[int] = None) -> date:
    """
    Add n calendar months to d, clamping the day to the target month length.

    anchor_day is the day-of-month to aim for (defaults to d.day). Passing
    the series' original day keeps Jan 31 -> Feb 29 -> Mar 31 instead of
    drifting to the 29th.
    """
    day = anchor_day if anchor_day is not None else d.day
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    return date(year, month, clamp_day_to_month(year, month, day))


def add_years(d: date, n: int, anchor_day: Optional[int] = None) -> date:
    """Add n calendar years; Feb 29 becomes Feb 28 outside leap years."""
    return add_months(d, 12 * n, anchor_day)


def parse_date(value: str) -> Optional[date]:
    """Parse a date in any of DATE_FORMATS, returning None on failure."""
    if not value:
        return None
    text = " ".join(value.strip().split())
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def month_key(d: date) -> str:
    """YYYY-MM key for grouping and filtering by calendar month."""
    return d.strftime("%Y-%m")
