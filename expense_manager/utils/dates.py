"""
Date Utilities

Calendar bucketing for expenses and budgets. All buckets are
computed at day granularity: a bound given as a datetime is
truncated to its calendar day.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Union

from expense_manager.models import DateFormat, Expense


DateLike = Union[date, datetime, str]


def current_date() -> date:
    """Today's calendar date (local time)."""
    return date.today()


def current_timestamp() -> datetime:
    """Current moment as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_date(value: DateLike) -> date:
    """
    Coerce a date, datetime or ISO string to a calendar date.

    Datetimes are truncated to their day; strings may be plain dates
    ("2024-03-01") or full ISO timestamps.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if len(text) > 10:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def start_of_week(day: Optional[DateLike] = None) -> date:
    """Sunday of the week containing `day`."""
    d = to_date(day) if day is not None else current_date()
    # weekday(): Monday=0 ... Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def start_of_month(day: Optional[DateLike] = None) -> date:
    d = to_date(day) if day is not None else current_date()
    return d.replace(day=1)


def start_of_year(day: Optional[DateLike] = None) -> date:
    d = to_date(day) if day is not None else current_date()
    return d.replace(month=1, day=1)


def filter_by_date_range(
    expenses: Iterable[Expense],
    start: DateLike,
    end: DateLike,
) -> list[Expense]:
    """
    Expenses dated between `start` and `end`, both inclusive.

    Bounds are widened to whole days regardless of their precision.
    An unparseable bound matches nothing.
    """
    try:
        first = to_date(start)
        last = to_date(end)
    except ValueError:
        return []
    return [exp for exp in expenses if first <= exp.date <= last]


def get_today_expenses(
    expenses: Iterable[Expense],
    today: Optional[date] = None,
) -> list[Expense]:
    today = today or current_date()
    return filter_by_date_range(expenses, today, today)


def get_week_expenses(
    expenses: Iterable[Expense],
    today: Optional[date] = None,
) -> list[Expense]:
    today = today or current_date()
    return filter_by_date_range(expenses, start_of_week(today), today)


def get_month_expenses(
    expenses: Iterable[Expense],
    today: Optional[date] = None,
) -> list[Expense]:
    today = today or current_date()
    return filter_by_date_range(expenses, start_of_month(today), today)


def format_date(
    value: DateLike,
    date_format: DateFormat = DateFormat.MM_DD_YYYY,
) -> str:
    """Render a date in the user's preferred layout; unparseable text is returned as is."""
    try:
        d = to_date(value)
    except ValueError:
        return str(value)
    day = f"{d.day:02d}"
    month = f"{d.month:02d}"
    year = f"{d.year:04d}"

    if date_format == DateFormat.DD_MM_YYYY:
        return f"{day}/{month}/{year}"
    if date_format == DateFormat.YYYY_MM_DD:
        return f"{year}-{month}-{day}"
    return f"{month}/{day}/{year}"


def format_relative_date(
    value: DateLike,
    today: Optional[date] = None,
    date_format: DateFormat = DateFormat.MM_DD_YYYY,
) -> str:
    """
    Human-friendly date: "Today", "Yesterday", "3 days ago",
    or the formatted date once it is a week or more away.
    """
    try:
        d = to_date(value)
    except ValueError:
        return str(value)
    today = today or current_date()

    if d == today:
        return "Today"
    if d == today - timedelta(days=1):
        return "Yesterday"

    diff_days = abs((today - d).days)
    if diff_days < 7:
        return f"{diff_days} days ago"
    return format_date(d, date_format)
