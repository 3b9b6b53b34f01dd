"""Date parsing utilities."""

from datetime import date, datetime, time, timedelta
from typing import Optional
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and the
    relative forms "today", "yesterday", "tomorrow", "in N days",
    "N days ago" and "this/last/next week|month|year".

    Args:
        date_str: Date string in various formats
        today: Reference day for relative forms (defaults to date.today())

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = today or date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    parts = date_str.split()
    if len(parts) == 3 and parts[0] == "in" and parts[1].isdigit() and parts[2] in ("day", "days"):
        return today + timedelta(days=int(parts[1]))
    if len(parts) == 3 and parts[0].isdigit() and parts[1] in ("day", "days") and parts[2] == "ago":
        return today - timedelta(days=int(parts[0]))

    if len(parts) == 2 and parts[0] in ("this", "last", "next"):
        offset = {"this": 0, "last": -1, "next": 1}[parts[0]]
        period = parts[1]
        if period == "week":
            return today - timedelta(days=today.weekday()) + timedelta(weeks=offset)
        if period == "month":
            return today.replace(day=1) + relativedelta(months=offset)
        if period == "year":
            return today.replace(month=1, day=1) + relativedelta(years=offset)

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_datetime(value: str, now: Optional[datetime] = None) -> datetime:
    """Parse an entry timestamp.

    Strings carrying a time of day keep it; plain or relative dates are
    pinned to the current time of day so same-day entries keep their order.
    """
    now = now or datetime.now()
    stripped = value.strip()
    if ":" in stripped:
        try:
            parsed = date_parser.parse(stripped)
        except (ValueError, TypeError, OverflowError) as e:
            raise ValueError(f"Could not parse date '{value}': {e}")
        return parsed.replace(tzinfo=None)
    day = parse_date(stripped, today=now.date())
    return datetime.combine(day, now.time().replace(microsecond=0))


def start_of_day(day: date) -> datetime:
    """Midnight at the beginning of ``day``."""
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """Last representable instant of ``day``."""
    return datetime.combine(day, time.max)


def days_in_month(day: date) -> int:
    """Number of days in the month containing ``day``."""
    first_of_next = day.replace(day=1) + relativedelta(months=1)
    return (first_of_next - timedelta(days=1)).day


def is_last_day_of_month(day: date) -> bool:
    return day.day == days_in_month(day)
