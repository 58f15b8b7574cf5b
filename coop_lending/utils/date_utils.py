"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_calendar_date(value: date | datetime, tz_name: str = "UTC") -> date:
    """
    Truncate a timestamp to midnight in the business timezone.

    Plain dates are already calendar days and pass through untouched.
    """
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(ZoneInfo(tz_name)).date()
    return value


def days_between(start: date | datetime, end: date | datetime, tz_name: str = "UTC") -> int:
    """Whole calendar days from start to end (negative when end precedes start)"""
    return (to_calendar_date(end, tz_name) - to_calendar_date(start, tz_name)).days


def same_calendar_day(a: date | datetime, b: date | datetime, tz_name: str = "UTC") -> bool:
    return to_calendar_date(a, tz_name) == to_calendar_date(b, tz_name)


def add_calendar_days(from_date: datetime, days: int) -> datetime:
    """Add calendar days, no business-day skipping"""
    return from_date + timedelta(days=days)
