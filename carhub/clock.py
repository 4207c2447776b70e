"""
Business-calendar helpers.

The shop works in a single local timezone (``BUSINESS_TIMEZONE``,
São Paulo by default).  Scheduled dates and times are stored as naive
local values, so every "today", "this week" or "overdue" comparison must
use the business date rather than the server's UTC date.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from flask import current_app

_DEFAULT_TIMEZONE = "America/Sao_Paulo"


def business_zone() -> ZoneInfo:
    """Return the configured business timezone."""
    return ZoneInfo(current_app.config.get("BUSINESS_TIMEZONE", _DEFAULT_TIMEZONE))


def now() -> datetime:
    """Current wall-clock time in the business timezone (naive)."""
    return datetime.now(business_zone()).replace(tzinfo=None)


def today() -> date:
    """Current business date."""
    return now().date()


def week_start(day: date | None = None) -> date:
    """Monday of the week containing ``day`` (defaults to today)."""
    day = day or today()
    return day - timedelta(days=day.weekday())


def combine(day: date, at: time | None) -> datetime:
    """Naive local datetime for a scheduled date and optional time."""
    return datetime.combine(day, at or time(0, 0))


def date_range(end: date, days: int) -> list[date]:
    """The ``days`` consecutive dates ending on ``end`` (oldest first)."""
    return [end - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def utcnow() -> datetime:
    """Naive UTC timestamp for ``created_at`` / ``updated_at`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
