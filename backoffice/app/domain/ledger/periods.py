"""
Reporting period helpers.

Statement periods arrive as local calendar dates. They are turned into
timezone-aware instants at local midnight; the end date is inclusive of its
whole day, so the upper bound is the next local midnight (exclusive).
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from backoffice.app.core.config import settings
from backoffice.app.core.exceptions import InvalidRangeError


def business_tz(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.business_timezone)


def as_utc(value: datetime) -> datetime:
    """Normalise a stored instant to aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_midnight(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def validate_range(period_start: date, period_end: date) -> None:
    if period_start > period_end:
        raise InvalidRangeError(period_start, period_end)


def period_bounds(
    period_start: date,
    period_end: date,
    tz: Optional[ZoneInfo] = None,
) -> Tuple[datetime, datetime]:
    """
    Convert an inclusive [start, end] date range to [start_at, end_exclusive_at).

    Raises:
        InvalidRangeError: if period_start is after period_end
    """
    validate_range(period_start, period_end)
    tz = tz or business_tz()
    return local_midnight(period_start, tz), local_midnight(period_end + timedelta(days=1), tz)


def local_today(tz: Optional[ZoneInfo] = None, now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    return as_utc(now).astimezone(tz or business_tz()).date()


def default_period(today: date) -> Tuple[date, date]:
    """Current month to date."""
    return today.replace(day=1), today
