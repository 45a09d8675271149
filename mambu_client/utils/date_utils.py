"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Union

DateLike = Union[date, datetime]


def as_utc(value: DateLike) -> datetime:
    """Aware UTC datetime for a date (midnight), naive datetime (assumed UTC) or aware datetime"""
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_midnight(value: DateLike) -> datetime:
    """UTC midnight of the value's calendar day; time of day is discarded"""
    day = value.date() if isinstance(value, datetime) else value
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def shift_to_local_midnight(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """
    Move a UTC-midnight instant back by the local UTC offset at that instant.

    Date-only serializers render in local time; after the shift the value
    still renders as the calendar day it was computed for. ``tz`` defaults
    to the host's local zone.
    """
    local = value.astimezone(tz) if tz is not None else value.astimezone()
    offset = local.utcoffset() or timedelta(0)
    return value - offset


def format_date(value: Optional[DateLike], tz: Optional[tzinfo] = None) -> Optional[str]:
    """
    Format as yyyy-MM-dd the way the platform expects date parameters.

    Aware datetimes are rendered in local time (``tz`` or the host zone);
    naive datetimes and dates are rendered as given.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz) if tz is not None else value.astimezone()
        return value.date().isoformat()
    return value.isoformat()
