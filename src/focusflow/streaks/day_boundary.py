"""Calendar-day resolution.

The engine never asks the clock what day it is. Callers resolve "today" here,
from an explicit date or an IANA timezone, and pass the result down.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from focusflow.streaks.exceptions import InvalidInputError


def get_zone(tz_name: str) -> ZoneInfo:
    """Look up an IANA timezone, raising InvalidInputError for unknown names."""
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        msg = f"Unknown timezone: {tz_name!r}"
        raise InvalidInputError(msg) from exc


def resolve_today(
    explicit: date | None = None,
    tz_name: str | None = None,
    default_tz: str = "UTC",
    now: datetime | None = None,
) -> date:
    """Resolve the caller's calendar day.

    An explicit date always wins. Otherwise the current instant (``now``, UTC
    by default) is converted into ``tz_name`` or ``default_tz`` and its local
    date is returned, so midnight is the caller's midnight.
    """
    if explicit is not None:
        return explicit
    zone = get_zone(tz_name or default_tz)
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(zone).date()


def get_period(day: date) -> str:
    """Freeze-token period key for a day, e.g. '2026-03'."""
    return day.strftime("%Y-%m")


def is_weekend_pair(saturday: date, dates: set[date]) -> bool:
    """True if ``saturday`` is a Saturday and both it and the next day are in ``dates``."""
    return saturday.weekday() == 5 and saturday in dates and saturday + timedelta(days=1) in dates
