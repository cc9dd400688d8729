"""Calendar-aware timestamp helpers used for review due dates."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


MILLIS_PER_SECOND = 1000
MILLIS_PER_DAY = 24 * 60 * 60 * MILLIS_PER_SECOND
DATE_FORMAT = "%Y-%m-%d"


def now_millis() -> int:
    """Return the current Unix time in milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * MILLIS_PER_SECOND)


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Translate an IANA zone name into a tzinfo, or ``None`` for the local zone."""
    if not name or not name.strip():
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name!r}") from exc


def _to_local(seconds: int, tz: Optional[tzinfo]) -> datetime:
    # Naive local datetimes go through mktime on the way back, which applies
    # the DST rules of the process zone.
    if tz is None:
        return datetime.fromtimestamp(seconds)
    return datetime.fromtimestamp(seconds, tz)


def _to_millis(moment: datetime, remainder_ms: int) -> int:
    return round(moment.timestamp()) * MILLIS_PER_SECOND + remainder_ms


def add_calendar_days(timestamp: int, days: int, tz: Optional[tzinfo] = None) -> int:
    """Return ``timestamp`` moved by ``days`` calendar days at the same local time.

    The addition happens on the wall clock of ``tz`` (the process zone when
    ``None``), so a due time of 09:00 stays at 09:00 across a daylight-saving
    change instead of drifting by an hour. Wall times that fall into a DST gap
    resolve with the offset in effect before the transition.
    """
    seconds, remainder_ms = divmod(timestamp, MILLIS_PER_SECOND)
    local = _to_local(seconds, tz)
    return _to_millis(local + timedelta(days=days), remainder_ms)


def start_of_day(timestamp: int, tz: Optional[tzinfo] = None) -> int:
    """Return the timestamp of local midnight on the day containing ``timestamp``."""
    seconds = timestamp // MILLIS_PER_SECOND
    local = _to_local(seconds, tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return _to_millis(midnight, 0)


def format_date(timestamp: int, tz: Optional[tzinfo] = None) -> str:
    """Format a timestamp as a local ``YYYY-MM-DD`` date."""
    return _to_local(timestamp // MILLIS_PER_SECOND, tz).strftime(DATE_FORMAT)
