"""Time model for manifest validation.

All timestamps are timezone-aware points on the synchronized clock and all
durations are wall-clock ``timedelta`` values. Raw manifest timing is integer
ticks in a per-template timescale and is converted here before any comparison
across templates.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from fractions import Fraction

MICROSECONDS_PER_SECOND = 1_000_000


def ensure_aware(dt: datetime) -> datetime:
    """Return ``dt`` unchanged, rejecting naive datetimes."""
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValueError("Datetime must be timezone-aware")
    return dt


def ticks_to_timedelta(ticks: int, timescale: int) -> timedelta:
    """Convert raw ticks to a duration, rounded to the nearest microsecond."""
    if timescale <= 0:
        raise ValueError(f"timescale must be positive, got {timescale}")
    micros = round(Fraction(ticks * MICROSECONDS_PER_SECOND, timescale))
    return timedelta(microseconds=micros)


def format_timestamp(dt: datetime) -> str:
    """Render a timestamp in UTC with millisecond precision."""
    utc = ensure_aware(dt).astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def format_millis(delta: timedelta) -> str:
    """Gap length as used in feedback messages, e.g. ``5000.0``."""
    return f"{delta / timedelta(milliseconds=1):.1f}"


def format_duration(delta: timedelta) -> str:
    """Render a duration as ``H:MM:SS.mmm`` (negative durations keep their sign)."""
    sign = "-" if delta < timedelta(0) else ""
    total_ms = abs(delta) // timedelta(milliseconds=1)
    seconds, millis = divmod(total_ms, 1000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{sign}{hours}:{minutes:02d}:{seconds:02d}.{millis:03d}"
