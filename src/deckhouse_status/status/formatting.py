"""Time zone and duration helpers for the report."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Used when --tz is neither a zone name nor an offset.
FALLBACK_TZ = timezone(timedelta(hours=3), "MSK")


def parse_tz(value: str) -> tzinfo:
    """IANA name ("Europe/Moscow") or whole-hour offset ("+3", "-5")."""
    value = (value or "").strip()
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        pass
    try:
        offset = int(value)
    except ValueError:
        return FALLBACK_TZ
    if -12 <= offset <= 14:
        return timezone(timedelta(hours=offset), f"UTC{offset:+d}")
    return FALLBACK_TZ


def utc_offset_label(moment: datetime) -> str:
    """``UTC+3`` or ``UTC+5:30`` for an aware datetime."""
    offset = moment.utcoffset() or timedelta(0)
    total_minutes = int(offset.total_seconds()) // 60
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    if minutes == 0:
        return f"UTC{sign}{hours}"
    return f"UTC{sign}{hours}:{minutes:02d}"


def human_duration(delta: timedelta) -> str:
    """``42s``, ``3h 12m``, ``2d 4h``; minutes are dropped once days show."""
    seconds = int(delta.total_seconds())
    if seconds < 60:
        return f"{max(seconds, 0)}s"
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if not days and minutes:
        parts.append(f"{minutes}m")
    return " ".join(parts)


def truncate(text: str, limit: int = 70) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
