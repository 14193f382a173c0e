from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

DEFAULT_DISPLAY_TIMEZONE = "America/New_York"


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def display_tz() -> tzinfo:
    """Business timezone: from app config when available, else the default."""
    name = DEFAULT_DISPLAY_TIMEZONE
    if has_app_context():
        name = current_app.config.get("DISPLAY_TIMEZONE", DEFAULT_DISPLAY_TIMEZONE)
    return ZoneInfo(name)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" or "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    return to_utc_naive(dt)


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(dt: datetime, tz: tzinfo | None = None) -> datetime:
    """Convert a UTC-naive (or aware) datetime into the display timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz or display_tz())


def start_of_local_day(dt: datetime, tz: tzinfo | None = None) -> datetime:
    """
    Midnight of dt's local calendar day, returned as UTC-naive.

    Business days (today/yesterday/month) follow the shop's wall clock,
    while every stored timestamp is UTC-naive.
    """
    tz = tz or display_tz()
    local = to_local(dt, tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return to_utc_naive(midnight)


def start_of_local_month(dt: datetime, tz: tzinfo | None = None) -> datetime:
    tz = tz or display_tz()
    local = to_local(dt, tz)
    first = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return to_utc_naive(first)


def local_date_str(dt: datetime, tz: tzinfo | None = None) -> str:
    return to_local(dt, tz).date().isoformat()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
