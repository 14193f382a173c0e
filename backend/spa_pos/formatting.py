# Overview: Display formatting for money, dates, percentages and plain numbers.

from __future__ import annotations

from datetime import datetime, tzinfo

from .time_utils import to_local


def format_currency(cents: int | None, symbol: str = "$") -> str:
    """Format integer cents as a currency string, e.g. 123450 -> "$1,234.50"."""
    cents = int(cents or 0)
    sign = "-" if cents < 0 else ""
    dollars, rem = divmod(abs(cents), 100)
    return f"{sign}{symbol}{dollars:,}.{rem:02d}"


def _month_day_year(local: datetime) -> str:
    return f"{local.strftime('%b')} {local.day}, {local.year}"


def format_date(value: datetime | str, tz: tzinfo | None = None) -> str:
    """Date and time in the display timezone, e.g. "Jan 5, 2025, 3:04 PM"."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    local = to_local(value, tz)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{_month_day_year(local)}, {hour}:{local.minute:02d} {meridiem}"


def format_date_only(value: datetime | str, tz: tzinfo | None = None) -> str:
    """Date only in the display timezone, e.g. "Jan 5, 2025"."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return _month_day_year(to_local(value, tz))


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def format_number(value: float, decimals: int = 0) -> str:
    return f"{value:.{decimals}f}"


def format_tooltip_value(value, kind: str = "number") -> str:
    """
    Chart tooltip formatting. Currency values are expected in cents.
    Anything that does not parse as a number renders as "N/A".
    """
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return "N/A"
    if value is None or value != value:  # NaN
        return "N/A"

    if kind == "currency":
        return format_currency(round(value))
    if kind == "percent":
        return format_percent(value)
    return format_number(value)
