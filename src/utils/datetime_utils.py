from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

SPANISH_MONTH_ABBR = (
    "ene",
    "feb",
    "mar",
    "abr",
    "may",
    "jun",
    "jul",
    "ago",
    "sept",
    "oct",
    "nov",
    "dic",
)

TimestampLike = Union[str, int, float, datetime, None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime; naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: TimestampLike) -> datetime:
    """
    Parse the timestamp forms found in stored records and imported files.

    Numbers are epoch milliseconds; strings go through dateutil. ``None``
    means "now".
    """
    if value is None:
        return utc_now()
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return datetime.fromtimestamp(int(text) / 1000.0, tz=timezone.utc)
    return ensure_utc(date_parser.parse(text))


def to_display_tz(dt_utc: datetime, tz: str = "UTC") -> datetime:
    """Convert a UTC datetime to the given display timezone (zoneinfo key)."""
    if dt_utc.tzinfo is None:
        dt_utc = dt_utc.replace(tzinfo=timezone.utc)
    try:
        return dt_utc.astimezone(ZoneInfo(tz))
    except ZoneInfoNotFoundError:
        return dt_utc


def format_display(
    dt_utc: datetime, tz: str = "UTC", fmt: str = "%Y-%m-%d %H:%M"
) -> str:
    """Format a UTC datetime for display in the requested timezone."""
    return to_display_tz(dt_utc, tz).strftime(fmt)


def local_date(dt_utc: datetime, tz: str = "UTC") -> date:
    """Calendar date of ``dt_utc`` as seen in ``tz``."""
    return to_display_tz(dt_utc, tz).date()


def short_date_label(dt_utc: datetime, tz: str = "UTC") -> str:
    """Spanish day-month label, e.g. ``15 oct``."""
    local = to_display_tz(dt_utc, tz)
    return f"{local.day} {SPANISH_MONTH_ABBR[local.month - 1]}"
