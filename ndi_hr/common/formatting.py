"""Date, name and number formatting shared by services."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ndi_hr.common.constants import DEFAULT_TIMEZONE, MONTH_NAMES


# ── Names ───────────────────────────────────────────────────────────

def format_display_name(
    *,
    preferred_name: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    fallback: str = "",
) -> str:
    if preferred_name and preferred_name.strip():
        return preferred_name.strip()
    parts = [p.strip() for p in (first_name, last_name) if p and p.strip()]
    if parts:
        return " ".join(parts)
    return fallback


def split_full_name(full_name: str) -> tuple[str, str]:
    """Last word becomes the last name; everything before it the first name."""
    parts = full_name.split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return " ".join(parts[:-1]), parts[-1]


# ── Dates ───────────────────────────────────────────────────────────

def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_today(tz_name: Optional[str], now: Optional[datetime] = None) -> date:
    """Calendar date in the organization's timezone."""
    current = now or utcnow()
    return current.astimezone(get_zone(tz_name)).date()


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def relative_time_label(value: Optional[datetime], now: Optional[datetime] = None) -> str:
    """``moments ago`` / ``5m ago`` / ``3h ago`` / ``2d ago``."""
    if value is None:
        return "moments ago"
    minutes = int((as_utc(now or utcnow()) - as_utc(value)).total_seconds() // 60)
    if minutes < 1:
        return "moments ago"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a 1-based month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def shift_months(value: date, months: int) -> date:
    """First day of the month *months* away from *value* (negative goes back)."""
    index = value.year * 12 + (value.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def inclusive_days(start: date, end: date) -> int:
    return (end - start).days + 1


def overlap_days(start: date, end: date, window_start: date, window_end: date) -> int:
    lo = max(start, window_start)
    hi = min(end, window_end)
    if hi < lo:
        return 0
    return inclusive_days(lo, hi)


def format_short_date(value: date) -> str:
    """``Mar 5`` style label."""
    return f"{value.strftime('%b')} {value.day}"


def format_long_date(value: date) -> str:
    """``March 5, 2026`` style label."""
    return f"{MONTH_NAMES[value.month - 1]} {value.day}, {value.year}"


def format_date_range(start: date, end: date) -> str:
    start_label = format_short_date(start)
    end_label = format_short_date(end)
    return start_label if start_label == end_label else f"{start_label} - {end_label}"


def day_label(count: int | float) -> str:
    return "day" if count == 1 else "days"


def month_label(year: int, month: int) -> str:
    """``March 2026`` for a 1-based month."""
    return f"{MONTH_NAMES[month - 1]} {year}"


def minutes_to_label(minutes: int) -> str:
    """Minutes after midnight as ``hh:mm AM``."""
    minutes = int(minutes) % (24 * 60)
    hours, mins = divmod(minutes, 60)
    suffix = "AM" if hours < 12 else "PM"
    display_hour = hours % 12 or 12
    return f"{display_hour:02d}:{mins:02d} {suffix}"


def parse_hhmm(value: str) -> tuple[int, int]:
    hours, minutes = value.split(":", 1)
    return int(hours), int(minutes)


# ── Numbers ─────────────────────────────────────────────────────────

def decimal_to_float(value: Optional[Decimal | int | float]) -> float:
    if value is None:
        return 0.0
    return float(value)


_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "BDT": "৳", "INR": "₹"}


def format_currency(amount: Optional[Decimal | int | float], currency: str) -> str:
    """``$1,250.00`` for known currencies, ``SGD 1,250.00`` otherwise."""
    value = decimal_to_float(amount)
    code = (currency or "").upper()
    symbol = _CURRENCY_SYMBOLS.get(code)
    sign = "-" if value < 0 else ""
    if symbol:
        return f"{sign}{symbol}{abs(value):,.2f}"
    return f"{code} {value:,.2f}".strip()


def title_case_enum(value: str) -> str:
    """``HR_ADMIN`` -> ``Hr Admin``."""
    return " ".join(chunk.capitalize() for chunk in value.lower().split("_") if chunk)
