"""Date manipulation utilities"""

import calendar
import re
from datetime import date, datetime
from typing import Any, Optional, Tuple

MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamped_date(year: int, month: int, day: int) -> date:
    """Build a date, clamping the day to the month length (31 -> 28/29/30)"""
    return date(year, month, min(day, last_day_of_month(year, month)))


def shift_month(year: int, month: int, months: int) -> Tuple[int, int]:
    """Move (year, month) by a number of months, either direction"""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def to_month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def parse_month_key(value: Any) -> Optional[Tuple[int, int]]:
    """Parse a YYYY-MM key; None when malformed"""
    if not isinstance(value, str):
        return None
    match = MONTH_KEY_PATTERN.match(value.strip())
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month


def add_months_to_key(month_key: str, months: int) -> str:
    parsed = parse_month_key(month_key)
    if parsed is None:
        raise ValueError(f"Invalid month key: {month_key!r}")
    year, month = shift_month(parsed[0], parsed[1], months)
    return f"{year:04d}-{month:02d}"


def add_months(value: date, months: int) -> date:
    """Same day N months later/earlier, clamped to the target month length"""
    year, month = shift_month(value.year, value.month, months)
    return clamped_date(year, month, value.day)


def parse_date(value: Any) -> Optional[date]:
    """
    Parse aggregator dates: date, datetime, "YYYY-MM-DD" or ISO timestamps.

    ISO timestamps keep their calendar day as written (no timezone shift).
    Returns None for anything unparseable.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None
