"""
TenderDesk - Formatting and Date Helpers
Indian currency formatting and tolerant ISO-8601 parsing.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (with or without offset / 'Z').

    Naive values are read as UTC. Tender dates never reach here naive: the
    API converts them with local_to_utc_iso on every write.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip().replace(" ", "T", 1)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _group_indian(integer_part: str) -> str:
    """12345678 -> 1,23,45,678"""
    if len(integer_part) <= 3:
        return integer_part
    head, tail = integer_part[:-3], integer_part[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_currency(value: float) -> str:
    """Indian rupee format: 15000000 -> ₹1,50,00,000 (up to 2 decimals, trailing zeros dropped)"""
    value = float(value or 0)
    sign = "-" if value < 0 else ""
    whole, _, fraction = f"{abs(value):.2f}".partition(".")
    fraction = fraction.rstrip("0")
    text = _group_indian(whole)
    if fraction:
        text = f"{text}.{fraction}"
    return f"{sign}₹{text}"


def format_large_indian_number(value: float) -> str:
    """Lakhs / crores: 15000000 -> ₹1.50 Cr, 2500000 -> ₹25.00 L"""
    value = float(value or 0)
    if value >= 10_000_000:
        return f"₹{value / 10_000_000:.2f} Cr"
    if value >= 100_000:
        return f"₹{value / 100_000:.2f} L"
    return format_currency(value)


# 15-01-2026, 15/01/2026 17:00, 15.01.2026 17:00:30
_DAY_FIRST = re.compile(
    r"^(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)


def _parse_day_first(text: str) -> Optional[datetime]:
    match = _DAY_FIRST.match(text)
    if not match:
        return None
    day, month, year, hour, minute, second = (int(g) if g else 0 for g in match.groups())
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


def local_to_utc_iso(value: Optional[str], offset_minutes: int) -> Optional[str]:
    """
    '2025-01-06T13:00:00' printed in a fixed-offset local time -> UTC ISO string.
    Day-first dates ('06-01-2025 13:00') are accepted as well. Values that
    already carry an offset are only normalised to UTC. Unparseable -> None.
    """
    if not value:
        return None
    text = str(value).strip()
    try:
        iso = text.replace(" ", "T", 1)
        dt = datetime.fromisoformat(iso[:-1] + "+00:00" if iso.endswith("Z") else iso)
    except ValueError:
        dt = _parse_day_first(text)
        if dt is None:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone(timedelta(minutes=offset_minutes)))
    return dt.astimezone(timezone.utc).isoformat()
