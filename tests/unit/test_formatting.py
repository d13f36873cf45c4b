"""
Unit Tests for Formatting and Date Helpers
"""

from datetime import timezone

import pytest

from app.services.formatting import (
    format_currency,
    format_large_indian_number,
    local_to_utc_iso,
    parse_datetime,
)


@pytest.mark.parametrize("value,expected", [
    (0, "₹0"),
    (999, "₹999"),
    (15000000, "₹1,50,00,000"),
    (1234567.5, "₹12,34,567.5"),
    (-2500, "-₹2,500"),
])
def test_format_currency(value, expected):
    assert format_currency(value) == expected


@pytest.mark.parametrize("value,expected", [
    (15000000, "₹1.50 Cr"),
    (2500000, "₹25.00 L"),
    (50000, "₹50,000"),
])
def test_format_large_indian_number(value, expected):
    assert format_large_indian_number(value) == expected


def test_parse_datetime_variants():
    assert parse_datetime("2025-01-06T13:00:00Z").tzinfo is not None
    assert parse_datetime("2025-01-06 13:00:00").tzinfo == timezone.utc
    assert parse_datetime("06-01-2025") is None
    assert parse_datetime("") is None


def test_local_notice_time_is_converted_to_utc():
    assert local_to_utc_iso("2025-01-06T13:00:00", 330) == "2025-01-06T07:30:00+00:00"
    assert local_to_utc_iso("2025-01-06T13:00:00Z", 330) == "2025-01-06T13:00:00+00:00"
    assert local_to_utc_iso("not a date", 330) is None
    assert local_to_utc_iso(None, 330) is None


@pytest.mark.parametrize("value,expected", [
    ("15-01-2026", "2026-01-14T18:30:00+00:00"),
    ("15-01-2026 17:00", "2026-01-15T11:30:00+00:00"),
    ("15/01/2026 17:00:30", "2026-01-15T11:30:30+00:00"),
    ("5.1.2026", "2026-01-04T18:30:00+00:00"),
])
def test_day_first_dates_are_local_time(value, expected):
    assert local_to_utc_iso(value, 330) == expected


def test_impossible_day_first_date_is_rejected():
    assert local_to_utc_iso("31-02-2026", 330) is None
