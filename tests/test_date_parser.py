"""Tests for statement date parsing."""

import pytest
from datetime import date

from kakeibo.utils.date_parser import parse_date


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2025/07/04", date(2025, 7, 4)),
        ("2025/7/4", date(2025, 7, 4)),
        ("2025-07-04", date(2025, 7, 4)),
        ("2025.07.04", date(2025, 7, 4)),
        ("20250704", date(2025, 7, 4)),
        ("2025年7月4日", date(2025, 7, 4)),
        ("２０２５／０７／０４", date(2025, 7, 4)),
        ("2025/08/01 08:12:45", date(2025, 8, 1)),
        ("07/04/2025", date(2025, 7, 4)),
    ],
)
def test_parse_date_formats(text, expected):
    """Test parsing the date formats statements use."""
    assert parse_date(text) == expected


def test_parse_date_dateutil_fallback():
    """Test that other formats with a four-digit year fall back to dateutil."""
    assert parse_date("Jul 4 2025") == date(2025, 7, 4)


@pytest.mark.parametrize("text", ["", "   ", "1300", "12", "not a date", "2025/13/40"])
def test_parse_date_invalid(text):
    """Test that amounts, blanks and garbage are rejected."""
    with pytest.raises(ValueError):
        parse_date(text)
