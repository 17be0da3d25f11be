"""Tests for amount parsing."""

import pytest

from kakeibo.utils.amount_parser import is_negative_amount, parse_amount


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1300", 1300),
        ("1,300", 1300),
        ("１，３００", 1300),
        ("¥1,300", 1300),
        ("1,300円", 1300),
        ("-1300", -1300),
        ("(1300)", -1300),
        ("1300.00", 1300),
        ("+500", 500),
        (" 816 ", 816),
    ],
)
def test_parse_amount(text, expected):
    """Test parsing amounts in the notations statements use."""
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["", "  ", "abc", "12.5", "-"])
def test_parse_amount_invalid(text):
    """Test that unparseable or fractional amounts are rejected."""
    with pytest.raises(ValueError):
        parse_amount(text)


def test_is_negative_amount():
    """Test sign detection."""
    assert is_negative_amount("-1,200")
    assert is_negative_amount("－１２００")
    assert is_negative_amount("(1200)")
    assert not is_negative_amount("1200")
