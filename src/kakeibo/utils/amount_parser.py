"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

from kakeibo.utils.text_normalizer import clean_text

_NOISE = re.compile(r"[\s,\"'+円¥$€£]")


def is_negative_amount(amount_str: str) -> bool:
    """Check whether an amount string is written as a negative value.

    Args:
        amount_str: Amount string, possibly full-width

    Returns:
        True for a leading/embedded minus sign or parentheses notation
    """
    text = clean_text(amount_str)
    return "-" in text or (text.startswith("(") and text.endswith(")"))


def parse_amount(amount_str: str) -> int:
    """Parse an amount string into integer minor currency units.

    Handles various formats:
    - "1300"
    - "１，３００" (full-width)
    - "¥1,300" / "1,300円"
    - "-1300"
    - "(1300)" (negative in parentheses)
    - "1300.00"

    Args:
        amount_str: Amount string

    Returns:
        Signed integer amount

    Raises:
        ValueError: If amount string cannot be parsed or has a fractional part
    """
    if amount_str is None or not clean_text(amount_str):
        raise ValueError("Empty amount string")

    text = clean_text(amount_str)

    # Handle parentheses notation (negative)
    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1]

    text = _NOISE.sub("", text)
    if text.startswith("-"):
        is_negative = True
        text = text[1:]

    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")

    if not value.is_finite() or value != value.to_integral_value():
        raise ValueError(f"Amount '{amount_str}' is not a whole number of minor units")

    amount = int(value)
    return -amount if is_negative else amount
