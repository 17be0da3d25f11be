"""Date parsing utilities."""

import re
from datetime import date, datetime

from dateutil import parser as date_parser

from kakeibo.utils.text_normalizer import clean_text

# Formats seen in bank, card and wallet exports, most specific first.
DATE_FORMATS = [
    "%Y/%m/%d %H:%M:%S",  # PayPay
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%Y-%m-%d",
    "%Y.%m.%d",
    "%Y%m%d",
    "%m/%d/%Y",
    "%Y年%m月%d日",
]

# dateutil happily turns "12" or "1300" into a date in the current month;
# only fall back to it for non-numeric strings that carry a four-digit year.
_HAS_YEAR = re.compile(r"(?<!\d)\d{4}(?!\d)")


def parse_date(date_str: str) -> date:
    """Parse a statement date string into a date object.

    Full-width digits are folded first. The explicit formats are tried in
    order; anything else containing a four-digit year is handed to dateutil
    with year-first disambiguation.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = clean_text(date_str)
    if not text:
        raise ValueError("Empty date string")

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    if text.isdigit() or not _HAS_YEAR.search(text):
        raise ValueError(f"Could not parse date '{date_str}'")

    try:
        return date_parser.parse(text, yearfirst=True).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")
