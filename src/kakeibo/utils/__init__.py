"""Utility functions for kakeibo."""

from kakeibo.utils.date_parser import parse_date
from kakeibo.utils.amount_parser import parse_amount, is_negative_amount
from kakeibo.utils.text_normalizer import normalize, clean_text

__all__ = ["parse_date", "parse_amount", "is_negative_amount", "normalize", "clean_text"]
