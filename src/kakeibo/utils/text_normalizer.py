"""Text normalization shared by matching, fingerprinting and display.

Statement exports mix full-width and half-width forms of the same text
(``ＡＭＡＺＯＮ．ＣＯ．ＪＰ`` vs ``AMAZON.CO.JP``). Everything that compares
descriptions, keywords or category names goes through :func:`normalize`
so the same merchant never compares unequal.
"""

import re
import unicodedata
from typing import Optional

# Dash-like characters that NFKC leaves alone but which vendors use
# interchangeably with ASCII hyphen-minus.
_DASHES = {
    "‐": "-",  # hyphen
    "‑": "-",  # non-breaking hyphen
    "‒": "-",  # figure dash
    "–": "-",  # en dash
    "—": "-",  # em dash
    "―": "-",  # horizontal bar
    "−": "-",  # minus sign
    "－": "-",  # full-width hyphen-minus
}
_DASH_TABLE = str.maketrans(_DASHES)
_WHITESPACE = re.compile(r"\s+")


def clean_text(text: Optional[str]) -> str:
    """Fold character width and whitespace, keeping case.

    Full-width digits, Latin letters and punctuation become their ASCII
    counterparts, half-width katakana becomes full-width, dash variants
    become ``-`` and runs of whitespace (including the ideographic space)
    collapse to a single space.

    Args:
        text: Raw text, may be None

    Returns:
        Cleaned text suitable for display
    """
    if not text:
        return ""
    folded = unicodedata.normalize("NFKC", text).translate(_DASH_TABLE)
    return _WHITESPACE.sub(" ", folded).strip()


def normalize(text: Optional[str]) -> str:
    """Return the canonical matching form of ``text``.

    This is :func:`clean_text` plus case folding. The function is total
    and idempotent: ``normalize(normalize(x)) == normalize(x)``.

    Args:
        text: Raw text, may be None

    Returns:
        Normalized text
    """
    return clean_text(text).casefold()
