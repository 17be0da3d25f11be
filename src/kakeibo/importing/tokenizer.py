"""Decode statement files and split them into rows of cells."""

import csv
import hashlib
import io
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from kakeibo.domain.errors import DecodeError

logger = logging.getLogger(__name__)

# Tried in order; the first strict decode wins.
DEFAULT_ENCODINGS = ("utf-8-sig", "utf-16", "cp932", "euc_jp")

BOM = "\ufeff"
_UTF16_BOMS = (b"\xff\xfe", b"\xfe\xff")
_SNIFF_LINES = 5

Row = list[str]


@dataclass(frozen=True)
class TokenizedFile:
    """A decoded and split statement file.

    Attributes:
        rows: Parsed rows; lengths may differ between rows
        encoding: Encoding that decoded the file
        delimiter: Cell delimiter that was used
        text: Decoded text after BOM removal and line ending normalization
        fingerprint: Content hash of the format-normalized text
    """

    rows: list[Row]
    encoding: str
    delimiter: str
    text: str
    fingerprint: str


def _looks_like_utf16(data: bytes) -> bool:
    if data.startswith(_UTF16_BOMS):
        return True
    head = data[:400]
    return bool(head) and head.count(b"\x00") > len(head) // 4


def decode_bytes(data: bytes, encodings: Optional[Sequence[str]] = None) -> tuple[str, str]:
    """Decode raw file bytes using the first candidate encoding that fits.

    Args:
        data: Raw file contents
        encodings: Candidate encodings in priority order. Defaults to
            UTF-8, CP932 and EUC-JP, with UTF-16 tried first when the data
            carries a UTF-16 BOM or is mostly NUL bytes.

    Returns:
        Tuple of (decoded text, encoding name)

    Raises:
        DecodeError: If no candidate decodes the data without errors
    """
    if encodings is None:
        # NUL-padded UTF-16 text is also valid UTF-8, so it has to go first.
        if _looks_like_utf16(data):
            candidates = ["utf-16"] + [enc for enc in DEFAULT_ENCODINGS if enc != "utf-16"]
        else:
            candidates = [enc for enc in DEFAULT_ENCODINGS if enc != "utf-16"]
    else:
        candidates = list(encodings)

    attempted = []
    for encoding in candidates:
        attempted.append(encoding)
        try:
            text = data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            continue
        logger.debug("Decoded %d bytes as %s", len(data), encoding)
        return text, encoding

    raise DecodeError(attempted)


def normalize_text(text: str) -> str:
    """Strip a leading byte-order mark and unify line endings to ``\\n``."""
    if text.startswith(BOM):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _count_unquoted(line: str, char: str) -> int:
    count = 0
    in_quotes = False
    for c in line:
        if c == '"':
            in_quotes = not in_quotes
        elif c == char and not in_quotes:
            count += 1
    return count


def sniff_delimiter(text: str) -> str:
    """Pick tab when tabs outnumber commas in the first lines, comma otherwise."""
    lines = [line for line in text.split("\n") if line.strip()][:_SNIFF_LINES]
    tabs = sum(_count_unquoted(line, "\t") for line in lines)
    commas = sum(_count_unquoted(line, ",") for line in lines)
    return "\t" if tabs > commas else ","


def parse_text(text: str, delimiter: Optional[str] = None) -> list[Row]:
    """Split normalized text into rows of stripped cells.

    Quoted fields may contain doubled quotes, delimiters and newlines.
    Blank rows are dropped; ragged rows are kept as they are.
    """
    if delimiter is None:
        delimiter = sniff_delimiter(text)

    rows = []
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    for raw in reader:
        cells = [cell.strip() for cell in raw]
        if not any(cells):
            continue
        rows.append(cells)
    return rows


def file_fingerprint(text: str) -> str:
    """SHA-256 of the text with BOM, line endings, padding and blank lines normalized.

    The same statement saved with different line endings or trailing blank
    lines yields the same fingerprint.
    """
    lines = [line.strip() for line in normalize_text(text).split("\n")]
    canonical = "\n".join(line for line in lines if line)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class CSVTokenizer:
    """Turns raw statement bytes into rows."""

    def __init__(self, encodings: Optional[Sequence[str]] = None, delimiter: Optional[str] = None):
        """Initialize the tokenizer.

        Args:
            encodings: Candidate encodings, see ``decode_bytes``
            delimiter: Force a delimiter instead of sniffing it
        """
        self.encodings = encodings
        self.delimiter = delimiter

    def tokenize(self, data: bytes) -> TokenizedFile:
        """Decode and split a file, keeping the metadata of how it was read.

        Raises:
            DecodeError: If the bytes cannot be decoded
        """
        raw_text, encoding = decode_bytes(data, self.encodings)
        text = normalize_text(raw_text)
        delimiter = self.delimiter or sniff_delimiter(text)
        rows = parse_text(text, delimiter)
        logger.info(
            "Tokenized %d rows (encoding=%s, delimiter=%r)", len(rows), encoding, delimiter
        )
        return TokenizedFile(
            rows=rows,
            encoding=encoding,
            delimiter=delimiter,
            text=text,
            fingerprint=file_fingerprint(text),
        )

    def parse(self, data: bytes) -> list[Row]:
        """Decode and split a file into rows."""
        return self.tokenize(data).rows
