"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from kakeibo.domain.errors import ValidationError

DEFAULT_DETECTION_THRESHOLD = 0.6
DEFAULT_DIAGNOSTIC_SAMPLE_LIMIT = 20
DEFAULT_CLASSIFIER_TIMEOUT = 30.0


@dataclass(frozen=True)
class ImportSettings:
    """Settings for the import pipeline.

    Attributes:
        database_path: SQLite database file
        detection_threshold: Confidence a vendor format must exceed to be selected
        diagnostic_sample_limit: How many invalid/unresolved rows the summary
            keeps in detail; the rest are only counted
        classifier_url: Base URL of the remote classifier, None to disable it
        classifier_timeout: Remote classifier request timeout in seconds
    """

    database_path: str
    detection_threshold: float = DEFAULT_DETECTION_THRESHOLD
    diagnostic_sample_limit: int = DEFAULT_DIAGNOSTIC_SAMPLE_LIMIT
    classifier_url: Optional[str] = None
    classifier_timeout: float = DEFAULT_CLASSIFIER_TIMEOUT


def default_database_path() -> str:
    """Return ~/.kakeibo/kakeibo.db, creating the directory if needed."""
    db_dir = Path.home() / ".kakeibo"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "kakeibo.db")


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got '{raw}'")


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{raw}'")
    if value < 0:
        raise ValidationError(f"{name} must not be negative")
    return value


def load_settings(
    database_path: Optional[str] = None, env: Optional[Mapping[str, str]] = None
) -> ImportSettings:
    """Build settings from explicit arguments and environment variables.

    Args:
        database_path: Path to SQLite database file. If None, checks
            KAKEIBO_DB_PATH, then defaults to ~/.kakeibo/kakeibo.db
        env: Environment mapping, defaults to os.environ

    Returns:
        ImportSettings instance

    Raises:
        ValidationError: If a numeric variable cannot be parsed
    """
    if env is None:
        env = os.environ

    if database_path is None:
        database_path = env.get("KAKEIBO_DB_PATH") or default_database_path()

    threshold = _read_float(env, "KAKEIBO_DETECTION_THRESHOLD", DEFAULT_DETECTION_THRESHOLD)
    if not 0.0 <= threshold <= 1.0:
        raise ValidationError("KAKEIBO_DETECTION_THRESHOLD must be between 0 and 1")

    return ImportSettings(
        database_path=database_path,
        detection_threshold=threshold,
        diagnostic_sample_limit=_read_int(
            env, "KAKEIBO_DIAGNOSTIC_SAMPLE_LIMIT", DEFAULT_DIAGNOSTIC_SAMPLE_LIMIT
        ),
        classifier_url=env.get("KAKEIBO_CLASSIFIER_URL") or None,
        classifier_timeout=_read_float(
            env, "KAKEIBO_CLASSIFIER_TIMEOUT", DEFAULT_CLASSIFIER_TIMEOUT
        ),
    )
