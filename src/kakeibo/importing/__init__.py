"""CSV statement import pipeline."""

from kakeibo.importing.commit import CommitCoordinator, CommitResult, ImportHistoryService
from kakeibo.importing.formats import FormatDetector, ImportFormat
from kakeibo.importing.saved_mappings import MappingService
from kakeibo.importing.session import ImportSession, PreviewFilter, WizardStep
from kakeibo.importing.tokenizer import CSVTokenizer

__all__ = [
    "CSVTokenizer",
    "CommitCoordinator",
    "CommitResult",
    "FormatDetector",
    "ImportFormat",
    "ImportHistoryService",
    "ImportSession",
    "MappingService",
    "PreviewFilter",
    "WizardStep",
]
