"""The import wizard: settings -> preview -> resolve -> summary -> committed."""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from kakeibo.config import ImportSettings, DEFAULT_DETECTION_THRESHOLD, DEFAULT_DIAGNOSTIC_SAMPLE_LIMIT
from kakeibo.database.base import Database
from kakeibo.domain.classification import ClassificationRuleEngine
from kakeibo.domain.entities import Category, ImportHistory, TransactionKind
from kakeibo.domain.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    account_not_found,
    category_kind_mismatch,
    category_not_found,
)
from kakeibo.domain.transaction import TransactionService
from kakeibo.importing.column_map import ColumnMap, ManualMapping, build_column_map
from kakeibo.importing.drafts import (
    DescriptionGroup,
    DraftBuilder,
    DraftRow,
    DuplicateIndex,
    RowStatus,
    build_duplicate_index,
    group_key,
    group_rows,
)
from kakeibo.importing.formats import DetectionResult, FormatDetector, ImportFormat
from kakeibo.importing.tokenizer import CSVTokenizer, TokenizedFile

if TYPE_CHECKING:
    from kakeibo.importing.commit import CommitCoordinator, CommitResult

logger = logging.getLogger(__name__)


class WizardStep(str, Enum):
    """Steps of the import wizard, in forward order."""

    SETTINGS = "settings"
    PREVIEW = "preview"
    RESOLVE = "resolve"
    SUMMARY = "summary"
    COMMITTED = "committed"


_STEP_ORDER = list(WizardStep)


class PreviewFilter(str, Enum):
    """Row filters offered by the preview."""

    ALL = "all"
    VALID = "valid"
    UNRESOLVED = "unresolved"
    DUPLICATE = "duplicate"
    INVALID = "invalid"


class CategorySuggester(Protocol):
    """Anything that can suggest categories for unresolved rows."""

    def suggest(self, rows: Sequence[DraftRow], categories: Sequence[Category]) -> dict[int, int]:
        ...


@dataclass(frozen=True)
class ImportSummary:
    """Read-only figures shown before commit.

    Samples hold at most the configured number of rows; the truncated
    counts say how many more there were.
    """

    file_name: str
    format: ImportFormat
    total: int
    valid: int
    duplicate: int
    invalid: int
    unresolved: int
    user_resolved: int
    committable: int
    invalid_samples: tuple[DraftRow, ...]
    unresolved_samples: tuple[DraftRow, ...]
    invalid_truncated: int
    unresolved_truncated: int


class ImportSession:
    """State of one import batch, driven by the wizard UI.

    Forward moves happen only through :meth:`advance` and
    :meth:`confirm_commit`; :meth:`go_back` may return to any earlier step
    and keeps manual mappings and category resolutions.
    """

    def __init__(
        self,
        db: Database,
        engine: Optional[ClassificationRuleEngine] = None,
        settings: Optional[ImportSettings] = None,
        tokenizer: Optional[CSVTokenizer] = None,
    ):
        """Initialize an import session.

        Args:
            db: Ledger database
            engine: Rule engine; one over ``db`` is created when omitted
            settings: Import settings; defaults apply when omitted
            tokenizer: Tokenizer for the raw file
        """
        self.db = db
        self.engine = engine or ClassificationRuleEngine(db)
        threshold = settings.detection_threshold if settings else DEFAULT_DETECTION_THRESHOLD
        self.sample_limit = (
            settings.diagnostic_sample_limit if settings else DEFAULT_DIAGNOSTIC_SAMPLE_LIMIT
        )
        self.detector = FormatDetector(threshold=threshold)
        self.tokenizer = tokenizer or CSVTokenizer()

        self._step = WizardStep.SETTINGS
        self.file_name: Optional[str] = None
        self.tokenized: Optional[TokenizedFile] = None
        self.requested_format: Optional[ImportFormat] = None
        self.account_id: Optional[int] = None
        self.manual_mapping: Optional[ManualMapping] = None

        self.detection: Optional[DetectionResult] = None
        self.column_map: Optional[ColumnMap] = None
        self._index: Optional[DuplicateIndex] = None
        self._drafts: list[DraftRow] = []
        self._row_resolutions: dict[int, int] = {}
        self._group_resolutions: dict[tuple[str, TransactionKind], int] = {}
        self.result: Optional["CommitResult"] = None

    # State

    @property
    def step(self) -> WizardStep:
        return self._step

    @property
    def drafts(self) -> tuple[DraftRow, ...]:
        return tuple(self._drafts)

    @property
    def format(self) -> Optional[ImportFormat]:
        return self.detection.format if self.detection else None

    @property
    def file_fingerprint(self) -> Optional[str]:
        return self.tokenized.fingerprint if self.tokenized else None

    def _require(self, *steps: WizardStep) -> None:
        if self._step not in steps:
            allowed = ", ".join(s.value for s in steps)
            raise InvalidTransitionError(
                f"Not allowed at step '{self._step.value}' (allowed: {allowed})"
            )

    # Settings

    def load_file(self, data: bytes, file_name: str) -> TokenizedFile:
        """Read a statement file.

        Decoding happens here so an undecodable file is reported before
        anything else.

        Raises:
            DecodeError: If the file cannot be decoded
        """
        self._require(WizardStep.SETTINGS)
        tokenized = self.tokenizer.tokenize(data)
        if not tokenized.rows:
            raise ValidationError(f"File '{file_name}' contains no rows")
        self.tokenized = tokenized
        self.file_name = file_name
        self._index = None
        self._drafts = []
        self._row_resolutions.clear()
        return tokenized

    def choose_format(self, fmt: Optional[ImportFormat]) -> None:
        """Force a format, or None to detect it."""
        self._require(WizardStep.SETTINGS)
        self.requested_format = fmt

    def choose_account(self, account_id: Optional[int]) -> None:
        """Set the account the statement belongs to."""
        self._require(WizardStep.SETTINGS)
        if account_id is not None and self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        self.account_id = account_id

    def set_manual_mapping(self, mapping: Optional[ManualMapping]) -> None:
        """Override column indices for every row of the batch."""
        self._require(WizardStep.SETTINGS)
        if mapping is not None and mapping.is_empty():
            mapping = None
        self.manual_mapping = mapping

    def previous_import(self) -> list[ImportHistory]:
        """Earlier imports of a file with identical content."""
        if self.tokenized is None:
            return []
        return self.db.find_import_histories_by_fingerprint(self.tokenized.fingerprint)

    # Navigation

    def advance(self) -> WizardStep:
        """Move to the next step.

        Leaving settings detects the format, maps columns and builds the
        drafts. Summary can only be left through :meth:`confirm_commit`.

        Raises:
            InvalidTransitionError: From summary or committed, or without a file
        """
        if self._step == WizardStep.SETTINGS:
            if self.tokenized is None:
                raise InvalidTransitionError("Load a file before continuing")
            self._build_drafts()
            self._step = WizardStep.PREVIEW
        elif self._step == WizardStep.PREVIEW:
            self._step = WizardStep.RESOLVE
        elif self._step == WizardStep.RESOLVE:
            self._step = WizardStep.SUMMARY
        elif self._step == WizardStep.SUMMARY:
            raise InvalidTransitionError("Confirm the commit to leave the summary")
        else:
            raise InvalidTransitionError("The import has already been committed")
        logger.debug("Import wizard moved to %s", self._step.value)
        return self._step

    def go_back(self, step: WizardStep) -> WizardStep:
        """Return to an earlier step.

        Raises:
            InvalidTransitionError: After commit, or when ``step`` is not earlier
        """
        if self._step == WizardStep.COMMITTED:
            raise InvalidTransitionError("The import has already been committed")
        if _STEP_ORDER.index(step) >= _STEP_ORDER.index(self._step):
            raise InvalidTransitionError(
                f"Cannot go back from '{self._step.value}' to '{step.value}'"
            )
        self._step = step
        return self._step

    def _build_drafts(self) -> None:
        assert self.tokenized is not None
        rows = self.tokenized.rows
        self.detection = self.detector.detect(rows, preselected=self.requested_format)
        fmt = self.detection.format
        self.column_map = build_column_map(rows, fmt, self.manual_mapping)

        if self._index is None:
            self.engine.refresh()
            self._index = build_duplicate_index(self.db)
        builder = DraftBuilder(self.engine, self._index)
        drafts = builder.build(
            rows, fmt, self.column_map, source=fmt.value, account_id=self.account_id
        )
        kinds = {cat.id: cat.kind for cat in self.db.list_all_categories()}
        self._drafts = [self._reapply(d, kinds) for d in drafts]

    def _reapply(self, row: DraftRow, kinds: dict[int, TransactionKind]) -> DraftRow:
        """Put back a remembered resolution if its category still fits the row."""
        if row.status not in (RowStatus.VALID, RowStatus.UNRESOLVED) or row.kind is None:
            return row
        if row.kind == TransactionKind.TRANSFER and self.account_id is None:
            return row
        category_id = self._row_resolutions.get(row.row_index)
        if category_id is None or kinds.get(category_id) != row.kind:
            category_id = self._group_resolutions.get(group_key(row.description, row.kind))
        if category_id is None or kinds.get(category_id) != row.kind:
            return row
        return replace(row, final_category_id=category_id)

    # Preview

    def preview(self, filter: PreviewFilter = PreviewFilter.ALL) -> list[DraftRow]:
        """Rows matching ``filter``; read-only."""
        if self._step == WizardStep.SETTINGS:
            raise InvalidTransitionError("Nothing to preview before the file is read")
        if filter == PreviewFilter.ALL:
            return list(self._drafts)
        status = RowStatus(filter.value)
        return [row for row in self._drafts if row.status == status]

    # Resolve

    def groups(self) -> list[DescriptionGroup]:
        """Resolvable rows grouped by normalized description and kind."""
        self._require(WizardStep.RESOLVE)
        return group_rows(self._drafts)

    def _check_transfer_account(self, kind: TransactionKind) -> None:
        if kind == TransactionKind.TRANSFER and self.account_id is None:
            raise ValidationError("Choose an account before categorizing transfers")

    def _check_category(self, category_id: int, kind: TransactionKind) -> None:
        category = self.db.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        if category.kind != kind:
            raise ValidationError(
                category_kind_mismatch(category.name, category.kind.value, kind.value)
            )

    def resolve_group(
        self,
        description: str,
        kind: TransactionKind,
        category_id: int,
        learn: bool = False,
        apply_to_ledger: bool = False,
    ) -> int:
        """Set the category of every resolvable row with this description and kind.

        Args:
            description: Description of the group (any variant normalizing equal)
            kind: Kind of the group
            category_id: Category to assign
            learn: Also teach the rule engine this description
            apply_to_ledger: Also re-categorize committed transactions with
                the same normalized description and kind

        Returns:
            Number of draft rows changed

        Raises:
            InvalidTransitionError: Outside the resolve step
            NotFoundError: If the category doesn't exist
            ValidationError: If the category kind does not match, or the
                group holds transfers and no account was chosen
        """
        self._require(WizardStep.RESOLVE)
        self._check_transfer_account(kind)
        self._check_category(category_id, kind)

        key = group_key(description, kind)
        self._group_resolutions[key] = category_id
        changed = 0
        for i, row in enumerate(self._drafts):
            if row.status not in (RowStatus.VALID, RowStatus.UNRESOLVED) or row.kind is None:
                continue
            if group_key(row.description, row.kind) == key:
                self._row_resolutions.pop(row.row_index, None)
                self._drafts[i] = replace(row, final_category_id=category_id)
                changed += 1

        if learn:
            self.engine.learn(description, kind, category_id)
        if apply_to_ledger:
            TransactionService(self.db).reapply_category(description, kind, category_id)

        logger.info("Resolved %d rows of '%s' to category %d", changed, description, category_id)
        return changed

    def resolve_row(self, row_index: int, category_id: int) -> DraftRow:
        """Set the category of a single row.

        Raises:
            InvalidTransitionError: Outside the resolve step
            NotFoundError: If the row or category doesn't exist
            ValidationError: If the row cannot take a category
        """
        self._require(WizardStep.RESOLVE)
        for i, row in enumerate(self._drafts):
            if row.row_index != row_index:
                continue
            if row.status not in (RowStatus.VALID, RowStatus.UNRESOLVED) or row.kind is None:
                raise ValidationError(f"Row {row_index} is {row.status.value} and cannot be resolved")
            self._check_transfer_account(row.kind)
            self._check_category(category_id, row.kind)
            self._row_resolutions[row_index] = category_id
            self._drafts[i] = replace(row, final_category_id=category_id)
            return self._drafts[i]
        raise NotFoundError(f"Row {row_index} not found")

    def enrich_with(self, classifier: CategorySuggester) -> int:
        """Ask an external classifier about rows still lacking a category.

        Suggestions land in ``suggested_category_id`` and make the row valid.
        A failing classifier leaves rows unresolved.

        Returns:
            Number of rows that received a suggestion
        """
        self._require(WizardStep.PREVIEW, WizardStep.RESOLVE)
        pending = [
            row for row in self._drafts
            if row.status == RowStatus.UNRESOLVED and row.final_category_id is None
            and (row.kind != TransactionKind.TRANSFER or self.account_id is not None)
        ]
        if not pending:
            return 0

        categories = self.db.list_all_categories()
        kinds = {cat.id: cat.kind for cat in categories}
        suggestions = classifier.suggest(pending, categories)
        wanted = {row.row_index for row in pending}

        enriched = 0
        for i, row in enumerate(self._drafts):
            category_id = suggestions.get(row.row_index)
            if category_id is None or row.row_index not in wanted:
                continue
            if kinds.get(category_id) != row.kind:
                continue
            self._drafts[i] = replace(
                row, suggested_category_id=category_id, status=RowStatus.VALID
            )
            enriched += 1

        logger.info("Remote classifier suggested categories for %d of %d rows", enriched, len(pending))
        return enriched

    # Summary and commit

    def summary(self) -> ImportSummary:
        """Counts and diagnostic samples of the batch; never commits."""
        self._require(WizardStep.SUMMARY, WizardStep.COMMITTED)
        assert self.detection is not None

        invalid = [r for r in self._drafts if r.status == RowStatus.INVALID]
        unresolved = [
            r for r in self._drafts
            if r.status == RowStatus.UNRESOLVED and r.final_category_id is None
        ]
        limit = self.sample_limit
        return ImportSummary(
            file_name=self.file_name or "",
            format=self.detection.format,
            total=len(self._drafts),
            valid=sum(1 for r in self._drafts if r.status == RowStatus.VALID),
            duplicate=sum(1 for r in self._drafts if r.status == RowStatus.DUPLICATE),
            invalid=len(invalid),
            unresolved=sum(1 for r in self._drafts if r.status == RowStatus.UNRESOLVED),
            user_resolved=sum(1 for r in self._drafts if r.is_user_resolved),
            committable=sum(1 for r in self._drafts if r.is_committable),
            invalid_samples=tuple(invalid[:limit]),
            unresolved_samples=tuple(unresolved[:limit]),
            invalid_truncated=max(0, len(invalid) - limit),
            unresolved_truncated=max(0, len(unresolved) - limit),
        )

    def confirm_commit(self, coordinator: "CommitCoordinator") -> "CommitResult":
        """Commit the batch; only legal from the summary step.

        On failure the session stays at summary and can be committed again
        without re-reading the file.

        Raises:
            InvalidTransitionError: Outside the summary step
            CommitFailed: If the ledger write failed
        """
        self._require(WizardStep.SUMMARY)
        result = coordinator.commit(self)
        self.result = result
        self._step = WizardStep.COMMITTED
        return result
