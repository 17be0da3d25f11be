"""Named manual column mappings kept between imports."""

import logging
from typing import TYPE_CHECKING, Optional

from kakeibo.domain.entities import SavedMapping
from kakeibo.domain.errors import NotFoundError, ValidationError, mapping_not_found
from kakeibo.importing.column_map import FIELDS, ManualMapping
from kakeibo.importing.formats import ImportFormat

if TYPE_CHECKING:
    from kakeibo.database.base import Database

logger = logging.getLogger(__name__)


def to_manual_mapping(saved: SavedMapping) -> ManualMapping:
    """Column indices of a saved mapping as a ``ManualMapping``."""
    return ManualMapping(**{name: getattr(saved, name) for name in FIELDS})


class MappingService:
    """Service for saving and reusing manual column mappings."""

    def __init__(self, db: "Database"):
        """Initialize mapping service.

        Args:
            db: Database instance
        """
        self.db = db

    def save_mapping(
        self, name: str, mapping: ManualMapping, format_hint: Optional[ImportFormat] = None
    ) -> int:
        """Save a mapping under ``name``, replacing any mapping of that name.

        Args:
            name: Mapping name
            mapping: Column indices to keep
            format_hint: Format the mapping applies to, if any

        Returns:
            Mapping ID

        Raises:
            ValidationError: If the name is blank or the mapping sets no column
        """
        name = name.strip()
        if not name:
            raise ValidationError("Mapping name must not be empty")
        if mapping.is_empty():
            raise ValidationError("A saved mapping needs at least one column")

        columns = {field: getattr(mapping, field) for field in FIELDS}
        hint = format_hint.value if format_hint is not None else None
        mapping_id = self.db.save_mapping(name, hint, columns)
        logger.info("Saved column mapping '%s' (ID %d)", name, mapping_id)
        return mapping_id

    def get_mapping(self, name: str) -> SavedMapping:
        """Get a saved mapping by name.

        Raises:
            NotFoundError: If no mapping has that name
        """
        saved = self.db.get_mapping_by_name(name)
        if saved is None:
            raise NotFoundError(mapping_not_found(name))
        return saved

    def load_mapping(self, name: str) -> tuple[ManualMapping, Optional[ImportFormat]]:
        """Return the column indices and format hint stored under ``name``."""
        saved = self.get_mapping(name)
        hint = None
        if saved.format_hint:
            try:
                hint = ImportFormat(saved.format_hint)
            except ValueError:
                logger.warning("Ignoring unknown format '%s' of mapping '%s'", saved.format_hint, name)
        return to_manual_mapping(saved), hint

    def list_mappings(self) -> list[SavedMapping]:
        return self.db.list_mappings()

    def delete_mapping(self, name: str) -> None:
        """Delete a saved mapping.

        Raises:
            NotFoundError: If no mapping has that name
        """
        try:
            self.db.delete_mapping(name)
        except ValueError as e:
            raise NotFoundError(str(e)) from e
