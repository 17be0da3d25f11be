"""Category domain service."""

from typing import TYPE_CHECKING, Optional

from kakeibo.domain.entities import Category, TransactionKind
from kakeibo.domain.errors import ConflictError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from kakeibo.database.base import Database


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: "Database"):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(
        self,
        name: str,
        parent_path: Optional[str] = None,
        kind: Optional[TransactionKind] = None,
    ) -> int:
        """Create a category.

        Args:
            name: Category name
            parent_path: Optional parent category path (e.g., "食費")
            kind: Transaction kind the category applies to. Defaults to the
                parent's kind, or expense for root categories.

        Returns:
            Category ID

        Raises:
            NotFoundError: If parent category doesn't exist
            ValidationError: If the kind differs from the parent's kind
            ConflictError: If a sibling with the same name exists
        """
        parent_id = None
        parent = None
        if parent_path is not None:
            parent = self.db.get_category_by_path(parent_path)
            if parent is None:
                raise NotFoundError(f"Parent category '{parent_path}' not found")
            parent_id = parent.id

        if kind is None:
            kind = parent.kind if parent is not None else TransactionKind.EXPENSE
        elif parent is not None and parent.kind != kind:
            raise ValidationError(
                f"Category '{name}' must have the same kind as its parent ({parent.kind.value})"
            )

        siblings = self.db.list_categories(parent_id=parent_id)
        if any(sibling.name == name for sibling in siblings):
            raise ConflictError(f"Category '{name}' already exists")

        return self.db.create_category(name=name, parent_id=parent_id, kind=kind)

    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        return self.db.get_category(category_id)

    def get_category_by_path(self, path: str) -> Optional[Category]:
        """Get category by path.

        Args:
            path: Category path (e.g., "食費 > 外食")

        Returns:
            Category or None if not found
        """
        return self.db.get_category_by_path(path)

    def find_category(self, name: str, kind: Optional[TransactionKind] = None) -> Optional[Category]:
        """Find a category by full path or, failing that, by leaf name.

        Leaf names are not unique across the tree; the first match in
        creation order wins.
        """
        category = self.db.get_category_by_path(name)
        if category is not None and (kind is None or category.kind == kind):
            return category

        leaf = name.split(">")[-1].strip()
        for candidate in self.db.list_all_categories():
            if candidate.name == leaf and (kind is None or candidate.kind == kind):
                return candidate
        return None

    def list_categories(self, parent_id: Optional[int] = None) -> list[Category]:
        """List categories directly under ``parent_id`` (roots when None)."""
        return self.db.list_categories(parent_id=parent_id)

    def list_all_categories(self) -> list[Category]:
        """List every category."""
        return self.db.list_all_categories()

    def get_category_tree(self) -> list[dict]:
        """Get full category tree.

        Returns:
            List of root categories with nested children
        """
        return self.db.get_category_tree()

    def format_category_path(self, category_id: int) -> str:
        """Get full path for a category.

        Args:
            category_id: Category ID

        Returns:
            Full category path (e.g., "食費 > 外食")
        """
        cat = self.get_category(category_id)
        if cat is None:
            return ""

        path_parts = [cat.name]
        current_parent_id = cat.parent_id

        while current_parent_id is not None:
            parent = self.get_category(current_parent_id)
            if parent is None:
                break
            path_parts.append(parent.name)
            current_parent_id = parent.parent_id

        return " > ".join(reversed(path_parts))
