"""
services/category_service.py
----------------------------
Business rules for the category catalogue: unique names, field limits,
activation toggles, and deletion guarded by item usage.
"""

import re
from typing import Optional

from models.category import Category, CategoryCreate, CategoryUpdate
from repositories.category_repo import CategoryRepository
from utils.errors import ConflictError, NotFoundError, RepositoryError, ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
ICON_MAX_LENGTH = 100

_HEX_COLOR = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


class CategoryService:
    """Handles all business logic related to categories."""

    def __init__(self, category_repo: Optional[CategoryRepository] = None):
        self.categories = category_repo or CategoryRepository()

    # ── READ ──────────────────────────────────────────────

    def get_active_categories(self) -> list[Category]:
        return self.categories.find_active()

    def get_categories_with_item_count(self) -> list[dict]:
        return self.categories.find_with_item_count()

    def get_popular_categories(self, limit: int = 10) -> list[dict]:
        return self.categories.find_popular(limit)

    def get_category(self, category_id: str) -> Category:
        """
        Raises:
            NotFoundError: Unknown category id.
        """
        category = self.categories.find_by_id(category_id)
        if category is None:
            raise NotFoundError("Category not found", {"category_id": category_id})
        return category

    def search_categories(self, term: str) -> list[Category]:
        if not (term or "").strip():
            raise ValidationError("Search term is required")
        return self.categories.search_by_name(term.strip())

    def get_category_stats(self, category_id: str) -> dict:
        self.get_category(category_id)
        return self.categories.get_category_stats(category_id)

    # ── CREATE / UPDATE ───────────────────────────────────

    def create_category(self, data: CategoryCreate) -> Category:
        """
        Raises:
            ConflictError: A category with the same name exists.
            ValidationError: A field is out of bounds or the color is not hex.
        """
        if self.categories.find_by_name(data.name):
            raise ConflictError("Category with this name already exists", {"name": data.name})
        _validate(data.name, data.description, data.icon, data.color)

        category = self.categories.create(data)
        logger.info(f"Category #{category.id} '{category.name}' created")
        return category

    def update_category(self, category_id: str, data: CategoryUpdate) -> Category:
        """
        Apply a patch; renaming onto an existing name is refused.

        Raises:
            NotFoundError: Unknown category id.
            ConflictError: The new name is taken by another category.
            ValidationError: A field is out of bounds.
        """
        current = self.get_category(category_id)
        if data.name and data.name != current.name and self.categories.find_by_name(data.name):
            raise ConflictError("Category with this name already exists", {"name": data.name})
        _validate(data.name, data.description, data.icon, data.color)

        updated = self.categories.update(category_id, data)
        if updated is None:
            raise RepositoryError("Failed to update category", {"category_id": category_id})
        return updated

    def deactivate_category(self, category_id: str) -> Category:
        category = self.get_category(category_id)
        if not category.is_active:
            raise ConflictError("Category is already deactivated", {"category_id": category_id})
        return self.categories.soft_delete(category_id)

    def activate_category(self, category_id: str) -> Category:
        category = self.get_category(category_id)
        if category.is_active:
            raise ConflictError("Category is already active", {"category_id": category_id})
        return self.categories.update(category_id, CategoryUpdate(is_active=True))

    # ── DELETE ────────────────────────────────────────────

    def delete_category(self, category_id: str) -> None:
        """
        Hard delete a category that no active item uses.

        Raises:
            NotFoundError: Unknown category id.
            ConflictError: Items still reference the category; deactivate it instead.
        """
        self.get_category(category_id)
        if self.categories.is_in_use(category_id):
            raise ConflictError(
                "Cannot delete category that is being used by items", {"category_id": category_id}
            )
        if not self.categories.delete(category_id):
            raise RepositoryError("Failed to delete category", {"category_id": category_id})
        logger.info(f"Category #{category_id} deleted")


def _validate(
    name: Optional[str],
    description: Optional[str],
    icon: Optional[str],
    color: Optional[str],
) -> None:
    if name:
        length = len(name.strip())
        if length < NAME_MIN_LENGTH:
            raise ValidationError(f"Category name must be at least {NAME_MIN_LENGTH} characters long")
        if length > NAME_MAX_LENGTH:
            raise ValidationError(f"Category name must not exceed {NAME_MAX_LENGTH} characters")
    if description and len(description.strip()) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Category description must not exceed {DESCRIPTION_MAX_LENGTH} characters"
        )
    if color and not _HEX_COLOR.match(color):
        raise ValidationError("Color must be a valid hex color (e.g. #FF0000)", {"color": color})
    if icon and len(icon.strip()) > ICON_MAX_LENGTH:
        raise ValidationError(f"Icon name must not exceed {ICON_MAX_LENGTH} characters")
