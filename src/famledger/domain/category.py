"""Category domain service."""

import logging
from typing import Any, Optional

from famledger.database.base import Database
from famledger.domain import finance_logic
from famledger.domain.entities import Category as CategoryEntity
from famledger.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    category_delete_blocked,
    category_not_found,
    duplicate_category_key,
    group_not_found,
)

logger = logging.getLogger(__name__)


def _required(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"Category {field} is required")
    return value.strip()


def _normalize_color(color: Optional[str]) -> str:
    color = _required(color, "color")
    if not finance_logic.is_valid_color(color):
        raise ValidationError(f"Invalid color '{color}'. Use #RGB or #RRGGBB")
    return color.upper()


class CategoryService:
    """Service for managing categories.

    Transactions and budgets refer to categories by ``key``, so keys are
    unique inside a group and stored lowercased.
    """

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, key: str, label: str, icon: str, color: str, group_id: int) -> int:
        """Create a category.

        Returns:
            Category ID

        Raises:
            ValidationError: If a field is missing or the color is invalid
            ConflictError: If the key already exists in the group
        """
        clean_key = _required(key, "key").lower()
        clean_label = _required(label, "label")
        clean_icon = _required(icon, "icon")
        clean_color = _normalize_color(color)
        if group_id is None:
            raise ValidationError("Group is required")
        if self.db.get_group(group_id) is None:
            raise NotFoundError(group_not_found(group_id))
        if self.db.get_category_by_key(group_id, clean_key) is not None:
            raise ConflictError(duplicate_category_key(clean_key, group_id))

        category_id = self.db.create_category(
            key=clean_key, label=clean_label, color=clean_color, icon=clean_icon, group_id=group_id
        )
        logger.info("Created category %s (%s)", category_id, clean_key)
        return category_id

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        return self.db.get_category(category_id)

    def list_categories(self, group_id: Optional[int] = None) -> list[CategoryEntity]:
        return self.db.list_categories(group_id=group_id)

    def find(self, group_id: Optional[int], identifier: int | str) -> Optional[CategoryEntity]:
        """Find a category by id, key or label."""
        return finance_logic.find_category(self.db.list_categories(group_id=group_id), identifier)

    def update_category(
        self,
        category_id: int,
        label: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> None:
        """Update label, icon or color. Keys are immutable once referenced."""
        if self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))
        fields: dict[str, Any] = {}
        if label is not None:
            fields["label"] = _required(label, "label")
        if icon is not None:
            fields["icon"] = _required(icon, "icon")
        if color is not None:
            fields["color"] = _normalize_color(color)
        if fields:
            self.db.update_category(category_id, **fields)
            logger.info("Updated category %s", category_id)

    def delete_category(self, category_id: int, force: bool = False) -> None:
        """Delete a category.

        Raises:
            NotFoundError: If the category does not exist
            DependencyError: If transactions or budgets still use it and
                ``force`` is False
        """
        category = self.db.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))

        if not force:
            transaction_count = self.db.count_transactions_with_category(
                category.group_id, category.key
            )
            budget_count = sum(
                1
                for b in self.db.list_budgets(group_id=category.group_id)
                if category.key in b.categories
            )
            if transaction_count > 0 or budget_count > 0:
                raise DependencyError(
                    category_delete_blocked(category.key, transaction_count, budget_count)
                )

        self.db.delete_category(category_id)
        logger.info("Deleted category %s (%s)", category_id, category.key)
