"""The category store: validation, invariants and hierarchy queries.

Persistence adapters only execute queries; every rule about parents, cycles,
names and soft deletion lives here so all backends enforce the same ones.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from fastapi import Depends

from family_budget import hierarchy
from family_budget.config import Settings, get_settings
from family_budget.data_access import CategoriesDataAccess, CategoryRepository
from family_budget.errors import (
    CategoryDepthExceededError,
    CategoryHasChildrenError,
    CategoryNameExistsError,
    CategoryNotFoundError,
    CategorySelfParentError,
    InvalidCategoryError,
    ParentCategoryFamilyMismatchError,
    ParentCategoryInactiveError,
    ParentCategoryNotFoundError,
    ParentCategoryTypeMismatchError,
)
from family_budget.models import (
    DEFAULT_COLOR,
    DEFAULT_ICON,
    Category,
    CategoryNode,
    CategoryType,
)
from family_budget.validation import (
    validate_category_name,
    validate_category_type,
    validate_uuid,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPENSE_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("Groceries", "#FF6B6B", "🛒"),
    ("Transport", "#4ECDC4", "🚗"),
    ("Utilities", "#45B7D1", "🏠"),
    ("Entertainment", "#F7DC6F", "🎬"),
    ("Health", "#BB8FCE", "🏥"),
    ("Clothing", "#85C1E9", "👕"),
    ("Education", "#F8C471", "📚"),
    ("Other", "#AEB6BF", "📦"),
)

DEFAULT_INCOME_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("Salary", "#58D68D", "💰"),
    ("Bonus", "#76D7C4", "🎁"),
    ("Freelance", "#F9E79F", "💻"),
    ("Investments", "#D2B4DE", "📈"),
    ("Other Income", "#A9DFBF", "💵"),
)

_UPDATABLE_FIELDS = frozenset({"name", "color", "icon", "parent_id"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CategoriesService:
    def __init__(
        self,
        categories_store: CategoryRepository = Depends(CategoriesDataAccess),
        settings: Settings = Depends(get_settings),
    ) -> None:
        self._categories_store = categories_store
        self._max_depth = settings.CATEGORY_MAX_DEPTH

    async def _family_index(self, family_id: uuid.UUID) -> dict[uuid.UUID, Category]:
        categories = await self._categories_store.list_active_categories(family_id)
        return hierarchy.index_by_id(categories)

    async def _validate_parent(
        self,
        *,
        parent_id: uuid.UUID,
        family_id: uuid.UUID,
        category_type: CategoryType,
    ) -> Category:
        parent = await self._categories_store.get_category(parent_id)
        if parent is None:
            raise ParentCategoryNotFoundError()
        if not parent.is_active:
            raise ParentCategoryInactiveError()
        if parent.family_id != family_id:
            raise ParentCategoryFamilyMismatchError()
        if parent.type != category_type:
            raise ParentCategoryTypeMismatchError()
        return parent

    async def _ensure_unique_name(
        self,
        *,
        family_id: uuid.UUID,
        category_type: CategoryType,
        parent_id: uuid.UUID | None,
        name: str,
        exclude_category_id: uuid.UUID | None = None,
    ) -> None:
        existing = await self._categories_store.get_active_category_by_name(
            family_id,
            category_type,
            parent_id,
            name,
            exclude_category_id=exclude_category_id,
        )
        if existing is not None:
            raise CategoryNameExistsError()

    async def create_category(
        self,
        *,
        family_id: uuid.UUID,
        name: str,
        type: CategoryType | str,
        color: str | None = None,
        icon: str | None = None,
        parent_id: uuid.UUID | None = None,
        category_id: uuid.UUID | None = None,
    ) -> Category:
        category_id = validate_uuid(
            category_id if category_id is not None else uuid.uuid4(), "id"
        )
        family_id = validate_uuid(family_id, "family_id")
        category_type = validate_category_type(type)
        name = validate_category_name(name)
        if parent_id is not None:
            parent_id = validate_uuid(parent_id, "parent_id")

        async with self._categories_store.family_lock(family_id):
            if await self._categories_store.get_category(category_id) is not None:
                raise InvalidCategoryError("id", "already in use")

            if parent_id is not None:
                await self._validate_parent(
                    parent_id=parent_id,
                    family_id=family_id,
                    category_type=category_type,
                )
                family = await self._family_index(family_id)
                hierarchy.ensure_no_cycle(
                    category_id, parent_id, family, max_depth=self._max_depth
                )

            await self._ensure_unique_name(
                family_id=family_id,
                category_type=category_type,
                parent_id=parent_id,
                name=name,
            )

            now = _now()
            category = await self._categories_store.create_category(
                Category(
                    id=category_id,
                    family_id=family_id,
                    name=name,
                    type=category_type,
                    color=color if color is not None else DEFAULT_COLOR,
                    icon=icon if icon is not None else DEFAULT_ICON,
                    parent_id=parent_id,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )

        logger.info(
            "Created %s category %s (%r) in family %s",
            category.type.value,
            category.id,
            category.name,
            family_id,
        )
        return category

    async def get_category(self, category_id: uuid.UUID) -> Category:
        category_id = validate_uuid(category_id, "id")
        category = await self._categories_store.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError()
        return category

    async def list_categories(self, family_id: uuid.UUID) -> list[Category]:
        family_id = validate_uuid(family_id, "family_id")
        return await self._categories_store.list_active_categories(family_id)

    async def list_categories_by_type(
        self, family_id: uuid.UUID, category_type: CategoryType | str
    ) -> list[Category]:
        family_id = validate_uuid(family_id, "family_id")
        category_type = validate_category_type(category_type)
        return await self._categories_store.list_active_categories(
            family_id, category_type
        )

    async def list_root_categories(self, family_id: uuid.UUID) -> list[Category]:
        categories = await self.list_categories(family_id)
        return [category for category in categories if not category.is_subcategory]

    async def get_category_children(self, parent_id: uuid.UUID) -> list[CategoryNode]:
        """Return ``parent_id`` (level 0) and its whole active subtree."""
        parent_id = validate_uuid(parent_id, "parent_id")
        anchor = await self._categories_store.get_category(parent_id)
        if anchor is None or not anchor.is_active:
            return []
        categories = await self._categories_store.list_active_categories(
            anchor.family_id
        )
        return hierarchy.subtree(parent_id, categories, max_depth=self._max_depth)

    async def get_category_path(self, category_id: uuid.UUID) -> list[CategoryNode]:
        """Return the active chain from the root down to ``category_id``."""
        category_id = validate_uuid(category_id, "id")
        category = await self._categories_store.get_category(category_id)
        if category is None or not category.is_active:
            return []
        family = await self._family_index(category.family_id)
        return hierarchy.path_to_root(category_id, family, max_depth=self._max_depth)

    async def update_category(
        self,
        family_id: uuid.UUID,
        category_id: uuid.UUID,
        updates: dict[str, object],
    ) -> Category:
        family_id = validate_uuid(family_id, "family_id")
        category_id = validate_uuid(category_id, "id")
        unknown_fields = sorted(set(updates) - _UPDATABLE_FIELDS)
        if unknown_fields:
            raise InvalidCategoryError(unknown_fields[0], "cannot be updated")
        for field in ("color", "icon"):
            if field in updates and not isinstance(updates[field], str):
                raise InvalidCategoryError(field, "must be a string")

        changes = dict(updates)
        if "name" in changes:
            changes["name"] = validate_category_name(changes["name"])
        if changes.get("parent_id") is not None:
            changes["parent_id"] = validate_uuid(changes["parent_id"], "parent_id")
            if changes["parent_id"] == category_id:
                raise CategorySelfParentError()

        async with self._categories_store.family_lock(family_id):
            category = await self._categories_store.get_category(category_id)
            if (
                category is None
                or category.family_id != family_id
                or not category.is_active
            ):
                raise CategoryNotFoundError()

            parent_id = changes.get("parent_id", category.parent_id)
            if parent_id is not None and parent_id != category.parent_id:
                await self._validate_parent(
                    parent_id=parent_id,
                    family_id=family_id,
                    category_type=category.type,
                )
                family = await self._family_index(family_id)
                depth = hierarchy.ensure_no_cycle(
                    category_id, parent_id, family, max_depth=self._max_depth
                )
                height = hierarchy.subtree_height(
                    category_id, family.values(), max_depth=self._max_depth
                )
                if depth + height > self._max_depth:
                    logger.warning(
                        "Rejected reparenting category %s under %s: subtree would "
                        "reach depth %d",
                        category_id,
                        parent_id,
                        depth + height,
                    )
                    raise CategoryDepthExceededError()

            name = changes.get("name", category.name)
            if name != category.name or parent_id != category.parent_id:
                await self._ensure_unique_name(
                    family_id=family_id,
                    category_type=category.type,
                    parent_id=parent_id,
                    name=name,
                    exclude_category_id=category_id,
                )

            changes["updated_at"] = _now()
            updated = await self._categories_store.update_category(
                category_id, family_id, changes
            )
            if updated is None:
                raise CategoryNotFoundError()

        logger.info(
            "Updated category %s in family %s: %s",
            category_id,
            family_id,
            ", ".join(sorted(updates)) or "no fields",
        )
        return updated

    async def delete_category(
        self, family_id: uuid.UUID, category_id: uuid.UUID
    ) -> None:
        """Soft-delete a category that has no active subcategories."""
        family_id = validate_uuid(family_id, "family_id")
        category_id = validate_uuid(category_id, "id")

        async with self._categories_store.family_lock(family_id):
            category = await self._categories_store.get_category(category_id)
            if (
                category is None
                or category.family_id != family_id
                or not category.is_active
            ):
                raise CategoryNotFoundError()

            if await self._categories_store.has_active_children(category_id):
                raise CategoryHasChildrenError()

            deleted = await self._categories_store.deactivate_category(
                category_id, family_id, _now()
            )
            if not deleted:
                raise CategoryNotFoundError()

        logger.info("Deleted category %s in family %s", category_id, family_id)

    async def create_default_categories(self, family_id: uuid.UUID) -> list[Category]:
        created = []
        for category_type, defaults in (
            (CategoryType.expense, DEFAULT_EXPENSE_CATEGORIES),
            (CategoryType.income, DEFAULT_INCOME_CATEGORIES),
        ):
            for name, color, icon in defaults:
                created.append(
                    await self.create_category(
                        family_id=family_id,
                        name=name,
                        type=category_type,
                        color=color,
                        icon=icon,
                    )
                )
        return created
