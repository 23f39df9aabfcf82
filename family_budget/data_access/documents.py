"""Document-store shaped category adapter.

Categories are kept as plain documents in one collection keyed by id, with no
foreign keys between them; referential integrity comes entirely from
``CategoriesService``. The store tests run the service against it without a
database.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator

from family_budget.models import Category, CategoryType


def family_order_key(category: Category) -> tuple:
    """Sort key for ``type, parent_id NULLS FIRST, name``."""
    parent_id = category.parent_id
    return (
        category.type.value,
        parent_id is not None,
        parent_id.int if parent_id is not None else 0,
        category.name,
    )


class DocumentCategoriesStore:
    def __init__(self) -> None:
        self._documents: dict[uuid.UUID, dict[str, Any]] = {}
        self._locks: defaultdict[uuid.UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def family_lock(self, family_id: uuid.UUID) -> AsyncIterator[None]:
        async with self._locks[family_id]:
            yield

    def _find(self, **criteria: Any) -> list[Category]:
        criteria.setdefault("is_active", True)
        return [
            _to_category(document)
            for document in self._documents.values()
            if all(document[key] == value for key, value in criteria.items())
        ]

    async def get_category(self, category_id: uuid.UUID) -> Category | None:
        document = self._documents.get(category_id)
        if document is None:
            return None
        return _to_category(document)

    async def list_active_categories(
        self,
        family_id: uuid.UUID,
        category_type: CategoryType | None = None,
    ) -> list[Category]:
        criteria: dict[str, Any] = {"family_id": family_id}
        if category_type is not None:
            criteria["type"] = category_type.value
        return sorted(self._find(**criteria), key=family_order_key)

    async def get_active_category_by_name(
        self,
        family_id: uuid.UUID,
        category_type: CategoryType,
        parent_id: uuid.UUID | None,
        name: str,
        *,
        exclude_category_id: uuid.UUID | None = None,
    ) -> Category | None:
        matches = self._find(
            family_id=family_id,
            type=category_type.value,
            parent_id=parent_id,
            name=name,
        )
        for category in matches:
            if category.id != exclude_category_id:
                return category
        return None

    async def has_active_children(self, category_id: uuid.UUID) -> bool:
        return bool(self._find(parent_id=category_id))

    async def create_category(self, category: Category) -> Category:
        self._documents[category.id] = _to_document(category)
        return category

    async def update_category(
        self,
        category_id: uuid.UUID,
        family_id: uuid.UUID,
        updates: dict[str, object],
    ) -> Category | None:
        document = self._documents.get(category_id)
        if (
            document is None
            or document["family_id"] != family_id
            or not document["is_active"]
        ):
            return None
        document.update(updates)
        return _to_category(document)

    async def deactivate_category(
        self,
        category_id: uuid.UUID,
        family_id: uuid.UUID,
        updated_at: datetime,
    ) -> bool:
        updated = await self.update_category(
            category_id,
            family_id,
            {"is_active": False, "updated_at": updated_at},
        )
        return updated is not None


def _to_document(category: Category) -> dict[str, Any]:
    return {
        "_id": category.id,
        "family_id": category.family_id,
        "name": category.name,
        "type": category.type.value,
        "color": category.color,
        "icon": category.icon,
        "parent_id": category.parent_id,
        "is_active": category.is_active,
        "created_at": category.created_at,
        "updated_at": category.updated_at,
    }


def _to_category(document: dict[str, Any]) -> Category:
    return Category(
        id=document["_id"],
        family_id=document["family_id"],
        name=document["name"],
        type=CategoryType(document["type"]),
        color=document["color"],
        icon=document["icon"],
        parent_id=document["parent_id"],
        is_active=document["is_active"],
        created_at=document["created_at"],
        updated_at=document["updated_at"],
    )
