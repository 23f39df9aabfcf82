from __future__ import annotations

import uuid
from datetime import datetime
from typing import AsyncContextManager, Protocol

from family_budget.models import Category, CategoryType


class CategoryRepository(Protocol):
    """Query execution a backing store provides to ``CategoriesService``.

    Listing methods return active rows only. ``update_category`` and
    ``deactivate_category`` only touch an active row of the given family and
    report a miss with ``None`` / ``False``.
    """

    def family_lock(self, family_id: uuid.UUID) -> AsyncContextManager[None]: ...

    async def get_category(self, category_id: uuid.UUID) -> Category | None: ...

    async def list_active_categories(
        self,
        family_id: uuid.UUID,
        category_type: CategoryType | None = None,
    ) -> list[Category]: ...

    async def get_active_category_by_name(
        self,
        family_id: uuid.UUID,
        category_type: CategoryType,
        parent_id: uuid.UUID | None,
        name: str,
        *,
        exclude_category_id: uuid.UUID | None = None,
    ) -> Category | None: ...

    async def has_active_children(self, category_id: uuid.UUID) -> bool: ...

    async def create_category(self, category: Category) -> Category: ...

    async def update_category(
        self,
        category_id: uuid.UUID,
        family_id: uuid.UUID,
        updates: dict[str, object],
    ) -> Category | None: ...

    async def deactivate_category(
        self,
        category_id: uuid.UUID,
        family_id: uuid.UUID,
        updated_at: datetime,
    ) -> bool: ...
