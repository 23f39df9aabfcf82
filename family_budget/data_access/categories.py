from __future__ import annotations

import uuid
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from typing import AsyncIterator, Iterator

from fastapi import Depends
from sqlalchemy import Select, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from family_budget import db
from family_budget.errors import CategoryStoreError
from family_budget.models import Category, CategoryType
from family_budget.tables import CategoriesTable, FamiliesTable


@contextmanager
def _store_errors(operation: str, category_id: uuid.UUID | None = None) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise CategoryStoreError(operation, category_id) from exc


def _active(statement: Select) -> Select:
    return statement.where(CategoriesTable.is_active.is_(True))


class CategoriesDataAccess:
    def __init__(self, session: AsyncSession = Depends(db.get_session)) -> None:
        self._session = session

    @asynccontextmanager
    async def family_lock(self, family_id: uuid.UUID) -> AsyncIterator[None]:
        # No-op write on the family row. Opens the write transaction on
        # SQLite and row-locks the family on PostgreSQL until commit.
        with _store_errors("lock family"):
            await self._session.execute(
                update(FamiliesTable)
                .where(FamiliesTable.id == family_id)
                .values(name=FamiliesTable.name)
                .execution_options(synchronize_session=False)
            )
        yield

    async def get_category(self, category_id: uuid.UUID) -> Category | None:
        with _store_errors("get category", category_id):
            category = await self._session.get(CategoriesTable, category_id)
        if category is None:
            return None
        return _to_category(category)

    async def list_active_categories(
        self,
        family_id: uuid.UUID,
        category_type: CategoryType | None = None,
    ) -> list[Category]:
        statement = _active(
            select(CategoriesTable).where(CategoriesTable.family_id == family_id)
        )
        if category_type is not None:
            statement = statement.where(CategoriesTable.type == category_type.value)
        else:
            statement = statement.order_by(CategoriesTable.type)
        statement = statement.order_by(
            CategoriesTable.parent_id.asc().nulls_first(),
            CategoriesTable.name,
        )
        with _store_errors("list categories"):
            result = await self._session.execute(statement)
        return [_to_category(category) for category in result.scalars()]

    async def get_active_category_by_name(
        self,
        family_id: uuid.UUID,
        category_type: CategoryType,
        parent_id: uuid.UUID | None,
        name: str,
        *,
        exclude_category_id: uuid.UUID | None = None,
    ) -> Category | None:
        statement = _active(
            select(CategoriesTable).where(
                CategoriesTable.family_id == family_id,
                CategoriesTable.type == category_type.value,
                CategoriesTable.name == name,
            )
        )
        if parent_id is None:
            statement = statement.where(CategoriesTable.parent_id.is_(None))
        else:
            statement = statement.where(CategoriesTable.parent_id == parent_id)
        if exclude_category_id is not None:
            statement = statement.where(CategoriesTable.id != exclude_category_id)
        with _store_errors("look up category name"):
            result = await self._session.execute(statement.limit(1))
        category = result.scalar_one_or_none()
        if category is None:
            return None
        return _to_category(category)

    async def has_active_children(self, category_id: uuid.UUID) -> bool:
        with _store_errors("check for subcategories", category_id):
            result = await self._session.execute(
                _active(
                    select(CategoriesTable.id).where(
                        CategoriesTable.parent_id == category_id
                    )
                ).limit(1)
            )
        return result.scalar_one_or_none() is not None

    async def create_category(self, category: Category) -> Category:
        row = CategoriesTable(
            id=category.id,
            family_id=category.family_id,
            name=category.name,
            type=category.type.value,
            color=category.color,
            icon=category.icon,
            parent_id=category.parent_id,
            is_active=category.is_active,
            created_at=category.created_at,
            updated_at=category.updated_at,
        )
        with _store_errors("create category", category.id):
            self._session.add(row)
            await self._session.flush()
        return category

    async def update_category(
        self,
        category_id: uuid.UUID,
        family_id: uuid.UUID,
        updates: dict[str, object],
    ) -> Category | None:
        with _store_errors("update category", category_id):
            category = await self._session.get(CategoriesTable, category_id)
            if (
                category is None
                or category.family_id != family_id
                or not category.is_active
            ):
                return None
            for field, value in updates.items():
                setattr(category, field, value)
            await self._session.flush()
        return _to_category(category)

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


def _to_category(category: CategoriesTable) -> Category:
    return Category(
        id=category.id,
        family_id=category.family_id,
        name=category.name,
        type=CategoryType(category.type),
        color=category.color,
        icon=category.icon,
        parent_id=category.parent_id,
        is_active=category.is_active,
        created_at=category.created_at,
        updated_at=category.updated_at,
    )
