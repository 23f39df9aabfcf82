from __future__ import annotations

import uuid

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from family_budget import db
from family_budget.models import Family
from family_budget.tables import FamiliesTable


class FamiliesDataAccess:
    def __init__(self, session: AsyncSession = Depends(db.get_session)) -> None:
        self._session = session

    async def get_family(self, family_id: uuid.UUID) -> Family | None:
        family = await self._session.get(FamiliesTable, family_id)
        if family is None:
            return None
        return _to_family(family)

    async def create_family(self, *, name: str, currency: str) -> Family:
        family = FamiliesTable(name=name, currency=currency)
        self._session.add(family)
        await self._session.flush()
        await self._session.refresh(family)
        return _to_family(family)


def _to_family(family: FamiliesTable) -> Family:
    return Family(
        id=family.id,
        name=family.name,
        currency=family.currency,
        created_at=family.created_at,
    )
