from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, status

from family_budget.data_access import FamiliesDataAccess
from family_budget.models import Family


async def require_family(
    family_id: uuid.UUID,
    families_store: FamiliesDataAccess = Depends(),
) -> Family:
    family = await families_store.get_family(family_id)
    if family is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Family not found.",
        )
    return family
