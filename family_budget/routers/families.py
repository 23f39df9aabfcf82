from fastapi import APIRouter, Depends, status

from family_budget.data_access import FamiliesDataAccess
from family_budget.dependencies import require_family
from family_budget.models import Family, FamilyCreate, FamilyResponse
from family_budget.services import CategoriesService

router = APIRouter(prefix="/families")


@router.post("", response_model=FamilyResponse, status_code=status.HTTP_201_CREATED)
async def create_family(
    payload: FamilyCreate,
    families_store: FamiliesDataAccess = Depends(),
    categories_service: CategoriesService = Depends(),
) -> Family:
    family = await families_store.create_family(
        name=payload.name, currency=payload.currency.upper()
    )
    if payload.with_default_categories:
        await categories_service.create_default_categories(family.id)
    return family


@router.get("/{family_id}", response_model=FamilyResponse)
async def get_family(family: Family = Depends(require_family)) -> Family:
    return family
