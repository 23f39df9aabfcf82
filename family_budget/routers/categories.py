import uuid

from fastapi import APIRouter, Depends, status

from family_budget.dependencies import require_family
from family_budget.errors import CategoryNotFoundError
from family_budget.models import (
    Category,
    CategoryCreate,
    CategoryNode,
    CategoryNodeResponse,
    CategoryResponse,
    CategoryType,
    CategoryUpdate,
    Family,
)
from family_budget.routers.utils import extract_updates
from family_budget.services import CategoriesService

router = APIRouter(prefix="/families/{family_id}/categories")


async def _require_family_category(
    categories_service: CategoriesService, family: Family, category_id: uuid.UUID
) -> Category:
    category = await categories_service.get_category(category_id)
    if category.family_id != family.id:
        raise CategoryNotFoundError()
    return category


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    family: Family = Depends(require_family),
    categories_service: CategoriesService = Depends(),
) -> Category:
    return await categories_service.create_category(
        family_id=family.id,
        name=payload.name,
        type=payload.type,
        color=payload.color,
        icon=payload.icon,
        parent_id=payload.parent_id,
    )


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    type: CategoryType | None = None,
    family: Family = Depends(require_family),
    categories_service: CategoriesService = Depends(),
) -> list[Category]:
    if type is not None:
        return await categories_service.list_categories_by_type(family.id, type)
    return await categories_service.list_categories(family.id)


@router.get("/roots", response_model=list[CategoryResponse])
async def list_root_categories(
    family: Family = Depends(require_family),
    categories_service: CategoriesService = Depends(),
) -> list[Category]:
    return await categories_service.list_root_categories(family.id)


@router.post(
    "/defaults",
    response_model=list[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_default_categories(
    family: Family = Depends(require_family),
    categories_service: CategoriesService = Depends(),
) -> list[Category]:
    return await categories_service.create_default_categories(family.id)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: uuid.UUID,
    family: Family = Depends(require_family),
    categories_service: CategoriesService = Depends(),
) -> Category:
    return await _require_family_category(categories_service, family, category_id)


@router.get("/{category_id}/children", response_model=list[CategoryNodeResponse])
async def get_category_children(
    category_id: uuid.UUID,
    family: Family = Depends(require_family),
    categories_service: CategoriesService = Depends(),
) -> list[CategoryNode]:
    await _require_family_category(categories_service, family, category_id)
    return await categories_service.get_category_children(category_id)


@router.get("/{category_id}/path", response_model=list[CategoryNodeResponse])
async def get_category_path(
    category_id: uuid.UUID,
    family: Family = Depends(require_family),
    categories_service: CategoriesService = Depends(),
) -> list[CategoryNode]:
    await _require_family_category(categories_service, family, category_id)
    return await categories_service.get_category_path(category_id)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    family: Family = Depends(require_family),
    categories_service: CategoriesService = Depends(),
) -> Category:
    updates = extract_updates(payload, nullable=("parent_id",))
    return await categories_service.update_category(family.id, category_id, updates)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: uuid.UUID,
    family: Family = Depends(require_family),
    categories_service: CategoriesService = Depends(),
) -> None:
    await categories_service.delete_category(family.id, category_id)
