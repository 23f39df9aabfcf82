from .categories import (
    DEFAULT_COLOR,
    DEFAULT_ICON,
    Category,
    CategoryCreate,
    CategoryNode,
    CategoryNodeResponse,
    CategoryResponse,
    CategoryType,
    CategoryUpdate,
)
from .families import Family, FamilyCreate, FamilyResponse
