from .categories import router as categories_router
from .families import router as families_router
