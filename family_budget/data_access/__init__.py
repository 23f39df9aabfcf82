from .base import CategoryRepository
from .categories import CategoriesDataAccess
from .documents import DocumentCategoriesStore
from .families import FamiliesDataAccess
