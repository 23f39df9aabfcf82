from .categories import CategoriesService
