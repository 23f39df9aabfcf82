"""Errors raised by the category store.

Every error carries the HTTP status it maps to and a ``detail`` message that is
safe to show to a user. ``CategoryStoreError`` is the only one whose detail is
not shown; its cause is chained for logging instead.
"""

from __future__ import annotations

import uuid

from fastapi import status


class CategoryError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Invalid category request."

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


# -----------------------
# Malformed input
# -----------------------


class InvalidCategoryError(CategoryError):
    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}.")


# -----------------------
# Parent / hierarchy violations
# -----------------------


class ParentCategoryNotFoundError(CategoryError):
    detail = "Parent category not found."


class ParentCategoryInactiveError(CategoryError):
    detail = "Parent category is not active."


class ParentCategoryFamilyMismatchError(CategoryError):
    detail = "Parent category belongs to a different family."


class ParentCategoryTypeMismatchError(CategoryError):
    detail = "Parent category has a different type."


class CategorySelfParentError(CategoryError):
    detail = "Category cannot be its own parent."


class CategoryCycleError(CategoryError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Circular reference would be created."


class CategoryDepthExceededError(CategoryCycleError):
    detail = "Category hierarchy is too deep."


# -----------------------
# Conflicts and lookups
# -----------------------


class CategoryNameExistsError(CategoryError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Category name already exists."


class CategoryNotFoundError(CategoryError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Category not found."


class CategoryHasChildrenError(CategoryError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Cannot delete category with subcategories."


class CategoryStoreError(CategoryError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal server error."

    def __init__(self, operation: str, category_id: uuid.UUID | None = None) -> None:
        self.operation = operation
        self.category_id = category_id
        super().__init__()

    def __str__(self) -> str:
        if self.category_id is None:
            return f"category store failed to {self.operation}"
        return f"category store failed to {self.operation} (category {self.category_id})"
