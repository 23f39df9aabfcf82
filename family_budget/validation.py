from __future__ import annotations

import uuid

from family_budget.errors import InvalidCategoryError
from family_budget.models import CategoryType

MAX_CATEGORY_NAME_LENGTH = 255


def validate_uuid(value: object, field: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = uuid.UUID(value)
        except ValueError as exc:
            raise InvalidCategoryError(field, "not a valid UUID") from exc
    else:
        raise InvalidCategoryError(field, "not a valid UUID")

    if parsed.int == 0:
        raise InvalidCategoryError(field, "UUID cannot be nil")
    return parsed


def validate_category_type(value: object) -> CategoryType:
    try:
        return CategoryType(value)
    except ValueError as exc:
        raise InvalidCategoryError("type", "must be 'income' or 'expense'") from exc


def validate_category_name(value: object) -> str:
    if not isinstance(value, str):
        raise InvalidCategoryError("name", "must be a string")
    name = value.strip()
    if not name:
        raise InvalidCategoryError("name", "cannot be empty")
    if len(name) > MAX_CATEGORY_NAME_LENGTH:
        raise InvalidCategoryError(
            "name", f"cannot be longer than {MAX_CATEGORY_NAME_LENGTH} characters"
        )
    return name
