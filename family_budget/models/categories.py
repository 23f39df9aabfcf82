from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

DEFAULT_COLOR = "#007BFF"
DEFAULT_ICON = "default"


class CategoryType(str, Enum):
    income = "income"
    expense = "expense"


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: CategoryType
    color: str = Field(DEFAULT_COLOR, max_length=32)
    icon: str = Field(DEFAULT_ICON, max_length=64)
    parent_id: uuid.UUID | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    color: str | None = Field(None, max_length=32)
    icon: str | None = Field(None, max_length=64)
    parent_id: uuid.UUID | None = None


class CategoryResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    name: str
    type: CategoryType
    color: str
    icon: str
    parent_id: uuid.UUID | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CategoryNodeResponse(BaseModel):
    id: uuid.UUID
    name: str
    type: CategoryType
    level: int


@dataclass(frozen=True, slots=True)
class Category:
    id: uuid.UUID
    family_id: uuid.UUID
    name: str
    type: CategoryType
    color: str
    icon: str
    parent_id: uuid.UUID | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @property
    def is_subcategory(self) -> bool:
        return self.parent_id is not None


@dataclass(frozen=True, slots=True)
class CategoryNode:
    """A category positioned relative to the anchor of a hierarchy query."""

    id: uuid.UUID
    name: str
    type: CategoryType
    level: int
