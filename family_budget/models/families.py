from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field


@dataclass(frozen=True, slots=True)
class Family:
    id: uuid.UUID
    name: str
    currency: str
    created_at: datetime


class FamilyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    currency: str = Field("USD", min_length=3, max_length=3)
    with_default_categories: bool = False


class FamilyResponse(BaseModel):
    id: uuid.UUID
    name: str
    currency: str
    created_at: datetime
