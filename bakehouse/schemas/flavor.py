# bakehouse/schemas/flavor.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FlavorOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    sort_order: int

    model_config = ConfigDict(from_attributes=True)


# --------- input models ---------


class FlavorCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    id: Optional[str] = Field(default=None, max_length=64, description="catalog key; slug of name when omitted")
    description: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class FlavorUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
