# bakehouse/schemas/bake_slot.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BakeSlotOut(BaseModel):
    id: int
    slot_date: date
    location_name: str
    total_capacity: int
    current_orders: int
    cutoff_at: Optional[datetime] = None
    is_open: bool
    manually_closed_by: Optional[str] = None
    manually_closed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SlotCapacityOut(BaseModel):
    slot_id: int
    total_capacity: int
    committed: int
    remaining: int
    is_open: bool
    overbooked: bool

    model_config = ConfigDict(from_attributes=True)


class RecountOut(BaseModel):
    slot_id: int
    before: int
    after: int
    drift: int

    model_config = ConfigDict(from_attributes=True)


# --------- input models ---------


class BakeSlotCreateIn(BaseModel):
    slot_date: date
    location_name: str = Field(min_length=1, max_length=128)
    total_capacity: int = Field(ge=0)
    cutoff_at: Optional[datetime] = None


class SlotOpenIn(BaseModel):
    is_open: bool


class BakeSlotUpdateIn(BaseModel):
    """Only the fields sent are changed; `"cutoff_at": null` removes the cutoff."""

    total_capacity: Optional[int] = Field(default=None, ge=0)
    cutoff_at: Optional[datetime] = None
    location_name: Optional[str] = Field(default=None, min_length=1, max_length=128)
