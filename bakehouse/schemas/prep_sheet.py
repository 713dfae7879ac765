# bakehouse/schemas/prep_sheet.py
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from bakehouse.models.enums import PrepSheetStatus


class PrepSheetItemOut(BaseModel):
    id: int
    prep_sheet_id: int
    order_id: Optional[int] = None
    customer_name: Optional[str] = None
    flavor_id: str
    flavor_name: str
    planned_quantity: int
    actual_quantity: Optional[int] = None
    is_extra: bool

    model_config = ConfigDict(from_attributes=True)


class PrepSheetOut(BaseModel):
    id: int
    sheet_date: date
    status: PrepSheetStatus
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    completed_by: Optional[str] = None
    completed_at: Optional[datetime] = None

    items: List[PrepSheetItemOut] = []

    model_config = ConfigDict(from_attributes=True)


# --------- input models ---------


class PrepSheetCreateIn(BaseModel):
    sheet_date: date
    notes: Optional[str] = None


class AssignOrderIn(BaseModel):
    order_id: int


class ExtraCreateIn(BaseModel):
    flavor_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)


class ExtraUpdateIn(BaseModel):
    quantity: int = Field(ge=1)


class ActualQuantityIn(BaseModel):
    # None clears a previously recorded count
    quantity: Optional[int] = Field(default=None, ge=0)


class FinalizeIn(BaseModel):
    # item_id -> baked count; items not listed use their recorded actual or plan
    actual_quantities: Dict[int, int] = {}
