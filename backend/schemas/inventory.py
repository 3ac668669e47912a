# backend/schemas/inventory.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal


class SessionStart(BaseModel):
    mode: Literal["full", "category", "zone"] = "full"
    category_id: Optional[int] = None
    storage_zone_id: Optional[int] = None


class CountPayload(BaseModel):
    counted_stock: int = Field(ge=0)
    notes: Optional[str] = None


class InventoryCountOut(BaseModel):
    id: int
    product_id: int
    system_stock: int
    counted_stock: Optional[int] = None
    difference: int
    status: Literal["pending", "counted", "validated"]
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SessionSummary(BaseModel):
    total: int
    counted: int
    validated: int
    with_differences: int
    total_difference: int


class InventorySessionOut(BaseModel):
    id: int
    mode: str
    category_id: Optional[int] = None
    storage_zone_id: Optional[int] = None
    status: Literal["open", "validated", "cancelled"]
    started_by: int
    started_at: datetime
    closed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class InventorySessionDetail(InventorySessionOut):
    counts: List[InventoryCountOut]
    summary: SessionSummary
