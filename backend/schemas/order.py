# backend/schemas/order.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal

OrderStatus = Literal["pending", "received", "cancelled"]


class OrderCreatePayload(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    notes: Optional[str] = None


class OrderResponse(BaseModel):
    id: int
    product_id: int
    product_reference: str
    product_designation: str
    quantity: int
    ordered_by: int
    ordered_by_name: str
    ordered_at: datetime
    status: OrderStatus
    received_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# Paginated order list
class OrdersPage(BaseModel):
    items: List[OrderResponse]
    total: int
    page: int
    page_size: int


class DeliveryTime(BaseModel):
    average_days: float
