# backend/schemas/stock.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal

# Allowed ledger movement types
StockMovementType = Literal["entry", "exit", "adjustment", "initial"]


# Schema for returning stock movement details
class StockMovementResponse(BaseModel):
    id: int
    product_id: int
    product_reference: str
    product_designation: str
    movement_type: StockMovementType
    quantity: int
    previous_stock: int
    new_stock: int
    user_id: Optional[int] = None
    user_name: str
    reason: str
    notes: Optional[str] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


# Paginated response for stock movement history
class StockMovementPage(BaseModel):
    items: List[StockMovementResponse]
    total: int
    page: int
    page_size: int


# Raw ledger write; the caller is responsible for the stock values
class StockMovementCreate(BaseModel):
    product_id: int
    movement_type: StockMovementType
    quantity: int = Field(ge=0)
    previous_stock: int
    new_stock: int
    reason: str = Field(min_length=1)
    notes: Optional[str] = None


# Set a product's stock to an absolute value
class StockAdjust(BaseModel):
    product_id: int
    new_stock: int = Field(ge=0)
    reason: Optional[str] = None
    notes: Optional[str] = None


# Schema for a single item within a bulk delivery
class DeliveryItem(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


# Schema for registering a bulk stock delivery
class DeliveryCreate(BaseModel):
    items: List[DeliveryItem]
    reason: Optional[str] = "Livraison"
    notes: Optional[str] = None


# Taking items straight from the catalogue, without an exit request
class DirectExit(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    reason: Optional[str] = None
    notes: Optional[str] = None
