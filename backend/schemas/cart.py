# backend/schemas/cart.py
from pydantic import BaseModel, Field
from typing import List, Optional


# Schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


# Schema for updating cart item quantity
class CartUpdateItem(BaseModel):
    quantity: int = Field(gt=0)


# Output schema for a single cart item
class CartItemOut(BaseModel):
    id: int
    product_id: int
    reference: str
    designation: str
    quantity: int
    available: int
    location: str = ""


# Output schema for the full cart
class CartOut(BaseModel):
    items: List[CartItemOut]
    total_quantity: int


class CartSubmit(BaseModel):
    reason: Optional[str] = None
    notes: Optional[str] = None
