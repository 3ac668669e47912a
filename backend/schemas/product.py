# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Shared base attributes for product entities
class ProductBase(ORMBase):
    customer_reference: Optional[str] = None
    designation: str
    category_id: int
    unit_id: int
    storage_zone_id: Optional[int] = None
    shelf: Optional[int] = Field(default=None, ge=0)
    position: Optional[int] = Field(default=None, ge=0)
    min_stock: int = Field(default=0, ge=0)
    max_stock: int = Field(default=0, ge=0)
    unit_price: Optional[float] = Field(default=None, ge=0)
    supplier1: Optional[str] = None
    order_link1: Optional[str] = None
    supplier2: Optional[str] = None
    order_link2: Optional[str] = None
    supplier3: Optional[str] = None
    order_link3: Optional[str] = None


# Schema for creating a new product; reference is generated when omitted
class ProductCreate(ProductBase):
    reference: Optional[str] = None
    current_stock: int = Field(default=0, ge=0)
    # Photo is uploaded separately as multipart


# Schema for partial product updates
class ProductEditRequest(ORMBase):
    """Schema for PATCH requests - all fields optional."""
    reference: Optional[str] = None
    customer_reference: Optional[str] = None
    designation: Optional[str] = None
    category_id: Optional[int] = None
    unit_id: Optional[int] = None
    storage_zone_id: Optional[int] = None
    shelf: Optional[int] = Field(None, ge=0)
    position: Optional[int] = Field(None, ge=0)
    current_stock: Optional[int] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    unit_price: Optional[float] = Field(None, ge=0)
    supplier1: Optional[str] = None
    order_link1: Optional[str] = None
    supplier2: Optional[str] = None
    order_link2: Optional[str] = None
    supplier3: Optional[str] = None
    order_link3: Optional[str] = None
    skip_movement: bool = False


# Full product representation including ID and resolved names
class ProductOut(ProductBase):
    id: int
    reference: str
    current_stock: int
    category: Optional[str] = None
    unit: Optional[str] = None
    storage_zone: Optional[str] = None
    location: str = ""
    photo: Optional[str] = None
    photo_url: Optional[str] = None
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Paginated response for product listings
class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int


class NextReference(BaseModel):
    reference: str
