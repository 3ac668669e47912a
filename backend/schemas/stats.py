# backend/schemas/stats.py
from pydantic import BaseModel
from typing import List, Optional

from schemas.stock import StockMovementResponse


class StockAlert(BaseModel):
    product_id: int
    reference: str
    designation: str
    current_stock: int
    min_stock: int
    max_stock: int
    location: str = ""
    level: str
    percentage: float


class DashboardSummary(BaseModel):
    total_products: int
    low_stock: int
    critical_stock: int
    pending_requests: int
    pending_orders: int
    average_delivery_days: float


class ProductConsumption(BaseModel):
    product_id: int
    average_daily: float
    # None means no consumption in the window
    days_until_stockout: Optional[float] = None


class StockoutPrediction(BaseModel):
    product_id: int
    reference: str
    designation: str
    category: Optional[str] = None
    current_stock: int
    average_daily: float
    days_left: int
    unit_price: float
    estimated_cost: float


class TopConsumed(BaseModel):
    product_id: int
    reference: str
    designation: str
    quantity: int


class CategoryConsumption(BaseModel):
    category: str
    quantity: int
    cost: float


class GlobalStats(BaseModel):
    period: str
    days: int
    total_exits: int
    total_entries: int
    average_daily_consumption: float
    most_consumed: Optional[str] = None
    products_with_exits: int
    total_exit_value: float
    total_entry_value: float
    average_daily_value: float


class UnusualConsumption(BaseModel):
    product_id: int
    reference: str
    designation: str
    average_daily: float
    recent_daily: float
    percentage_increase: float


class MonthlyConsumption(BaseModel):
    month: str
    quantity: int


class UserStatistics(BaseModel):
    user_id: int
    total_quantity: int
    total_exits: int
    top_products: List[TopConsumed]
    monthly: List[MonthlyConsumption]
    recent_exits: List[StockMovementResponse]
