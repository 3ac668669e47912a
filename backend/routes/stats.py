# backend/routes/stats.py

import math
from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user, manager_required
from models.users import User
from models.product import Product
from services import alerts, catalog, statistics
import schemas.stats as stats_schemas

router = APIRouter(
    prefix="/stats",
    tags=["Stats"]
)

Period = Literal["week", "month", "quarter", "year"]


def _active_products(db: Session):
    return db.query(Product).filter(Product.deleted_at.is_(None)).all()


# === Dashboard ===

@router.get("/summary", response_model=stats_schemas.DashboardSummary)
def get_stats_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return statistics.dashboard_summary(db)


# Sorted by stock as a share of the minimum
@router.get("/alerts", response_model=List[stats_schemas.StockAlert])
def get_stock_alerts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return alerts.stock_alerts(_active_products(db))


# Sorted by stock as a rounded share of the maximum
@router.get("/dashboard-alerts", response_model=List[stats_schemas.StockAlert])
def get_dashboard_alerts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return alerts.dashboard_alerts(_active_products(db))


# Own exits of the signed-in user
@router.get("/me", response_model=stats_schemas.UserStatistics)
def get_my_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return statistics.user_statistics(db, current_user.id)


# === Consumption ===

@router.get("/consumption/{product_id}", response_model=stats_schemas.ProductConsumption)
def get_product_consumption(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    product = catalog.get_product(db, product_id)
    average = statistics.average_daily_consumption(db, product.id)
    days_left = statistics.days_until_stockout(product.current_stock, average)
    return {
        "product_id": product.id,
        "average_daily": round(average, 2),
        "days_until_stockout": None if math.isinf(days_left) else round(days_left, 1),
    }


@router.get("/forecast", response_model=List[stats_schemas.StockoutPrediction])
def get_stockout_forecast(
    period: Period = Query("month"),
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required)
):
    return statistics.stockout_forecast(db, period)


@router.get("/top-consumed", response_model=List[stats_schemas.TopConsumed])
def get_top_consumed(
    period: Period = Query("month"),
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required)
):
    return statistics.top_consumed(db, period)


@router.get("/by-category", response_model=List[stats_schemas.CategoryConsumption])
def get_consumption_by_category(
    period: Period = Query("month"),
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required)
):
    return statistics.by_category(db, period)


@router.get("/global", response_model=stats_schemas.GlobalStats)
def get_global_stats(
    period: Period = Query("month"),
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required)
):
    return statistics.global_stats(db, period)


@router.get("/unusual-consumption", response_model=List[stats_schemas.UnusualConsumption])
def get_unusual_consumption(
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required)
):
    return statistics.unusual_consumption(db)
