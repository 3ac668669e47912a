# backend/services/statistics.py
"""Consumption statistics computed from the ledger on each read."""
import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from models.exit_request import ExitRequest, ExitRequestStatus
from models.order import Order, OrderStatus
from models.product import Product
from models.stock import MovementType, StockMovement
from services import alerts, orders
from services.errors import ValidationFailed
from utils.dates import utcnow

PERIOD_DAYS = {"week": 7, "month": 30, "quarter": 90, "year": 365}
UNCATEGORIZED = "Non catégorisé"

STOCKOUT_HORIZON_DAYS = 30
FORECAST_LIMIT = 10
TOP_LIMIT = 10

USER_MONTHS = 3
RECENT_LIMIT = 10

UNUSUAL_MIN_EXITS = 5
UNUSUAL_RECENT_DAYS = 3
UNUSUAL_HISTORY_DAYS = 30
UNUSUAL_INCREASE_PCT = 50


def period_days(period: str) -> int:
    try:
        return PERIOD_DAYS[period]
    except KeyError:
        raise ValidationFailed(f"Unknown period '{period}'") from None


def _exits_since(db: Session, since: datetime):
    return db.query(StockMovement).filter(
        StockMovement.movement_type == MovementType.EXIT.value,
        StockMovement.timestamp >= since,
    )


# ---- per product ----

def average_daily_consumption(
    db: Session, product_id: int, window_days: Optional[int] = None, now: Optional[datetime] = None
) -> float:
    window_days = window_days or settings.CONSUMPTION_WINDOW_DAYS
    since = (now or utcnow()) - timedelta(days=window_days)
    total = (
        db.query(func.coalesce(func.sum(StockMovement.quantity), 0))
        .filter(
            StockMovement.product_id == product_id,
            StockMovement.movement_type == MovementType.EXIT.value,
            StockMovement.timestamp >= since,
        )
        .scalar()
    )
    return total / window_days


def days_until_stockout(current_stock: int, average_daily: float) -> float:
    """Stock divided by daily consumption; infinite when nothing is consumed."""
    if average_daily <= 0:
        return math.inf
    return current_stock / average_daily


def _consumption_by_product(db: Session, since: datetime) -> Dict[int, int]:
    rows = (
        db.query(StockMovement.product_id, func.sum(StockMovement.quantity))
        .filter(
            StockMovement.movement_type == MovementType.EXIT.value,
            StockMovement.timestamp >= since,
        )
        .group_by(StockMovement.product_id)
        .all()
    )
    return {product_id: total for product_id, total in rows}


def stockout_forecast(db: Session, period: str = "month", now: Optional[datetime] = None) -> List[dict]:
    days = period_days(period)
    consumed = _consumption_by_product(db, (now or utcnow()) - timedelta(days=days))
    if not consumed:
        return []

    predictions = []
    products = db.query(Product).filter(Product.id.in_(list(consumed)), Product.deleted_at.is_(None)).all()
    for product in products:
        average = consumed[product.id] / days
        days_left = days_until_stockout(product.current_stock, average)
        if days_left < STOCKOUT_HORIZON_DAYS and product.current_stock > 0:
            predictions.append({
                "product_id": product.id,
                "reference": product.reference,
                "designation": product.designation,
                "category": product.category,
                "current_stock": product.current_stock,
                "average_daily": round(average, 2),
                "days_left": math.floor(days_left),
                "unit_price": product.unit_price or 0,
                "estimated_cost": round((product.unit_price or 0) * product.current_stock, 2),
            })
    predictions.sort(key=lambda p: p["days_left"])
    return predictions[:FORECAST_LIMIT]


# ---- aggregates over a period ----

def _period_exits(db: Session, period: str, now: Optional[datetime]):
    since = (now or utcnow()) - timedelta(days=period_days(period))
    return _exits_since(db, since).all()


def _top_products(movements) -> List[dict]:
    totals: Dict[int, dict] = {}
    for movement in movements:
        row = totals.setdefault(movement.product_id, {
            "product_id": movement.product_id,
            "reference": movement.product_reference,
            "designation": movement.product_designation,
            "quantity": 0,
        })
        row["quantity"] += movement.quantity
    return sorted(totals.values(), key=lambda r: r["quantity"], reverse=True)[:TOP_LIMIT]


def top_consumed(db: Session, period: str = "month", now: Optional[datetime] = None) -> List[dict]:
    return _top_products(_period_exits(db, period, now))


def by_category(db: Session, period: str = "month", now: Optional[datetime] = None) -> List[dict]:
    """Consumed quantity and cost per category."""
    quantities = defaultdict(int)
    costs = defaultdict(float)
    for movement in _period_exits(db, period, now):
        product = movement.product
        category = (product.category if product else None) or UNCATEGORIZED
        quantities[category] += movement.quantity
        costs[category] += ((product.unit_price if product else 0) or 0) * movement.quantity
    return [
        {"category": name, "quantity": quantities[name], "cost": round(costs[name], 2)}
        for name in sorted(quantities)
    ]


def global_stats(db: Session, period: str = "month", now: Optional[datetime] = None) -> dict:
    days = period_days(period)
    since = (now or utcnow()) - timedelta(days=days)
    movements = (
        db.query(StockMovement)
        .filter(
            StockMovement.timestamp >= since,
            StockMovement.movement_type.in_([MovementType.EXIT.value, MovementType.ENTRY.value]),
        )
        .all()
    )
    exits = [m for m in movements if m.movement_type == MovementType.EXIT.value]
    entries = [m for m in movements if m.movement_type == MovementType.ENTRY.value]

    def _value(rows):
        return sum(((m.product.unit_price if m.product else 0) or 0) * m.quantity for m in rows)

    total_exits = sum(m.quantity for m in exits)
    exit_value = _value(exits)
    top = top_consumed(db, period, now)
    return {
        "period": period,
        "days": days,
        "total_exits": total_exits,
        "total_entries": sum(m.quantity for m in entries),
        "average_daily_consumption": round(total_exits / days, 2),
        "most_consumed": top[0]["reference"] if top else None,
        "products_with_exits": len({m.product_id for m in exits}),
        "total_exit_value": round(exit_value, 2),
        "total_entry_value": round(_value(entries), 2),
        "average_daily_value": round(exit_value / days, 2),
    }


def unusual_consumption(db: Session, now: Optional[datetime] = None) -> List[dict]:
    """Products whose last three days of exits run well above their usual daily rate."""
    now = now or utcnow()
    recent_start = now - timedelta(days=UNUSUAL_RECENT_DAYS)
    history_start = now - timedelta(days=UNUSUAL_HISTORY_DAYS)
    history_days = UNUSUAL_HISTORY_DAYS - UNUSUAL_RECENT_DAYS

    per_product = defaultdict(list)
    for movement in db.query(StockMovement).filter(StockMovement.movement_type == MovementType.EXIT.value):
        per_product[movement.product_id].append(movement)

    flagged = []
    for product_id, exits in per_product.items():
        if len(exits) < UNUSUAL_MIN_EXITS:
            continue
        recent = sum(m.quantity for m in exits if m.timestamp >= recent_start)
        history = sum(m.quantity for m in exits if history_start <= m.timestamp < recent_start)
        if history == 0:
            continue
        average_daily = history / history_days
        recent_daily = recent / UNUSUAL_RECENT_DAYS
        increase = (recent_daily - average_daily) / average_daily * 100
        if increase > UNUSUAL_INCREASE_PCT and recent_daily > 0:
            product = db.get(Product, product_id)
            if product is None or product.deleted_at is not None:
                continue
            flagged.append({
                "product_id": product.id,
                "reference": product.reference,
                "designation": product.designation,
                "average_daily": round(average_daily, 2),
                "recent_daily": round(recent_daily, 2),
                "percentage_increase": round(increase, 1),
            })
    return sorted(flagged, key=lambda f: f["percentage_increase"], reverse=True)


# ---- per user ----

def _last_months(now: datetime, count: int) -> List[str]:
    """``YYYY-MM`` keys of the last ``count`` calendar months, oldest first."""
    keys = []
    for back in range(count - 1, -1, -1):
        year, month = now.year, now.month - back
        while month <= 0:
            month += 12
            year -= 1
        keys.append(f"{year:04d}-{month:02d}")
    return keys


def user_statistics(db: Session, user_id: int, now: Optional[datetime] = None) -> dict:
    """Exits booked by one user: totals, top products, recent months and latest rows."""
    now = now or utcnow()
    exits = (
        db.query(StockMovement)
        .filter(
            StockMovement.user_id == user_id,
            StockMovement.movement_type == MovementType.EXIT.value,
        )
        .order_by(StockMovement.timestamp.desc(), StockMovement.id.desc())
        .all()
    )

    monthly = dict.fromkeys(_last_months(now, USER_MONTHS), 0)
    for movement in exits:
        key = movement.timestamp.strftime("%Y-%m")
        if key in monthly:
            monthly[key] += movement.quantity

    return {
        "user_id": user_id,
        "total_quantity": sum(m.quantity for m in exits),
        "total_exits": len(exits),
        "top_products": _top_products(exits),
        "monthly": [{"month": key, "quantity": qty} for key, qty in monthly.items()],
        "recent_exits": exits[:RECENT_LIMIT],
    }


# ---- dashboard ----

def dashboard_summary(db: Session) -> dict:
    products = db.query(Product).filter(Product.deleted_at.is_(None)).all()
    levels = [alerts.classify(p) for p in products]
    return {
        "total_products": len(products),
        "low_stock": levels.count(alerts.LOW),
        "critical_stock": levels.count(alerts.CRITICAL),
        "pending_requests": db.query(ExitRequest)
        .filter(ExitRequest.status == ExitRequestStatus.PENDING.value)
        .count(),
        "pending_orders": db.query(Order).filter(Order.status == OrderStatus.PENDING.value).count(),
        "average_delivery_days": round(orders.average_delivery_days(db), 1),
    }
