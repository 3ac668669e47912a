# backend/services/ledger.py
"""Append-only stock ledger.

Rows are written with ``record_movement`` and never changed afterwards (the
model refuses updates and deletes). Writers only flush; committing is left to
the workflow operation that owns the transaction.
"""
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from models.product import Product
from models.stock import StockMovement, MovementType
from models.users import User
from services.errors import NotFound, ValidationFailed
from utils.dates import utcnow


def movement_type_for_delta(delta: int) -> MovementType:
    if delta > 0:
        return MovementType.ENTRY
    if delta < 0:
        return MovementType.EXIT
    return MovementType.ADJUSTMENT


def record_movement(
    db: Session,
    *,
    product: Product,
    movement_type: MovementType,
    quantity: int,
    previous_stock: int,
    new_stock: int,
    user: Optional[User],
    reason: str,
    notes: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> StockMovement:
    if product is None or product.id is None:
        raise ValidationFailed("A stock movement needs an existing product")
    if quantity < 0:
        raise ValidationFailed("Movement quantity must not be negative")

    movement = StockMovement(
        product_id=product.id,
        product_reference=product.reference,
        product_designation=product.designation,
        movement_type=MovementType(movement_type).value,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        user_id=user.id if user else None,
        user_name=user.name if user else "System",
        reason=reason,
        notes=notes,
        timestamp=timestamp or utcnow(),
    )
    db.add(movement)
    db.flush()
    return movement


def record_for_product_id(db: Session, product_id: int, **fields) -> StockMovement:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFound("Product", product_id)
    return record_movement(db, product=product, **fields)


def query_movements(
    db: Session,
    *,
    product_id: Optional[int] = None,
    movement_type: Optional[str] = None,
    user_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
):
    """Filtered ledger query, newest first."""
    query = db.query(StockMovement)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if movement_type:
        query = query.filter(StockMovement.movement_type == MovementType(movement_type).value)
    if user_id is not None:
        query = query.filter(StockMovement.user_id == user_id)
    if date_from is not None:
        query = query.filter(StockMovement.timestamp >= date_from)
    if date_to is not None:
        query = query.filter(StockMovement.timestamp <= date_to)
    if search:
        like = f"%{search}%"
        query = query.filter(
            (StockMovement.product_reference.ilike(like))
            | (StockMovement.product_designation.ilike(like))
        )
    return query.order_by(StockMovement.timestamp.desc(), StockMovement.id.desc())


def recent_movements(db: Session, days: int, now: Optional[datetime] = None, **filters):
    since = (now or utcnow()) - timedelta(days=days)
    return query_movements(db, date_from=since, **filters)
