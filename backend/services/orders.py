# backend/services/orders.py
"""Purchase orders: pending -> received | cancelled."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from database import atomic
from models.order import Order, OrderStatus
from models.product import Product
from models.stock import MovementType
from models.users import User
from services import catalog, ledger
from services.errors import InvalidTransition, NotFound, ValidationFailed
from utils.dates import utcnow

logger = logging.getLogger(__name__)


def reception_reason(order_id: int) -> str:
    return f"Réception commande #{order_id}"


def get_order(db: Session, order_id: int, lock: bool = False) -> Order:
    query = db.query(Order).filter(Order.id == order_id)
    if lock:
        query = query.with_for_update()
    order = query.first()
    if not order:
        logger.warning("Order %s not found", order_id)
        raise NotFound("Order", order_id)
    return order


def list_orders(db: Session, status: Optional[str] = None):
    query = db.query(Order)
    if status:
        query = query.filter(Order.status == OrderStatus(status).value)
    return query.order_by(Order.ordered_at.desc(), Order.id.desc())


def create_order(
    db: Session, *, product_id: int, quantity: int, user: User, notes: Optional[str] = None
) -> Order:
    if quantity is None or quantity <= 0:
        raise ValidationFailed("Quantity must be greater than 0")
    product = catalog.get_product(db, product_id, include_deleted=False)
    with atomic(db):
        order = Order(
            product_id=product.id,
            product_reference=product.reference,
            product_designation=product.designation,
            quantity=quantity,
            ordered_by=user.id,
            ordered_by_name=user.name,
            ordered_at=utcnow(),
            status=OrderStatus.PENDING.value,
            notes=notes,
        )
        db.add(order)
    db.refresh(order)
    logger.info("Order %s created for %s x%s", order.id, product.reference, quantity)
    return order


def _check_pending(order: Order, target: str) -> None:
    if order.status != OrderStatus.PENDING.value:
        raise InvalidTransition("Order", order.status, target)


def receive_order(db: Session, order_id: int, user: User) -> Order:
    """Add the ordered quantity to stock and write the ``entry`` movement."""
    with atomic(db):
        order = get_order(db, order_id, lock=True)
        _check_pending(order, OrderStatus.RECEIVED.value)

        product = db.query(Product).filter(Product.id == order.product_id).with_for_update(of=Product).first()
        if not product:
            raise NotFound("Product", order.product_id)

        previous_stock = product.current_stock
        new_stock = previous_stock + order.quantity
        catalog.apply_product_update(db, product, {"current_stock": new_stock}, user, skip_movement=True)
        ledger.record_movement(
            db,
            product=product,
            movement_type=MovementType.ENTRY,
            quantity=order.quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            user=user,
            reason=reception_reason(order.id),
            notes=order.notes,
        )
        order.status = OrderStatus.RECEIVED.value
        order.received_at = utcnow()
    db.refresh(order)
    logger.info("Order %s received", order.id)
    return order


def cancel_order(db: Session, order_id: int) -> Order:
    with atomic(db):
        order = get_order(db, order_id, lock=True)
        _check_pending(order, OrderStatus.CANCELLED.value)
        order.status = OrderStatus.CANCELLED.value
    db.refresh(order)
    return order


def average_delivery_days(db: Session) -> float:
    """Mean of (received_at - ordered_at) in days over received orders; 0 when none."""
    rows = (
        db.query(Order.ordered_at, Order.received_at)
        .filter(Order.status == OrderStatus.RECEIVED.value, Order.received_at.isnot(None))
        .all()
    )
    if not rows:
        return 0.0
    total = sum((received - ordered).total_seconds() for ordered, received in rows)
    return total / len(rows) / 86400
