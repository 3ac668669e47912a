# backend/services/inventory.py
"""Physical inventory sessions.

Starting a session snapshots the system stock of every matching product.
Counts are recorded line by line, validated line by line, and applied to
stock only when the whole session is validated.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from database import atomic
from models.inventory import (
    CountStatus, InventoryCount, InventoryMode, InventorySession, InventorySessionStatus,
)
from models.product import Product
from models.reference import Category, StorageZone
from models.stock import MovementType
from models.users import User
from services import catalog, ledger
from services.errors import InvalidTransition, NotFound, ValidationFailed
from utils.dates import utcnow

logger = logging.getLogger(__name__)

OPEN = InventorySessionStatus.OPEN.value


def adjustment_reason(count: InventoryCount, difference: int) -> str:
    if count.notes:
        return f"Inventaire - {count.notes}"
    return "Inventaire - Surplus détecté" if difference > 0 else "Inventaire - Manquant détecté"


def get_session(db: Session, session_id: int) -> InventorySession:
    session = db.get(InventorySession, session_id)
    if not session:
        raise NotFound("Inventory session", session_id)
    return session


def _require_open(session: InventorySession, target: str) -> None:
    if session.status != OPEN:
        raise InvalidTransition("Inventory session", session.status, target)


def list_sessions(db: Session):
    return db.query(InventorySession).order_by(InventorySession.started_at.desc(), InventorySession.id.desc()).all()


def start_session(
    db: Session,
    user: User,
    mode: str = InventoryMode.FULL.value,
    category_id: Optional[int] = None,
    storage_zone_id: Optional[int] = None,
) -> InventorySession:
    mode = InventoryMode(mode).value
    query = db.query(Product).filter(Product.deleted_at.is_(None))
    if mode == InventoryMode.CATEGORY.value:
        if category_id is None:
            raise ValidationFailed("category_id is required for a category inventory")
        if not db.get(Category, category_id):
            raise ValidationFailed(f"Unknown category {category_id}")
        query = query.filter(Product.category_id == category_id)
    elif mode == InventoryMode.ZONE.value:
        if storage_zone_id is None:
            raise ValidationFailed("storage_zone_id is required for a zone inventory")
        if not db.get(StorageZone, storage_zone_id):
            raise ValidationFailed(f"Unknown storage zone {storage_zone_id}")
        query = query.filter(Product.storage_zone_id == storage_zone_id)

    with atomic(db):
        session = InventorySession(
            mode=mode,
            category_id=category_id if mode == InventoryMode.CATEGORY.value else None,
            storage_zone_id=storage_zone_id if mode == InventoryMode.ZONE.value else None,
            status=OPEN,
            started_by=user.id,
            started_at=utcnow(),
        )
        for product in query.order_by(Product.reference).all():
            session.counts.append(InventoryCount(product_id=product.id, system_stock=product.current_stock))
        db.add(session)
    db.refresh(session)
    logger.info("Inventory session %s started (%s, %d lines)", session.id, mode, len(session.counts))
    return session


def _get_count(db: Session, session: InventorySession, count_id: int) -> InventoryCount:
    count = (
        db.query(InventoryCount)
        .filter(InventoryCount.id == count_id, InventoryCount.session_id == session.id)
        .first()
    )
    if not count:
        raise NotFound("Inventory count", count_id)
    return count


def record_count(
    db: Session, session_id: int, count_id: int, counted_stock: int, notes: Optional[str] = None
) -> InventoryCount:
    if counted_stock is None or counted_stock < 0:
        raise ValidationFailed("Counted stock must be >= 0")
    session = get_session(db, session_id)
    _require_open(session, "counted")
    count = _get_count(db, session, count_id)
    with atomic(db):
        count.counted_stock = counted_stock
        count.notes = notes
        count.status = CountStatus.COUNTED.value
    db.refresh(count)
    return count


def validate_count(db: Session, session_id: int, count_id: int) -> InventoryCount:
    session = get_session(db, session_id)
    _require_open(session, "validated")
    count = _get_count(db, session, count_id)
    if count.status != CountStatus.COUNTED.value:
        raise InvalidTransition("Inventory count", count.status, CountStatus.VALIDATED.value)
    with atomic(db):
        count.status = CountStatus.VALIDATED.value
    db.refresh(count)
    return count


def summarize(session: InventorySession) -> dict:
    counts = session.counts
    counted = [c for c in counts if c.status != CountStatus.PENDING.value]
    return {
        "total": len(counts),
        "counted": len(counted),
        "validated": sum(1 for c in counts if c.status == CountStatus.VALIDATED.value),
        "with_differences": sum(1 for c in counted if c.difference != 0),
        "total_difference": sum(c.difference for c in counted),
    }


def validate_session(db: Session, session_id: int, user: User) -> InventorySession:
    """Apply every validated count to stock and close the session."""
    session = get_session(db, session_id)
    _require_open(session, InventorySessionStatus.VALIDATED.value)

    applied = 0
    with atomic(db):
        for count in session.counts:
            if count.status != CountStatus.VALIDATED.value:
                continue
            product = db.query(Product).filter(Product.id == count.product_id).with_for_update(of=Product).first()
            if not product:
                raise NotFound("Product", count.product_id)
            previous_stock = product.current_stock
            if count.counted_stock == previous_stock:
                continue
            difference = count.counted_stock - previous_stock
            catalog.apply_product_update(
                db, product, {"current_stock": count.counted_stock}, user, skip_movement=True
            )
            ledger.record_movement(
                db,
                product=product,
                movement_type=MovementType.ADJUSTMENT,
                quantity=abs(difference),
                previous_stock=previous_stock,
                new_stock=count.counted_stock,
                user=user,
                reason=adjustment_reason(count, difference),
                notes=count.notes,
            )
            applied += 1
        session.status = InventorySessionStatus.VALIDATED.value
        session.closed_at = utcnow()
    db.refresh(session)
    logger.info("Inventory session %s validated, %d products adjusted", session.id, applied)
    return session


def cancel_session(db: Session, session_id: int) -> InventorySession:
    session = get_session(db, session_id)
    _require_open(session, InventorySessionStatus.CANCELLED.value)
    with atomic(db):
        session.status = InventorySessionStatus.CANCELLED.value
        session.closed_at = utcnow()
    db.refresh(session)
    return session
