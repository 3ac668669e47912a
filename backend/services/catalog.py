# backend/services/catalog.py
"""Product catalogue operations.

``create_product``, ``update_product`` and ``soft_delete_product`` are complete
units of work and commit. ``apply_product_update`` only flushes so the exit,
order and inventory workflows can combine it with their own ledger rows in one
transaction.
"""
import logging
import re
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import atomic
from models.product import Product
from models.reference import Category, Unit, StorageZone
from models.stock import MovementType, StockMovement
from models.users import User
from services import ledger
from services.errors import Conflict, NotFound, ValidationFailed
from utils.dates import utcnow

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "RF"
CREATION_REASON = "Création du produit"
MANUAL_ADJUSTMENT_REASON = "Ajustement manuel du stock"

# Fields a patch may touch
UPDATABLE_FIELDS = {
    "reference", "customer_reference", "designation",
    "category_id", "unit_id", "storage_zone_id", "shelf", "position",
    "current_stock", "min_stock", "max_stock", "unit_price", "photo",
    "supplier1", "order_link1", "supplier2", "order_link2", "supplier3", "order_link3",
}


def normalize_reference(reference: Optional[str]) -> Optional[str]:
    if reference is None:
        return None
    ref = reference.strip().upper()
    return ref or None


def get_product(db: Session, product_id: int, include_deleted: bool = True) -> Product:
    query = db.query(Product).filter(Product.id == product_id)
    if not include_deleted:
        query = query.filter(Product.deleted_at.is_(None))
    product = query.first()
    if not product:
        logger.warning("Product %s not found", product_id)
        raise NotFound("Product", product_id)
    return product


def _check_references(db: Session, category_id=None, unit_id=None, storage_zone_id=None):
    if category_id is not None and not db.get(Category, category_id):
        raise ValidationFailed(f"Unknown category {category_id}")
    if unit_id is not None and not db.get(Unit, unit_id):
        raise ValidationFailed(f"Unknown unit {unit_id}")
    if storage_zone_id is not None and not db.get(StorageZone, storage_zone_id):
        raise ValidationFailed(f"Unknown storage zone {storage_zone_id}")


def _check_thresholds(current_stock, min_stock, max_stock):
    for name, value in (("min_stock", min_stock), ("max_stock", max_stock)):
        if value is not None and value < 0:
            raise ValidationFailed(f"{name} must be >= 0")
    if min_stock is not None and max_stock is not None and min_stock > max_stock:
        raise ValidationFailed("min_stock must not exceed max_stock")


def _check_reference_free(db: Session, reference: str, exclude_id: Optional[int] = None):
    query = db.query(Product).filter(Product.reference == reference)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise Conflict(f"Product reference {reference} already exists")


def next_reference(db: Session) -> str:
    highest = 0
    pattern = re.compile(rf"^{REFERENCE_PREFIX}(\d+)$")
    for (ref,) in db.query(Product.reference).filter(Product.reference.like(f"{REFERENCE_PREFIX}%")):
        match = pattern.match(ref)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{REFERENCE_PREFIX}{highest + 1:05d}"


def create_product(db: Session, data: dict, user: User) -> Product:
    """Create a product and its ``initial`` ledger row in one transaction."""
    designation = (data.get("designation") or "").strip()
    if not designation:
        raise ValidationFailed("Designation is required")

    reference = normalize_reference(data.get("reference")) or next_reference(db)
    current_stock = data.get("current_stock", 0) or 0
    if current_stock < 0:
        raise ValidationFailed("current_stock must be >= 0")
    _check_thresholds(current_stock, data.get("min_stock", 0), data.get("max_stock", 0))
    if data.get("category_id") is None or data.get("unit_id") is None:
        raise ValidationFailed("Category and unit are required")
    _check_references(db, data.get("category_id"), data.get("unit_id"), data.get("storage_zone_id"))

    fields = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}
    fields.update(reference=reference, designation=designation, current_stock=current_stock)

    with atomic(db):
        _check_reference_free(db, reference)
        product = Product(**fields)
        db.add(product)
        db.flush()
        ledger.record_movement(
            db,
            product=product,
            movement_type=MovementType.INITIAL,
            quantity=current_stock,
            previous_stock=0,
            new_stock=current_stock,
            user=user,
            reason=CREATION_REASON,
        )
    db.refresh(product)
    logger.info("Product %s created with stock %s", product.reference, current_stock)
    return product


def apply_product_update(
    db: Session,
    product: Product,
    changes: dict,
    user: Optional[User],
    skip_movement: bool = False,
    reason: str = MANUAL_ADJUSTMENT_REASON,
    notes: Optional[str] = None,
) -> Optional[StockMovement]:
    """Patch ``product`` with the given fields and flush.

    When ``current_stock`` changes and ``skip_movement`` is false, one
    ``entry``/``exit`` movement is written with the pre-call stock as
    ``previous_stock``. Returns that movement, if any.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationFailed(f"Unknown product fields: {', '.join(sorted(unknown))}")

    if "designation" in changes and not (changes["designation"] or "").strip():
        raise ValidationFailed("Designation is required")
    if "reference" in changes:
        changes = dict(changes, reference=normalize_reference(changes["reference"]))
        if not changes["reference"]:
            raise ValidationFailed("Reference is required")
        _check_reference_free(db, changes["reference"], exclude_id=product.id)
    for key in ("category_id", "unit_id", "current_stock", "min_stock", "max_stock"):
        if key in changes and changes[key] is None:
            raise ValidationFailed(f"{key} cannot be cleared")
    _check_references(
        db, changes.get("category_id"), changes.get("unit_id"), changes.get("storage_zone_id")
    )
    _check_thresholds(
        changes.get("current_stock", product.current_stock),
        changes.get("min_stock", product.min_stock),
        changes.get("max_stock", product.max_stock),
    )

    previous_stock = product.current_stock
    for key, value in changes.items():
        setattr(product, key, value)
    product.updated_at = utcnow()
    db.flush()

    new_stock = product.current_stock
    if skip_movement or "current_stock" not in changes or new_stock == previous_stock:
        return None

    delta = new_stock - previous_stock
    return ledger.record_movement(
        db,
        product=product,
        movement_type=ledger.movement_type_for_delta(delta),
        quantity=abs(delta),
        previous_stock=previous_stock,
        new_stock=new_stock,
        user=user,
        reason=reason,
        notes=notes,
    )


def update_product(
    db: Session, product_id: int, changes: dict, user: User, skip_movement: bool = False
) -> Product:
    product = get_product(db, product_id, include_deleted=False)
    if "current_stock" in changes and changes["current_stock"] is not None and changes["current_stock"] < 0:
        raise ValidationFailed("current_stock must be >= 0")
    with atomic(db):
        apply_product_update(db, product, changes, user, skip_movement=skip_movement)
    db.refresh(product)
    return product


def soft_delete_product(db: Session, product_id: int) -> Product:
    product = get_product(db, product_id, include_deleted=False)
    with atomic(db):
        product.deleted_at = utcnow()
    db.refresh(product)
    logger.info("Product %s soft-deleted", product.reference)
    return product


def list_products(
    db: Session,
    *,
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    storage_zone_id: Optional[int] = None,
    low_stock_only: bool = False,
    include_deleted: bool = False,
):
    query = db.query(Product)
    if not include_deleted:
        query = query.filter(Product.deleted_at.is_(None))
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Product.reference.ilike(like), Product.designation.ilike(like)))
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if storage_zone_id is not None:
        query = query.filter(Product.storage_zone_id == storage_zone_id)
    if low_stock_only:
        query = query.filter(Product.current_stock <= Product.min_stock)
    return query
