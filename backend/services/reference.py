# backend/services/reference.py
"""Categories, units and storage zones.

Products point at these rows by id and read the name through a relationship,
so renaming a row is immediately visible on every product without touching
the product rows themselves.
"""
import logging

from sqlalchemy.orm import Session

from database import atomic
from models.inventory import InventorySession
from models.product import Product
from models.reference import Category, Unit, StorageZone
from services.errors import Conflict, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

# model -> columns of other tables referencing it
_REFERENCING_COLUMNS = {
    Category: (Product.category_id, InventorySession.category_id),
    Unit: (Product.unit_id,),
    StorageZone: (Product.storage_zone_id, InventorySession.storage_zone_id),
}


def _get(db: Session, model, item_id: int):
    item = db.get(model, item_id)
    if not item:
        raise NotFound(model.__name__, item_id)
    return item


def _check_name_free(db: Session, model, name: str, exclude_id=None):
    query = db.query(model).filter(model.name == name)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise Conflict(f"{model.__name__} '{name}' already exists")


def list_items(db: Session, model):
    return db.query(model).order_by(model.name).all()


def create_item(db: Session, model, data: dict):
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationFailed("Name is required")
    with atomic(db):
        _check_name_free(db, model, name)
        if model is Unit and data.get("is_default"):
            db.query(Unit).update({Unit.is_default: False})
        item = model(**dict(data, name=name))
        db.add(item)
    db.refresh(item)
    return item


def update_item(db: Session, model, item_id: int, changes: dict):
    item = _get(db, model, item_id)
    old_name = item.name
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationFailed("Name is required")
        changes = dict(changes, name=name)
    with atomic(db):
        if "name" in changes:
            _check_name_free(db, model, changes["name"], exclude_id=item.id)
        if model is Unit and changes.get("is_default"):
            db.query(Unit).filter(Unit.id != item.id).update({Unit.is_default: False})
        for key, value in changes.items():
            setattr(item, key, value)
    db.refresh(item)
    if item.name != old_name:
        logger.info("%s renamed from '%s' to '%s'", model.__name__, old_name, item.name)
    return item


def delete_item(db: Session, model, item_id: int) -> None:
    item = _get(db, model, item_id)
    # Soft-deleted products and closed sessions still point at the row
    for column in _REFERENCING_COLUMNS[model]:
        if db.query(column).filter(column == item.id).first():
            raise Conflict(f"{model.__name__} '{item.name}' is used by {column.class_.__tablename__}")
    with atomic(db):
        db.delete(item)
