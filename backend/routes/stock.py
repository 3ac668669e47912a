# backend/routes/stock.py
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from config import settings
from database import get_db, atomic
from models.product import Product
from models.stock import MovementType
from models.users import User
from services import catalog, ledger
from services.errors import InsufficientStock, NotFound, ValidationFailed
from utils.tokenJWT import get_current_user, manager_required
from utils.audit import write_log
import schemas.stock as stock_schemas

router = APIRouter(tags=["Stock"])

DELIVERY_REASON = "Livraison"
DIRECT_EXIT_REASON = "Sortie directe depuis le catalogue"


def _locked_product(db: Session, product_id: int) -> Product:
    product = (
        db.query(Product)
        .filter(Product.id == product_id, Product.deleted_at.is_(None))
        .with_for_update(of=Product)
        .first()
    )
    if not product:
        raise NotFound("Product", product_id)
    return product


@router.get("/", response_model=stock_schemas.StockMovementPage)
def list_movements(
    q: Optional[str] = Query(None),
    product_id: Optional[int] = Query(None),
    type: Optional[stock_schemas.StockMovementType] = Query(None),
    user_id: Optional[int] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = ledger.query_movements(
        db,
        product_id=product_id,
        movement_type=type,
        user_id=user_id,
        date_from=date_from,
        date_to=date_to,
        search=q,
    )
    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


# Default history view: the trailing window only
@router.get("/recent", response_model=List[stock_schemas.StockMovementResponse])
def recent_movements(
    days: Optional[int] = Query(None, ge=1, le=3650),
    type: Optional[stock_schemas.StockMovementType] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ledger.recent_movements(db, days or settings.HISTORY_WINDOW_DAYS, movement_type=type).all()


# Ledger rows survive soft deletion of the product
@router.get("/products/{product_id}", response_model=List[stock_schemas.StockMovementResponse])
def product_movements(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    catalog.get_product(db, product_id, include_deleted=True)
    return ledger.query_movements(db, product_id=product_id).all()


@router.post("/movements", response_model=stock_schemas.StockMovementResponse, status_code=status.HTTP_201_CREATED)
def record_movement(
    payload: stock_schemas.StockMovementCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    with atomic(db):
        movement = ledger.record_for_product_id(
            db,
            payload.product_id,
            movement_type=MovementType(payload.movement_type),
            quantity=payload.quantity,
            previous_stock=payload.previous_stock,
            new_stock=payload.new_stock,
            user=current_user,
            reason=payload.reason,
            notes=payload.notes,
        )
    db.refresh(movement)
    write_log(db, user_id=current_user.id, action="STOCK_MOVEMENT", resource="stock", status="SUCCESS",
              ip=request.client.host, meta={"id": movement.id})
    return movement


@router.post("/adjust", response_model=Optional[stock_schemas.StockMovementResponse])
def adjust_stock(
    payload: stock_schemas.StockAdjust,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    with atomic(db):
        product = _locked_product(db, payload.product_id)
        previous_stock = product.current_stock
        if payload.new_stock == previous_stock:
            return None
        catalog.apply_product_update(db, product, {"current_stock": payload.new_stock}, current_user, skip_movement=True)
        movement = ledger.record_movement(
            db,
            product=product,
            movement_type=MovementType.ADJUSTMENT,
            quantity=abs(payload.new_stock - previous_stock),
            previous_stock=previous_stock,
            new_stock=payload.new_stock,
            user=current_user,
            reason=payload.reason or catalog.MANUAL_ADJUSTMENT_REASON,
            notes=payload.notes,
        )
    db.refresh(movement)
    write_log(db, user_id=current_user.id, action="STOCK_ADJUSTMENT", resource="stock", status="SUCCESS",
              ip=request.client.host, meta={"id": movement.id})
    return movement


@router.post("/delivery", response_model=List[stock_schemas.StockMovementResponse])
def receive_delivery(
    payload: stock_schemas.DeliveryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    if not payload.items:
        raise ValidationFailed("No products in delivery")

    movements = []
    # The whole delivery is booked or none of it
    with atomic(db):
        for item in payload.items:
            product = _locked_product(db, item.product_id)
            previous_stock = product.current_stock
            new_stock = previous_stock + item.quantity
            catalog.apply_product_update(db, product, {"current_stock": new_stock}, current_user, skip_movement=True)
            movements.append(ledger.record_movement(
                db,
                product=product,
                movement_type=MovementType.ENTRY,
                quantity=item.quantity,
                previous_stock=previous_stock,
                new_stock=new_stock,
                user=current_user,
                reason=payload.reason or DELIVERY_REASON,
                notes=payload.notes,
            ))
    for m in movements:
        db.refresh(m)
    write_log(db, user_id=current_user.id, action="STOCK_DELIVERY", resource="stock", status="SUCCESS",
              ip=request.client.host, meta={"count": len(movements)})
    return movements


@router.post("/direct-exit", response_model=stock_schemas.StockMovementResponse)
def direct_exit(
    payload: stock_schemas.DirectExit,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with atomic(db):
        product = _locked_product(db, payload.product_id)
        previous_stock = product.current_stock
        new_stock = previous_stock - payload.quantity
        # Taking from the shelf is bounded by what is on it
        if new_stock < 0:
            raise InsufficientStock(product.reference, previous_stock, payload.quantity)
        catalog.apply_product_update(db, product, {"current_stock": new_stock}, current_user, skip_movement=True)
        movement = ledger.record_movement(
            db,
            product=product,
            movement_type=MovementType.EXIT,
            quantity=payload.quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            user=current_user,
            reason=payload.reason or DIRECT_EXIT_REASON,
            notes=payload.notes,
        )
    db.refresh(movement)
    write_log(db, user_id=current_user.id, action="STOCK_DIRECT_EXIT", resource="stock", status="SUCCESS",
              ip=request.client.host, meta={"id": movement.id})
    return movement
