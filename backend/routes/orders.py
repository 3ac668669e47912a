# backend/routes/orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from services import orders as order_service
from utils.tokenJWT import manager_required
from utils.audit import write_log
from schemas.order import OrderResponse, OrdersPage, OrderCreatePayload, DeliveryTime
import schemas.order as order_schemas

router = APIRouter(prefix="/orders", tags=["Orders"])


def _log(db: Session, request: Request, user: User, action: str, order_id: int):
    write_log(db, user_id=user.id, action=action, resource="orders", status="SUCCESS",
              ip=request.client.host if request.client else None, meta={"order_id": order_id})


# List orders (manager only), newest first
@router.get("", response_model=OrdersPage)
def list_orders(
    status: Optional[order_schemas.OrderStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    query = order_service.list_orders(db, status=status)
    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/delivery-time", response_model=DeliveryTime)
def average_delivery_time(db: Session = Depends(get_db), current_user: User = Depends(manager_required)):
    return {"average_days": round(order_service.average_delivery_days(db), 2)}


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: Session = Depends(get_db), current_user: User = Depends(manager_required)):
    return order_service.get_order(db, order_id)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreatePayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    order = order_service.create_order(
        db, product_id=payload.product_id, quantity=payload.quantity, user=current_user, notes=payload.notes
    )
    _log(db, request, current_user, "ORDER_CREATE", order.id)
    return order


# Stock is incremented and an entry movement written in the same transaction
@router.post("/{order_id}/receive", response_model=OrderResponse)
def receive_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    order = order_service.receive_order(db, order_id, current_user)
    _log(db, request, current_user, "ORDER_RECEIVE", order.id)
    return order


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    order = order_service.cancel_order(db, order_id)
    _log(db, request, current_user, "ORDER_CANCEL", order.id)
    return order
