# backend/routes/cart.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from models.users import User
from models.cart import Cart
from services import cart as cart_service
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartItemOut, CartSubmit
from schemas.exit_request import ExitRequestOut

router = APIRouter(prefix="/cart", tags=["Cart"])

def _ensure_user(user: User):
    # Validate user authentication
    if not user or not user.id:
        raise HTTPException(status_code=401, detail="Unauthorized")

def _cart_to_out(cart: Cart) -> CartOut:
    items_out = []
    for it in cart.items:
        product = it.product
        items_out.append(CartItemOut(
            id=it.id,
            product_id=it.product_id,
            reference=product.reference if product else "",
            designation=product.designation if product else "",
            quantity=it.quantity,
            available=product.current_stock if product else 0,
            location=product.location if product else "",
        ))
    return CartOut(items=items_out, total_quantity=sum(i.quantity for i in items_out))

@router.get("", response_model=CartOut)
def get_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _ensure_user(current_user)
    return _cart_to_out(cart_service.get_open_cart(db, current_user.id))

@router.post("/add", response_model=CartOut, status_code=status.HTTP_200_OK)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _ensure_user(current_user)
    cart = cart_service.add_item(db, current_user, payload.product_id, payload.quantity)
    out = _cart_to_out(cart)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        status="SUCCESS",
        ip=request.client.host,
        meta={"product_id": payload.product_id, "quantity": payload.quantity, "cart_items": len(out.items)},
    )
    return out

@router.put("/items/{item_id}", response_model=CartOut)
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _ensure_user(current_user)
    cart = cart_service.update_item(db, current_user, item_id, payload.quantity)
    out = _cart_to_out(cart)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        status="SUCCESS",
        ip=request.client.host,
        meta={"item_id": item_id, "quantity": payload.quantity},
    )
    return out

@router.delete("/items/{item_id}", response_model=CartOut)
def delete_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _ensure_user(current_user)
    cart = cart_service.remove_item(db, current_user, item_id)
    out = _cart_to_out(cart)
    write_log(
        db,
        user_id=current_user.id,
        action="CART_DELETE",
        resource="cart",
        status="SUCCESS",
        ip=request.client.host,
        meta={"item_id": item_id, "cart_items": len(out.items)},
    )
    return out

@router.delete("", response_model=CartOut)
def clear_cart(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _ensure_user(current_user)
    return _cart_to_out(cart_service.clear(db, current_user))

# Turn the cart into one basket of pending exit requests
@router.post("/submit", response_model=List[ExitRequestOut], status_code=status.HTTP_201_CREATED)
def submit_cart(
    payload: CartSubmit,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _ensure_user(current_user)
    created = cart_service.submit(db, current_user, reason=payload.reason, notes=payload.notes)
    out = [ExitRequestOut.model_validate(r) for r in created]
    write_log(
        db,
        user_id=current_user.id,
        action="CART_SUBMIT",
        resource="cart",
        status="SUCCESS",
        ip=request.client.host,
        meta={"requests": [r.id for r in out]},
    )
    return out
