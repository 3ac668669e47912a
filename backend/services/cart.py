# backend/services/cart.py
"""Per-user exit cart; submitting turns it into one basket of exit requests."""
import logging

from sqlalchemy.orm import Session

from database import atomic
from models.cart import Cart, CartItem
from models.users import User
from services import catalog, exit_requests
from services.errors import InsufficientStock, NotFound, ValidationFailed
from utils.dates import utcnow

logger = logging.getLogger(__name__)


def get_open_cart(db: Session, user_id: int) -> Cart:
    # Retrieve active cart or create a new one
    cart = db.query(Cart).filter(Cart.user_id == user_id, Cart.status == "open").first()
    if not cart:
        cart = Cart(user_id=user_id, status="open")
        db.add(cart)
        db.commit()
        db.refresh(cart)
    return cart


def _check_quantity(product, quantity: int) -> None:
    if quantity is None or quantity <= 0:
        raise ValidationFailed("Quantity must be greater than 0")
    if quantity > product.current_stock:
        raise InsufficientStock(product.reference, product.current_stock, quantity)


def add_item(db: Session, user: User, product_id: int, quantity: int) -> Cart:
    cart = get_open_cart(db, user.id)
    product = catalog.get_product(db, product_id, include_deleted=False)

    item = db.query(CartItem).filter(CartItem.cart_id == cart.id, CartItem.product_id == product.id).first()
    if quantity is None or quantity <= 0:
        raise ValidationFailed("Quantity must be greater than 0")
    _check_quantity(product, quantity + (item.quantity if item else 0))

    with atomic(db):
        if item:
            item.quantity += quantity
        else:
            db.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
    db.refresh(cart)
    return cart


def _get_item(db: Session, cart: Cart, item_id: int) -> CartItem:
    item = db.query(CartItem).filter(CartItem.id == item_id, CartItem.cart_id == cart.id).first()
    if not item:
        raise NotFound("Cart item", item_id)
    return item


def update_item(db: Session, user: User, item_id: int, quantity: int) -> Cart:
    cart = get_open_cart(db, user.id)
    item = _get_item(db, cart, item_id)
    product = catalog.get_product(db, item.product_id, include_deleted=False)
    _check_quantity(product, quantity)
    with atomic(db):
        item.quantity = quantity
    db.refresh(cart)
    return cart


def remove_item(db: Session, user: User, item_id: int) -> Cart:
    cart = get_open_cart(db, user.id)
    item = _get_item(db, cart, item_id)
    with atomic(db):
        db.delete(item)
    db.refresh(cart)
    return cart


def clear(db: Session, user: User) -> Cart:
    cart = get_open_cart(db, user.id)
    with atomic(db):
        for item in list(cart.items):
            db.delete(item)
    db.refresh(cart)
    return cart


def submit(db: Session, user: User, reason=None, notes=None) -> list:
    """Create one pending exit request per line, all stamped with the same instant."""
    cart = get_open_cart(db, user.id)
    if not cart.items:
        raise ValidationFailed("Cart is empty")

    # Products deleted from the catalogue since they were added
    stale = [item.product.reference for item in cart.items if item.product.is_deleted]
    if stale:
        raise ValidationFailed(f"No longer available, remove from cart: {', '.join(stale)}")

    requested_at = utcnow()
    with atomic(db):
        created = [
            exit_requests.build_request(
                db,
                product_id=item.product_id,
                quantity=item.quantity,
                user=user,
                reason=reason,
                notes=notes,
                requested_at=requested_at,
            )
            for item in cart.items
        ]
        cart.status = "submitted"
    for request in created:
        db.refresh(request)
    logger.info("Cart %s submitted by %s as %d exit requests", cart.id, user.username, len(created))
    return created
