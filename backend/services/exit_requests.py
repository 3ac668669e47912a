# backend/services/exit_requests.py
"""Exit request workflow.

States::

    pending -> approved | rejected | awaiting_reception

Every single-request transition is one transaction: the stock change, its
ledger row, the pick-list line and the status change commit together or not
at all. Basket operations loop over the pending members one transaction at a
time and report which members failed.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from database import atomic
from models.exit_request import ExitRequest, ExitRequestStatus, PendingExit
from models.product import Product
from models.stock import MovementType
from models.users import User
from services import catalog, ledger
from services.errors import (
    Forbidden, InsufficientStock, InvalidTransition, NotFound, StockAppError, ValidationFailed,
)
from utils.dates import utcnow, truncate_to_minute

logger = logging.getLogger(__name__)

PENDING = ExitRequestStatus.PENDING.value

ALLOWED_TRANSITIONS = {
    ExitRequestStatus.PENDING.value: {
        ExitRequestStatus.APPROVED.value,
        ExitRequestStatus.REJECTED.value,
        ExitRequestStatus.AWAITING_RECEPTION.value,
    },
}


def is_discrepancy(request: ExitRequest, marker: Optional[str] = None) -> bool:
    marker = settings.DISCREPANCY_MARKER if marker is None else marker
    return bool(request.reason) and request.reason.startswith(marker)


def _check_transition(request: ExitRequest, target: str) -> None:
    if target not in ALLOWED_TRANSITIONS.get(request.status, set()):
        raise InvalidTransition("Exit request", request.status, target)


def get_request(db: Session, request_id: int, lock: bool = False) -> ExitRequest:
    query = db.query(ExitRequest).filter(ExitRequest.id == request_id)
    if lock:
        query = query.with_for_update()
    request = query.first()
    if not request:
        logger.warning("Exit request %s not found", request_id)
        raise NotFound("Exit request", request_id)
    return request


def list_requests(db: Session, status: Optional[str] = None, requested_by: Optional[int] = None):
    query = db.query(ExitRequest)
    if status:
        query = query.filter(ExitRequest.status == ExitRequestStatus(status).value)
    if requested_by is not None:
        query = query.filter(ExitRequest.requested_by == requested_by)
    return query.order_by(ExitRequest.requested_at.desc(), ExitRequest.id.desc())


# ---- creation ----

def build_request(
    db: Session,
    *,
    product_id: int,
    quantity: int,
    user: User,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    requested_at: Optional[datetime] = None,
) -> ExitRequest:
    """Add a pending request to the session (flush only). Stock is not checked here."""
    if user is None or user.id is None:
        raise Forbidden("An authenticated requester is required")
    if quantity is None or quantity <= 0:
        raise ValidationFailed("Quantity must be greater than 0")
    product = catalog.get_product(db, product_id, include_deleted=False)

    request = ExitRequest(
        product_id=product.id,
        product_reference=product.reference,
        product_designation=product.designation,
        product_photo=product.photo,
        quantity=quantity,
        requested_by=user.id,
        requested_by_name=user.name,
        requested_at=requested_at or utcnow(),
        status=PENDING,
        reason=reason,
        notes=notes,
    )
    db.add(request)
    db.flush()
    return request


def create_request(db: Session, **fields) -> ExitRequest:
    with atomic(db):
        request = build_request(db, **fields)
    db.refresh(request)
    return request


# ---- single-request transitions ----

def _approve_in_session(db: Session, request: ExitRequest, manager: User, allow_negative: bool) -> None:
    _check_transition(request, ExitRequestStatus.APPROVED.value)

    product = db.query(Product).filter(Product.id == request.product_id).with_for_update(of=Product).first()
    if not product:
        logger.error("Approval of request %s failed: product %s missing", request.id, request.product_id)
        raise NotFound("Product", request.product_id)

    previous_stock = product.current_stock
    if is_discrepancy(request):
        new_stock = request.quantity
        movement_type = MovementType.ADJUSTMENT
        reason = f"Écart validé - {request.reason}"
    else:
        new_stock = previous_stock - request.quantity
        movement_type = MovementType.EXIT
        reason = f"Demande approuvée - {request.reason or 'Sortie de stock'}"
        if new_stock < 0 and not allow_negative:
            raise InsufficientStock(product.reference, previous_stock, request.quantity)
    applied = abs(previous_stock - new_stock)

    catalog.apply_product_update(db, product, {"current_stock": new_stock}, manager, skip_movement=True)
    ledger.record_movement(
        db,
        product=product,
        movement_type=movement_type,
        quantity=applied,
        previous_stock=previous_stock,
        new_stock=new_stock,
        user=manager,
        reason=reason,
        notes=request.notes,
    )
    db.add(PendingExit(
        exit_request_id=request.id,
        product_id=product.id,
        product_reference=product.reference,
        product_designation=product.designation,
        storage_zone=product.storage_zone,
        shelf=product.shelf,
        position=product.position,
        quantity=applied,
        requested_by=request.requested_by_name,
    ))

    request.status = ExitRequestStatus.APPROVED.value
    request.approved_by = manager.username
    request.approved_at = utcnow()
    db.flush()


def approve_request(
    db: Session, request_id: int, manager: User, allow_negative: Optional[bool] = None
) -> ExitRequest:
    allow_negative = settings.ALLOW_NEGATIVE_STOCK if allow_negative is None else allow_negative
    with atomic(db):
        request = get_request(db, request_id, lock=True)
        _approve_in_session(db, request, manager, allow_negative)
    db.refresh(request)
    logger.info("Exit request %s approved by %s", request.id, manager.username)
    return request


def _reject_in_session(db: Session, request: ExitRequest, manager: User, reason: str) -> None:
    _check_transition(request, ExitRequestStatus.REJECTED.value)
    request.status = ExitRequestStatus.REJECTED.value
    request.approved_by = manager.username
    request.approved_at = utcnow()
    request.notes = reason
    db.flush()


def reject_request(db: Session, request_id: int, manager: User, reason: str) -> ExitRequest:
    if not reason or not reason.strip():
        raise ValidationFailed("A rejection reason is required")
    with atomic(db):
        request = get_request(db, request_id, lock=True)
        _reject_in_session(db, request, manager, reason.strip())
    db.refresh(request)
    logger.info("Exit request %s rejected by %s", request.id, manager.username)
    return request


def mark_awaiting_reception(db: Session, request_id: int, manager: User) -> ExitRequest:
    with atomic(db):
        request = get_request(db, request_id, lock=True)
        _check_transition(request, ExitRequestStatus.AWAITING_RECEPTION.value)
        request.status = ExitRequestStatus.AWAITING_RECEPTION.value
    db.refresh(request)
    return request


def _check_can_cancel(request: ExitRequest, user: User) -> None:
    if request.status != PENDING:
        raise InvalidTransition("Exit request", request.status, "cancelled")
    if request.requested_by != user.id and (user.role or "").lower() != "manager":
        raise Forbidden("Only the requester or a manager can cancel this request")


def cancel_request(db: Session, request_id: int, user: User) -> None:
    """Withdraw a pending request; the row is removed."""
    with atomic(db):
        request = get_request(db, request_id, lock=True)
        _check_can_cancel(request, user)
        db.delete(request)


# ---- baskets ----

@dataclass
class BasketOutcome:
    processed: List[int] = field(default_factory=list)
    failed: List[Tuple[int, str]] = field(default_factory=list)


def basket_members(db: Session, requested_by: int, minute: datetime, pending_only: bool = True) -> List[ExitRequest]:
    start = truncate_to_minute(minute)
    query = db.query(ExitRequest).filter(
        ExitRequest.requested_by == requested_by,
        ExitRequest.requested_at >= start,
        ExitRequest.requested_at < start + timedelta(minutes=1),
    )
    if pending_only:
        query = query.filter(ExitRequest.status == PENDING)
    return query.order_by(ExitRequest.requested_at, ExitRequest.id).all()


def _run_for_basket(db: Session, requested_by: int, minute: datetime, step) -> BasketOutcome:
    outcome = BasketOutcome()
    member_ids = [r.id for r in basket_members(db, requested_by, minute)]
    if not member_ids:
        raise NotFound("Basket", f"{requested_by}@{truncate_to_minute(minute).isoformat()}")

    # One transaction per member; earlier members stay processed if a later one fails
    for request_id in member_ids:
        try:
            with atomic(db):
                request = get_request(db, request_id, lock=True)
                step(request)
            outcome.processed.append(request_id)
        except StockAppError as e:
            logger.error("Basket step failed for request %s: %s", request_id, e.detail)
            outcome.failed.append((request_id, e.detail))
        except SQLAlchemyError as e:
            # atomic() has rolled the member back already
            logger.exception("Database error in basket step for request %s", request_id)
            outcome.failed.append((request_id, f"Database error: {e.__class__.__name__}"))
    return outcome


def approve_basket(
    db: Session, requested_by: int, minute: datetime, manager: User, allow_negative: Optional[bool] = None
) -> BasketOutcome:
    allow_negative = settings.ALLOW_NEGATIVE_STOCK if allow_negative is None else allow_negative
    return _run_for_basket(
        db, requested_by, minute,
        lambda request: _approve_in_session(db, request, manager, allow_negative),
    )


def reject_basket(db: Session, requested_by: int, minute: datetime, manager: User, reason: str) -> BasketOutcome:
    if not reason or not reason.strip():
        raise ValidationFailed("A rejection reason is required")
    return _run_for_basket(
        db, requested_by, minute,
        lambda request: _reject_in_session(db, request, manager, reason.strip()),
    )


def cancel_basket(db: Session, requested_by: int, minute: datetime, user: User) -> BasketOutcome:
    def _cancel(request):
        _check_can_cancel(request, user)
        db.delete(request)
        db.flush()

    return _run_for_basket(db, requested_by, minute, _cancel)


# ---- pick list ----

def list_pending_exits(db: Session):
    return db.query(PendingExit).order_by(PendingExit.added_at.desc(), PendingExit.id.desc()).all()


def remove_pending_exit(db: Session, pending_exit_id: int) -> None:
    item = db.get(PendingExit, pending_exit_id)
    if not item:
        raise NotFound("Pending exit", pending_exit_id)
    with atomic(db):
        db.delete(item)
