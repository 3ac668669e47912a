# backend/routes/exit_requests.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from services import exit_requests as workflow
from services.baskets import group_into_baskets
from services.errors import NotFound
from utils.tokenJWT import get_current_user, manager_required, is_manager
from utils.audit import write_log
import schemas.exit_request as er_schemas

router = APIRouter(prefix="/exit-requests", tags=["Exit requests"])


def _log(db: Session, request: Request, user: User, action: str, meta: dict):
    write_log(db, user_id=user.id, action=action, resource="exit_requests", status="SUCCESS",
              ip=request.client.host if request.client else None, meta=meta)


def _outcome(outcome: workflow.BasketOutcome) -> er_schemas.BasketResult:
    return er_schemas.BasketResult(processed=outcome.processed, failed=outcome.failed)


# =========================
# CREATE / LIST
# =========================
@router.post("", response_model=er_schemas.ExitRequestOut, status_code=status.HTTP_201_CREATED)
def create_exit_request(
    payload: er_schemas.ExitRequestCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    exit_request = workflow.create_request(db, user=current_user, **payload.model_dump())
    _log(db, request, current_user, "EXIT_REQUEST_CREATE", {"id": exit_request.id})
    return exit_request


@router.get("", response_model=er_schemas.ExitRequestPage)
def list_exit_requests(
    status: Optional[er_schemas.ExitRequestStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Plain users only see their own requests
    requested_by = None if is_manager(current_user) else current_user.id
    query = workflow.list_requests(db, status=status, requested_by=requested_by)
    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


# =========================
# BASKETS
# =========================
@router.get("/baskets", response_model=List[er_schemas.BasketOut])
def list_baskets(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    requested_by = None if is_manager(current_user) else current_user.id
    baskets = group_into_baskets(workflow.list_requests(db, requested_by=requested_by).all())
    return [er_schemas.BasketOut.model_validate(b) for b in baskets]


@router.post("/baskets/approve", response_model=er_schemas.BasketResult)
def approve_basket(
    payload: er_schemas.BasketKey,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    outcome = workflow.approve_basket(db, payload.requested_by, payload.minute, current_user)
    _log(db, request, current_user, "BASKET_APPROVE",
         {"requested_by": payload.requested_by, "processed": outcome.processed, "failed": len(outcome.failed)})
    return _outcome(outcome)


@router.post("/baskets/reject", response_model=er_schemas.BasketResult)
def reject_basket(
    payload: er_schemas.BasketRejectPayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    outcome = workflow.reject_basket(db, payload.requested_by, payload.minute, current_user, payload.reason)
    _log(db, request, current_user, "BASKET_REJECT",
         {"requested_by": payload.requested_by, "processed": outcome.processed, "failed": len(outcome.failed)})
    return _outcome(outcome)


@router.post("/baskets/cancel", response_model=er_schemas.BasketResult)
def cancel_basket(
    payload: er_schemas.BasketKey,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    outcome = workflow.cancel_basket(db, payload.requested_by, payload.minute, current_user)
    _log(db, request, current_user, "BASKET_CANCEL",
         {"requested_by": payload.requested_by, "processed": outcome.processed, "failed": len(outcome.failed)})
    return _outcome(outcome)


# =========================
# PICK LIST
# =========================
@router.get("/pending-exits", response_model=List[er_schemas.PendingExitOut])
def list_pending_exits(db: Session = Depends(get_db), current_user: User = Depends(manager_required)):
    return workflow.list_pending_exits(db)


@router.delete("/pending-exits/{pending_exit_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_pending_exit(
    pending_exit_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    workflow.remove_pending_exit(db, pending_exit_id)
    _log(db, request, current_user, "PENDING_EXIT_DONE", {"id": pending_exit_id})


# =========================
# SINGLE REQUEST
# =========================
@router.get("/{request_id}", response_model=er_schemas.ExitRequestOut)
def get_exit_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    exit_request = workflow.get_request(db, request_id)
    if not is_manager(current_user) and exit_request.requested_by != current_user.id:
        raise NotFound("Exit request", request_id)
    return exit_request


@router.post("/{request_id}/approve", response_model=er_schemas.ExitRequestOut)
def approve_exit_request(
    request_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    exit_request = workflow.approve_request(db, request_id, current_user)
    _log(db, request, current_user, "EXIT_REQUEST_APPROVE", {"id": request_id})
    return exit_request


@router.post("/{request_id}/reject", response_model=er_schemas.ExitRequestOut)
def reject_exit_request(
    request_id: int,
    payload: er_schemas.RejectPayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    exit_request = workflow.reject_request(db, request_id, current_user, payload.reason)
    _log(db, request, current_user, "EXIT_REQUEST_REJECT", {"id": request_id})
    return exit_request


@router.post("/{request_id}/awaiting-reception", response_model=er_schemas.ExitRequestOut)
def mark_awaiting_reception(
    request_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    exit_request = workflow.mark_awaiting_reception(db, request_id, current_user)
    _log(db, request, current_user, "EXIT_REQUEST_AWAITING", {"id": request_id})
    return exit_request


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_exit_request(
    request_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    workflow.cancel_request(db, request_id, current_user)
    _log(db, request, current_user, "EXIT_REQUEST_CANCEL", {"id": request_id})
