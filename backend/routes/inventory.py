# backend/routes/inventory.py
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.inventory import InventorySession
from models.users import User
from services import inventory as inventory_service
from utils.tokenJWT import get_current_user, manager_required
from utils.audit import write_log
import schemas.inventory as inv_schemas

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _detail(session: InventorySession) -> inv_schemas.InventorySessionDetail:
    base = inv_schemas.InventorySessionOut.model_validate(session).model_dump()
    return inv_schemas.InventorySessionDetail(
        **base,
        counts=[inv_schemas.InventoryCountOut.model_validate(c) for c in session.counts],
        summary=inventory_service.summarize(session),
    )


def _log(db: Session, request: Request, user: User, action: str, meta: dict):
    write_log(db, user_id=user.id, action=action, resource="inventory", status="SUCCESS",
              ip=request.client.host if request.client else None, meta=meta)


@router.get("/sessions", response_model=List[inv_schemas.InventorySessionOut])
def list_sessions(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return inventory_service.list_sessions(db)


@router.post("/sessions", response_model=inv_schemas.InventorySessionDetail, status_code=status.HTTP_201_CREATED)
def start_session(
    payload: inv_schemas.SessionStart,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    session = inventory_service.start_session(
        db, current_user, mode=payload.mode,
        category_id=payload.category_id, storage_zone_id=payload.storage_zone_id,
    )
    out = _detail(session)
    _log(db, request, current_user, "INVENTORY_START", {"session_id": out.id, "lines": out.summary.total})
    return out


@router.get("/sessions/{session_id}", response_model=inv_schemas.InventorySessionDetail)
def get_session(session_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _detail(inventory_service.get_session(db, session_id))


# Counting is open to every authenticated user
@router.put("/sessions/{session_id}/counts/{count_id}", response_model=inv_schemas.InventoryCountOut)
def record_count(
    session_id: int,
    count_id: int,
    payload: inv_schemas.CountPayload,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return inventory_service.record_count(db, session_id, count_id, payload.counted_stock, payload.notes)


@router.post("/sessions/{session_id}/counts/{count_id}/validate", response_model=inv_schemas.InventoryCountOut)
def validate_count(
    session_id: int,
    count_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    return inventory_service.validate_count(db, session_id, count_id)


@router.post("/sessions/{session_id}/validate", response_model=inv_schemas.InventorySessionDetail)
def validate_session(
    session_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    out = _detail(inventory_service.validate_session(db, session_id, current_user))
    _log(db, request, current_user, "INVENTORY_VALIDATE", {"session_id": session_id})
    return out


@router.post("/sessions/{session_id}/cancel", response_model=inv_schemas.InventorySessionOut)
def cancel_session(
    session_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    session = inventory_service.cancel_session(db, session_id)
    out = inv_schemas.InventorySessionOut.model_validate(session)
    _log(db, request, current_user, "INVENTORY_CANCEL", {"session_id": session_id})
    return out
