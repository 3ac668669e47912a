# backend/routes/reference.py
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.reference import Category, Unit, StorageZone
from models.users import User
from services import reference as reference_service
from utils.audit import write_log
from utils.tokenJWT import get_current_user, manager_required
import schemas.reference as ref_schemas

router = APIRouter(tags=["Reference data"])


def _log(db, request: Request, user: User, action: str, resource: str, item_id: int):
    write_log(db, user_id=user.id, action=action, resource=resource, status="SUCCESS",
              ip=request.client.host, meta={"id": item_id})


# ---- CATEGORIES ----

@router.get("/categories", response_model=List[ref_schemas.CategoryOut])
def list_categories(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return reference_service.list_items(db, Category)


@router.post("/categories", response_model=ref_schemas.CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: ref_schemas.CategoryIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    item = reference_service.create_item(db, Category, payload.model_dump())
    _log(db, request, current_user, "CATEGORY_CREATE", "categories", item.id)
    return item


@router.patch("/categories/{item_id}", response_model=ref_schemas.CategoryOut)
def update_category(
    item_id: int,
    payload: ref_schemas.CategoryPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    item = reference_service.update_item(db, Category, item_id, payload.model_dump(exclude_unset=True))
    _log(db, request, current_user, "CATEGORY_UPDATE", "categories", item.id)
    return item


@router.delete("/categories/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    reference_service.delete_item(db, Category, item_id)
    _log(db, request, current_user, "CATEGORY_DELETE", "categories", item_id)


# ---- UNITS ----

@router.get("/units", response_model=List[ref_schemas.UnitOut])
def list_units(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return reference_service.list_items(db, Unit)


@router.post("/units", response_model=ref_schemas.UnitOut, status_code=status.HTTP_201_CREATED)
def create_unit(
    payload: ref_schemas.UnitIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    item = reference_service.create_item(db, Unit, payload.model_dump())
    _log(db, request, current_user, "UNIT_CREATE", "units", item.id)
    return item


@router.patch("/units/{item_id}", response_model=ref_schemas.UnitOut)
def update_unit(
    item_id: int,
    payload: ref_schemas.UnitPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    item = reference_service.update_item(db, Unit, item_id, payload.model_dump(exclude_unset=True))
    _log(db, request, current_user, "UNIT_UPDATE", "units", item.id)
    return item


@router.delete("/units/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_unit(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    reference_service.delete_item(db, Unit, item_id)
    _log(db, request, current_user, "UNIT_DELETE", "units", item_id)


# ---- STORAGE ZONES ----

@router.get("/zones", response_model=List[ref_schemas.StorageZoneOut])
def list_zones(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return reference_service.list_items(db, StorageZone)


@router.post("/zones", response_model=ref_schemas.StorageZoneOut, status_code=status.HTTP_201_CREATED)
def create_zone(
    payload: ref_schemas.StorageZoneIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    item = reference_service.create_item(db, StorageZone, payload.model_dump())
    _log(db, request, current_user, "ZONE_CREATE", "zones", item.id)
    return item


@router.patch("/zones/{item_id}", response_model=ref_schemas.StorageZoneOut)
def update_zone(
    item_id: int,
    payload: ref_schemas.StorageZonePatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    item = reference_service.update_item(db, StorageZone, item_id, payload.model_dump(exclude_unset=True))
    _log(db, request, current_user, "ZONE_UPDATE", "zones", item.id)
    return item


@router.delete("/zones/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_zone(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    reference_service.delete_item(db, StorageZone, item_id)
    _log(db, request, current_user, "ZONE_DELETE", "zones", item_id)
