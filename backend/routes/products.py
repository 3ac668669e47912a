# backend/routes/products.py
from typing import Optional, List

from fastapi import APIRouter, Depends, Query, Request, UploadFile, File, status
from sqlalchemy.orm import Session

from database import get_db, atomic
from utils.tokenJWT import get_current_user, manager_required
from utils.audit import write_log
from utils.storage import store_photo, remove_photo, photo_url
from models.users import User
from models.product import Product
from services import catalog
import schemas.product as product_schemas

router = APIRouter(tags=["Products"])


# ---- HELPERS ----
def _serialize(request: Request, p: Product) -> product_schemas.ProductOut:
    fields = list(product_schemas.ProductOut.model_fields.keys())
    data = {f: getattr(p, f) for f in fields if hasattr(p, f)}
    data["photo_url"] = photo_url(request, p.photo)
    return product_schemas.ProductOut.model_validate(data)


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# =========================
# PRODUCT LIST
# =========================
@router.get("/products", response_model=product_schemas.ProductListPage)
def list_products(
    request: Request,
    q: Optional[str] = Query(None, description="Search by reference or designation"),
    category_id: Optional[int] = Query(None),
    storage_zone_id: Optional[int] = Query(None),
    low_stock: bool = Query(False),
    include_deleted: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=10000),
    sort_by: str = Query("reference"),
    order: str = Query("asc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = catalog.list_products(
        db,
        search=q,
        category_id=category_id,
        storage_zone_id=storage_zone_id,
        low_stock_only=low_stock,
        include_deleted=include_deleted,
    )

    allowed = {
        "id": Product.id, "reference": Product.reference, "designation": Product.designation,
        "current_stock": Product.current_stock, "created_at": Product.created_at,
    }
    sort_col = allowed.get(sort_by.lower(), Product.reference)
    query = query.order_by(sort_col.asc() if order == "asc" else sort_col.desc())

    total = query.count()
    items: List[Product] = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": [_serialize(request, p) for p in items],
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.get("/products/next-reference", response_model=product_schemas.NextReference)
def get_next_reference(db: Session = Depends(get_db), current_user: User = Depends(manager_required)):
    return {"reference": catalog.next_reference(db)}


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/products/{product_id}", response_model=product_schemas.ProductOut)
def get_product(
    product_id: int, request: Request,
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    return _serialize(request, catalog.get_product(db, product_id))


# =========================
# CREATE PRODUCT
# =========================
@router.post("/products", response_model=product_schemas.ProductOut, status_code=status.HTTP_201_CREATED)
def add_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    product = catalog.create_product(db, payload.model_dump(), current_user)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
        status="SUCCESS", ip=_client_ip(request),
        meta={"id": product.id, "reference": product.reference},
    )
    return _serialize(request, product)


# =========================
# PARTIAL UPDATE (PATCH)
# =========================
@router.patch("/products/{product_id}", response_model=product_schemas.ProductOut)
def edit_product(
    product_id: int,
    payload: product_schemas.ProductEditRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    changes = payload.model_dump(exclude_unset=True)
    skip_movement = changes.pop("skip_movement", False)
    product = catalog.update_product(db, product_id, changes, current_user, skip_movement=skip_movement)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_EDIT", resource="products",
        status="SUCCESS", ip=_client_ip(request),
        meta={"product_id": product.id, "fields": sorted(changes)},
    )
    return _serialize(request, product)


# =========================
# PHOTO UPLOAD
# =========================
@router.post("/products/{product_id}/photo", response_model=product_schemas.ProductOut)
def upload_product_photo(
    product_id: int,
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    product = catalog.get_product(db, product_id, include_deleted=False)
    old_photo = product.photo
    reference = store_photo(file)
    with atomic(db):
        catalog.apply_product_update(db, product, {"photo": reference}, current_user)
    db.refresh(product)
    remove_photo(old_photo)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_PHOTO", resource="products",
        status="SUCCESS", ip=_client_ip(request), meta={"product_id": product.id},
    )
    return _serialize(request, product)


# =========================
# SOFT DELETE
# =========================
@router.delete("/products/{product_id}", response_model=product_schemas.ProductOut)
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_required),
):
    product = catalog.soft_delete_product(db, product_id)
    write_log(
        db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
        status="SUCCESS", ip=_client_ip(request), meta={"product_id": product.id},
    )
    return _serialize(request, product)
