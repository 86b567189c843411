# backend/planner/api/packages.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..documents.common import (
    apply_catalog_changes,
    commit,
    ensure_catalog_scope,
    list_documents,
    load_document,
    page_meta,
    record_audit,
    snapshot,
)
from ..documents.schemas import DiscountType
from ..documents.stores import SqlAuditSink, SqlCatalogStore
from ..engine.errors import CrossTenantError, InvalidReferenceError
from ..engine.pricing import CatalogKind
from ..engine.stores import unique_ids
from ..models import Package
from .clients import PageMeta
from .deps import CurrentUser, actor_from, get_current_user, get_db, page_size, require_permissions

router = APIRouter(prefix="/packages", tags=["packages"])


# ---------------------------
# Pydantic Schemas
# ---------------------------

class FeatureIn(BaseModel):
    en: str = Field(..., min_length=1)
    ar: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)


class PackageCreate(BaseModel):
    name_en: str = Field(..., min_length=1)
    name_ar: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    discount: Decimal = Field(0, ge=0)
    discount_type: DiscountType = "percentage"
    features: List[FeatureIn] = []
    service_ids: List[int] = []
    is_global: bool = True
    client_id: Optional[int] = None


class PackageUpdate(BaseModel):
    name_en: Optional[str] = Field(None, min_length=1)
    name_ar: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=0)
    discount: Optional[Decimal] = Field(None, ge=0)
    discount_type: Optional[DiscountType] = None
    features: Optional[List[FeatureIn]] = None
    service_ids: Optional[List[int]] = None
    is_global: Optional[bool] = None
    client_id: Optional[int] = None


class PackageOut(BaseModel):
    id: int
    name_en: str
    name_ar: str
    price: Decimal
    discount: Decimal
    discount_type: str
    features: List[FeatureIn] = []
    service_ids: List[int] = []
    is_active: bool
    is_global: bool
    client_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PackagesListOut(BaseModel):
    meta: PageMeta
    items: List[PackageOut]


# ---------------------------
# Helpers
# ---------------------------

def _check_members(db: Session, service_ids: List[int], is_global: bool, client_id: Optional[int]) -> None:
    """Member services must exist and be usable wherever the package is."""
    wanted = unique_ids(service_ids)
    found = {rec.id: rec for rec in SqlCatalogStore(db).find_many(CatalogKind.SERVICE, wanted)}
    for sid in wanted:
        if sid not in found:
            raise InvalidReferenceError(CatalogKind.SERVICE.value, sid)
    # a global package may only bundle global services
    foreign = [sid for sid in wanted if not found[sid].usable_by(None if is_global else client_id)]
    if foreign:
        raise CrossTenantError(CatalogKind.SERVICE.value, foreign)


def _set_active(db: Session, request: Request, current: CurrentUser, package_id: int, active: bool) -> Package:
    pack = load_document(db, Package, package_id, "Package")
    pack.is_active = active
    commit(db)
    db.refresh(pack)
    record_audit(
        SqlAuditSink(db), actor_from(request, current),
        "activate" if active else "deactivate", "Package", package_id, {"is_active": active},
    )
    return pack


# ---------------------------
# Endpoints
# ---------------------------

@router.get(
    "/",
    response_model=PackagesListOut,
    dependencies=[Depends(require_permissions(["packages:read"]))],
)
def list_packages(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    client_id: Optional[int] = Query(None, description="Packages usable by this client (global + own)"),
    page: int = Query(1, ge=1),
    size: Optional[int] = Query(None, ge=1),
):
    size = page_size(size)
    filters = []
    if is_active is not None:
        filters.append(Package.is_active.is_(is_active))
    if min_price is not None:
        filters.append(Package.price >= min_price)
    if max_price is not None:
        filters.append(Package.price <= max_price)
    if client_id is not None:
        filters.append(or_(Package.is_global.is_(True), Package.client_id == client_id))
    if search:
        like = f"%{search}%"
        filters.append(or_(Package.name_en.ilike(like), Package.name_ar.ilike(like)))
    rows, total = list_documents(db, Package, filters, page, size)
    return PackagesListOut(
        meta=PageMeta(**page_meta(total, page, size)),
        items=[PackageOut.model_validate(r) for r in rows],
    )


@router.post(
    "/",
    response_model=PackageOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permissions(["packages:write"]))],
)
def create_package(
    body: PackageCreate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    ensure_catalog_scope(db, body.is_global, body.client_id)
    _check_members(db, body.service_ids, body.is_global, body.client_id)
    pack = Package(**body.model_dump(), is_active=True, deleted=False)
    db.add(pack)
    commit(db)
    db.refresh(pack)
    record_audit(SqlAuditSink(db), actor_from(request, current), "create", "Package", pack.id, snapshot(pack))
    return pack


@router.get(
    "/{package_id}",
    response_model=PackageOut,
    dependencies=[Depends(require_permissions(["packages:read"]))],
)
def get_package(package_id: int, db: Session = Depends(get_db)):
    return load_document(db, Package, package_id, "Package")


@router.put(
    "/{package_id}",
    response_model=PackageOut,
    dependencies=[Depends(require_permissions(["packages:write"]))],
)
def update_package(
    package_id: int,
    body: PackageUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    pack = load_document(db, Package, package_id, "Package")
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "client_id"}

    apply_catalog_changes(db, pack, changes)
    _check_members(db, pack.service_ids or [], pack.is_global, pack.client_id)
    commit(db)
    db.refresh(pack)
    record_audit(SqlAuditSink(db), actor_from(request, current), "update", "Package", pack.id, changes)
    return pack


@router.patch(
    "/{package_id}/activate",
    response_model=PackageOut,
    dependencies=[Depends(require_permissions(["packages:write"]))],
)
def activate_package(
    package_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return _set_active(db, request, current, package_id, True)


@router.patch(
    "/{package_id}/deactivate",
    response_model=PackageOut,
    dependencies=[Depends(require_permissions(["packages:write"]))],
)
def deactivate_package(
    package_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return _set_active(db, request, current, package_id, False)


@router.delete(
    "/{package_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permissions(["packages:delete"]))],
)
def delete_package(
    package_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    pack = load_document(db, Package, package_id, "Package")
    pack.deleted = True
    commit(db)
    record_audit(SqlAuditSink(db), actor_from(request, current), "delete", "Package", package_id)
