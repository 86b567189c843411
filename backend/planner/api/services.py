# backend/planner/api/services.py
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

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
from ..documents.stores import SqlAuditSink
from ..models import Service
from .clients import PageMeta
from .deps import CurrentUser, actor_from, get_current_user, get_db, page_size, require_permissions

router = APIRouter(prefix="/services", tags=["services"])

Category = Literal["photography", "web", "reels", "other"]


# ---------------------------
# Pydantic Schemas
# ---------------------------

class ServiceCreate(BaseModel):
    name_en: str = Field(..., min_length=1)
    name_ar: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Category = "other"
    price: Decimal = Field(0, ge=0)
    discount: Decimal = Field(0, ge=0)
    discount_type: DiscountType = "percentage"
    is_global: bool = True
    client_id: Optional[int] = None


class ServiceUpdate(BaseModel):
    name_en: Optional[str] = Field(None, min_length=1)
    name_ar: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[Category] = None
    price: Optional[Decimal] = Field(None, ge=0)
    discount: Optional[Decimal] = Field(None, ge=0)
    discount_type: Optional[DiscountType] = None
    is_global: Optional[bool] = None
    client_id: Optional[int] = None


class ServiceOut(BaseModel):
    id: int
    name_en: str
    name_ar: str
    description: Optional[str] = None
    category: str
    price: Decimal
    discount: Decimal
    discount_type: str
    is_global: bool
    client_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ServicesListOut(BaseModel):
    meta: PageMeta
    items: List[ServiceOut]


# ---------------------------
# Endpoints
# ---------------------------

@router.get(
    "/",
    response_model=ServicesListOut,
    dependencies=[Depends(require_permissions(["services:read"]))],
)
def list_services(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None),
    category: Optional[Category] = Query(None),
    is_global: Optional[bool] = Query(None),
    client_id: Optional[int] = Query(None, description="Items usable by this client (global + own)"),
    page: int = Query(1, ge=1),
    size: Optional[int] = Query(None, ge=1),
):
    size = page_size(size)
    filters = []
    if category:
        filters.append(Service.category == category)
    if is_global is not None:
        filters.append(Service.is_global.is_(is_global))
    if client_id is not None:
        filters.append(or_(Service.is_global.is_(True), Service.client_id == client_id))
    if search:
        like = f"%{search}%"
        filters.append(or_(Service.name_en.ilike(like), Service.name_ar.ilike(like)))
    rows, total = list_documents(db, Service, filters, page, size)
    return ServicesListOut(
        meta=PageMeta(**page_meta(total, page, size)),
        items=[ServiceOut.model_validate(r) for r in rows],
    )


@router.post(
    "/",
    response_model=ServiceOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permissions(["services:write"]))],
)
def create_service(
    body: ServiceCreate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    ensure_catalog_scope(db, body.is_global, body.client_id)
    service = Service(**body.model_dump(), deleted=False)
    db.add(service)
    commit(db)
    db.refresh(service)
    record_audit(SqlAuditSink(db), actor_from(request, current), "create", "Service", service.id, snapshot(service))
    return service


@router.get(
    "/{service_id}",
    response_model=ServiceOut,
    dependencies=[Depends(require_permissions(["services:read"]))],
)
def get_service(service_id: int, db: Session = Depends(get_db)):
    return load_document(db, Service, service_id, "Service")


@router.put(
    "/{service_id}",
    response_model=ServiceOut,
    dependencies=[Depends(require_permissions(["services:write"]))],
)
def update_service(
    service_id: int,
    body: ServiceUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    service = load_document(db, Service, service_id, "Service")
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "client_id"}

    apply_catalog_changes(db, service, changes)
    commit(db)
    db.refresh(service)
    record_audit(SqlAuditSink(db), actor_from(request, current), "update", "Service", service.id, changes)
    return service


@router.delete(
    "/{service_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permissions(["services:delete"]))],
)
def delete_service(
    service_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    service = load_document(db, Service, service_id, "Service")
    service.deleted = True
    commit(db)
    record_audit(SqlAuditSink(db), actor_from(request, current), "delete", "Service", service_id)
