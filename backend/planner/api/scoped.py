# backend/planner/api/scoped.py
"""
Client-owned resources nested under /clients/{client_id}: segments,
competitors and branches. The three share one router shape; only the
schemas differ.
"""
from datetime import datetime
from typing import List, Optional, Type

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, ConfigDict, Field, create_model
from sqlalchemy.orm import Session

from ..core.config import settings
from ..documents.common import commit, ensure_client, record_audit, snapshot
from ..documents.stores import SqlAuditSink
from ..engine.errors import DocumentNotFoundError, ValidationError
from ..models import Branch, Competitor, Segment
from .deps import CurrentUser, actor_from, get_current_user, get_db, require_permissions


# ---------------------------
# Pydantic Schemas
# ---------------------------

class SegmentIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    age_range: List[str] = []
    gender: List[str] = []
    area: List[str] = []
    governorate: List[str] = []
    note: Optional[str] = None
    product_name: Optional[str] = None


class SegmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    age_range: Optional[List[str]] = None
    gender: Optional[List[str]] = None
    area: Optional[List[str]] = None
    governorate: Optional[List[str]] = None
    note: Optional[str] = None
    product_name: Optional[str] = None


class SegmentOut(SegmentIn):
    id: int
    client_id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CompetitorIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    swot_strengths: List[str] = []
    swot_weaknesses: List[str] = []
    swot_opportunities: List[str] = []
    swot_threats: List[str] = []


class CompetitorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    swot_strengths: Optional[List[str]] = None
    swot_weaknesses: Optional[List[str]] = None
    swot_opportunities: Optional[List[str]] = None
    swot_threats: Optional[List[str]] = None


class CompetitorOut(CompetitorIn):
    id: int
    client_id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BranchIn(BaseModel):
    name: str = Field(..., min_length=1)
    address: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None


class BranchOut(BranchIn):
    id: int
    client_id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------
# Router factory
# ---------------------------

def scoped_router(
    model,
    label: str,
    path: str,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    out_schema: Type[BaseModel],
) -> APIRouter:
    router = APIRouter(prefix=f"/clients/{{client_id}}/{path}", tags=[path])
    read = [Depends(require_permissions([f"{path}:read"]))]
    write = [Depends(require_permissions([f"{path}:write"]))]
    delete = [Depends(require_permissions([f"{path}:delete"]))]

    BulkIn = create_model(f"{label}BulkIn", items=(List[create_schema], Field(..., min_length=1)))

    def _load(db: Session, client_id: int, item_id: int):
        item = db.get(model, item_id)
        # another client's row is reported the same as a missing one
        if item is None or item.deleted or item.client_id != client_id:
            raise DocumentNotFoundError(label, item_id)
        return item

    @router.get("/", response_model=List[out_schema], dependencies=read)
    def list_items(client_id: int, db: Session = Depends(get_db)):
        ensure_client(db, client_id)
        return (
            db.query(model)
            .filter(model.client_id == client_id, model.deleted.is_(False))
            .order_by(model.id)
            .all()
        )

    @router.post("/", response_model=out_schema, status_code=status.HTTP_201_CREATED, dependencies=write)
    def create_item(
        client_id: int,
        body: create_schema,
        request: Request,
        db: Session = Depends(get_db),
        current: CurrentUser = Depends(get_current_user),
    ):
        ensure_client(db, client_id)
        item = model(**body.model_dump(), client_id=client_id, deleted=False)
        db.add(item)
        commit(db)
        db.refresh(item)
        record_audit(SqlAuditSink(db), actor_from(request, current), "create", label, item.id, snapshot(item))
        return item

    @router.post("/bulk", response_model=List[out_schema], status_code=status.HTTP_201_CREATED, dependencies=write)
    def bulk_create_items(
        client_id: int,
        body: BulkIn,
        request: Request,
        db: Session = Depends(get_db),
        current: CurrentUser = Depends(get_current_user),
    ):
        ensure_client(db, client_id)
        if len(body.items) > settings.BULK_CREATE_LIMIT:
            raise ValidationError(f"Maximum {settings.BULK_CREATE_LIMIT} {path} can be created at once")
        items = [model(**i.model_dump(), client_id=client_id, deleted=False) for i in body.items]
        db.add_all(items)
        commit(db)
        out = [out_schema.model_validate(i) for i in items]
        record_audit(
            SqlAuditSink(db), actor_from(request, current), "bulk_create", label, None,
            {"client_id": client_id, "ids": [o.id for o in out]},
        )
        return out

    @router.get("/{item_id}", response_model=out_schema, dependencies=read)
    def get_item(client_id: int, item_id: int, db: Session = Depends(get_db)):
        return _load(db, client_id, item_id)

    @router.put("/{item_id}", response_model=out_schema, dependencies=write)
    def update_item(
        client_id: int,
        item_id: int,
        body: update_schema,
        request: Request,
        db: Session = Depends(get_db),
        current: CurrentUser = Depends(get_current_user),
    ):
        item = _load(db, client_id, item_id)
        changes = body.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None and not model.__table__.c[field].nullable:
                continue
            setattr(item, field, value)
        commit(db)
        db.refresh(item)
        record_audit(SqlAuditSink(db), actor_from(request, current), "update", label, item.id, changes)
        return item

    @router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=delete)
    def delete_item(
        client_id: int,
        item_id: int,
        request: Request,
        db: Session = Depends(get_db),
        current: CurrentUser = Depends(get_current_user),
    ):
        item = _load(db, client_id, item_id)
        item.deleted = True
        commit(db)
        record_audit(SqlAuditSink(db), actor_from(request, current), "delete", label, item_id)

    return router


segments_router = scoped_router(Segment, "Segment", "segments", SegmentIn, SegmentUpdate, SegmentOut)
competitors_router = scoped_router(
    Competitor, "Competitor", "competitors", CompetitorIn, CompetitorUpdate, CompetitorOut,
)
branches_router = scoped_router(Branch, "Branch", "branches", BranchIn, BranchUpdate, BranchOut)
