# backend/planner/api/audit.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..documents.common import page_meta
from ..models import AuditLog
from .clients import PageMeta
from .deps import get_db, page_size, require_permissions

router = APIRouter(prefix="/audit", tags=["audit"])


class AuditOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    changes: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuditListOut(BaseModel):
    meta: PageMeta
    items: List[AuditOut]


@router.get(
    "/",
    response_model=AuditListOut,
    dependencies=[Depends(require_permissions(["audit:admin"]))],
)
def list_audit(
    db: Session = Depends(get_db),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: Optional[int] = Query(None, ge=1),
):
    size = page_size(size)
    stmt = select(AuditLog)
    if entity_type:
        stmt = stmt.where(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        stmt = stmt.where(AuditLog.entity_id == entity_id)
    if user_id is not None:
        stmt = stmt.where(AuditLog.user_id == user_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = (
        db.execute(stmt.order_by(AuditLog.id.desc()).offset((page - 1) * size).limit(size))
        .scalars()
        .all()
    )
    return AuditListOut(
        meta=PageMeta(**page_meta(total, page, size)),
        items=[AuditOut.model_validate(r) for r in rows],
    )
