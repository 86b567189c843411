# backend/planner/api/contract_terms.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.config import settings
from ..documents.common import commit, list_documents, load_document, page_meta, record_audit, snapshot
from ..documents.stores import SqlAuditSink
from ..engine.errors import ValidationError
from ..models import ContractTerm
from .clients import PageMeta
from .deps import CurrentUser, actor_from, get_current_user, get_db, page_size, require_permissions

router = APIRouter(prefix="/contract-terms", tags=["contract-terms"])


# ---------------------------
# Pydantic Schemas
# ---------------------------

class TermCreate(BaseModel):
    key: str = Field(..., min_length=1)
    key_ar: str = Field(..., min_length=1)
    value: Optional[str] = None
    value_ar: Optional[str] = None


class TermUpdate(BaseModel):
    key: Optional[str] = Field(None, min_length=1)
    key_ar: Optional[str] = Field(None, min_length=1)
    value: Optional[str] = None
    value_ar: Optional[str] = None


class TermBulkIn(BaseModel):
    terms: List[TermCreate] = Field(..., min_length=1)


class TermOut(BaseModel):
    id: int
    key: str
    key_ar: str
    value: Optional[str] = None
    value_ar: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TermsListOut(BaseModel):
    meta: PageMeta
    items: List[TermOut]


# ---------------------------
# Endpoints
# ---------------------------

@router.get(
    "/",
    response_model=TermsListOut,
    dependencies=[Depends(require_permissions(["contract-terms:read"]))],
)
def list_terms(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: Optional[int] = Query(None, ge=1),
):
    size = page_size(size)
    filters = []
    if search:
        like = f"%{search}%"
        filters.append(or_(ContractTerm.key.ilike(like), ContractTerm.key_ar.ilike(like)))
    rows, total = list_documents(db, ContractTerm, filters, page, size)
    return TermsListOut(
        meta=PageMeta(**page_meta(total, page, size)),
        items=[TermOut.model_validate(r) for r in rows],
    )


@router.post(
    "/",
    response_model=TermOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permissions(["contract-terms:write"]))],
)
def create_term(
    body: TermCreate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    term = ContractTerm(**body.model_dump(), deleted=False)
    db.add(term)
    commit(db)
    db.refresh(term)
    record_audit(SqlAuditSink(db), actor_from(request, current), "create", "ContractTerm", term.id, snapshot(term))
    return term


@router.post(
    "/bulk",
    response_model=List[TermOut],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permissions(["contract-terms:write"]))],
)
def bulk_create_terms(
    body: TermBulkIn,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    if len(body.terms) > settings.BULK_CREATE_LIMIT:
        raise ValidationError(f"Maximum {settings.BULK_CREATE_LIMIT} terms can be created at once")
    terms = [ContractTerm(**t.model_dump(), deleted=False) for t in body.terms]
    db.add_all(terms)
    commit(db)
    for t in terms:
        db.refresh(t)
    out = [TermOut.model_validate(t) for t in terms]
    record_audit(
        SqlAuditSink(db), actor_from(request, current), "bulk_create", "ContractTerm", None,
        {"ids": [t.id for t in out]},
    )
    return out


@router.get(
    "/{term_id}",
    response_model=TermOut,
    dependencies=[Depends(require_permissions(["contract-terms:read"]))],
)
def get_term(term_id: int, db: Session = Depends(get_db)):
    return load_document(db, ContractTerm, term_id, "ContractTerm")


@router.put(
    "/{term_id}",
    response_model=TermOut,
    dependencies=[Depends(require_permissions(["contract-terms:write"]))],
)
def update_term(
    term_id: int,
    body: TermUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    term = load_document(db, ContractTerm, term_id, "ContractTerm")
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in ("key", "key_ar"):
            continue
        setattr(term, field, value)
    commit(db)
    db.refresh(term)
    record_audit(SqlAuditSink(db), actor_from(request, current), "update", "ContractTerm", term.id, changes)
    return term


@router.delete(
    "/{term_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permissions(["contract-terms:delete"]))],
)
def delete_term(
    term_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    term = load_document(db, ContractTerm, term_id, "ContractTerm")
    term.deleted = True
    commit(db)
    record_audit(SqlAuditSink(db), actor_from(request, current), "delete", "ContractTerm", term_id)
