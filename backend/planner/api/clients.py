# backend/planner/api/clients.py
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..documents.common import commit, list_documents, load_document, page_meta, record_audit, snapshot
from ..documents.stores import SqlAuditSink
from ..models import Client
from .deps import CurrentUser, actor_from, get_current_user, get_db, page_size, require_permissions

router = APIRouter(prefix="/clients", tags=["clients"])

ClientStatus = Literal["active", "inactive", "pending"]


# ---------------------------
# Pydantic Schemas
# ---------------------------

class ClientCreate(BaseModel):
    business_name: str = Field(..., min_length=1)
    business_category: Optional[str] = None
    contact_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    status: ClientStatus = "active"


class ClientUpdate(BaseModel):
    business_name: Optional[str] = Field(None, min_length=1)
    business_category: Optional[str] = None
    contact_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    status: Optional[ClientStatus] = None


class ClientOut(BaseModel):
    id: int
    business_name: str
    business_category: Optional[str] = None
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    status: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PageMeta(BaseModel):
    total: int
    page: int
    size: int
    pages: int


class ClientsListOut(BaseModel):
    meta: PageMeta
    items: List[ClientOut]


# ---------------------------
# Endpoints
# ---------------------------

@router.get(
    "/",
    response_model=ClientsListOut,
    dependencies=[Depends(require_permissions(["clients:read"]))],
)
def list_clients(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None, description="Search in business/contact name and email"),
    status_: Optional[ClientStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    size: Optional[int] = Query(None, ge=1),
):
    size = page_size(size)
    filters = []
    if status_:
        filters.append(Client.status == status_)
    if search:
        like = f"%{search}%"
        filters.append(
            or_(Client.business_name.ilike(like), Client.contact_name.ilike(like), Client.email.ilike(like))
        )
    rows, total = list_documents(db, Client, filters, page, size)
    return ClientsListOut(
        meta=PageMeta(**page_meta(total, page, size)),
        items=[ClientOut.model_validate(r) for r in rows],
    )


@router.post(
    "/",
    response_model=ClientOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permissions(["clients:write"]))],
)
def create_client(
    body: ClientCreate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    client = Client(**body.model_dump(), created_by=current.id, deleted=False)
    db.add(client)
    commit(db)
    db.refresh(client)
    record_audit(SqlAuditSink(db), actor_from(request, current), "create", "Client", client.id, snapshot(client))
    return client


@router.get(
    "/{client_id}",
    response_model=ClientOut,
    dependencies=[Depends(require_permissions(["clients:read"]))],
)
def get_client(client_id: int, db: Session = Depends(get_db)):
    return load_document(db, Client, client_id, "Client")


@router.patch(
    "/{client_id}",
    response_model=ClientOut,
    dependencies=[Depends(require_permissions(["clients:write"]))],
)
def update_client(
    client_id: int,
    body: ClientUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    client = load_document(db, Client, client_id, "Client")
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in ("business_name", "status"):
            continue  # required columns
        setattr(client, field, value)
    commit(db)
    db.refresh(client)
    record_audit(SqlAuditSink(db), actor_from(request, current), "update", "Client", client.id, changes)
    return client


@router.delete(
    "/{client_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permissions(["clients:delete"]))],
)
def delete_client(
    client_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    client = load_document(db, Client, client_id, "Client")
    client.deleted = True
    commit(db)
    record_audit(SqlAuditSink(db), actor_from(request, current), "delete", "Client", client_id)
