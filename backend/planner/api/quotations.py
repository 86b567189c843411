# backend/planner/api/quotations.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..documents.common import page_meta
from ..documents.quotations import QuotationService
from ..documents.schemas import ContractOut, ConvertToContractIn, QuotationIn, QuotationOut
from ..models import Quotation
from .clients import PageMeta
from .deps import CurrentUser, actor_from, get_current_user, get_db, page_size, require_permissions

router = APIRouter(prefix="/quotations", tags=["quotations"])

READ = [Depends(require_permissions(["quotations:read"]))]
WRITE = [Depends(require_permissions(["quotations:write"]))]


class QuotationsListOut(BaseModel):
    meta: PageMeta
    items: List[QuotationOut]


@router.get("/", response_model=QuotationsListOut, dependencies=READ)
def list_quotations(
    db: Session = Depends(get_db),
    client_id: Optional[int] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Search in number / client name"),
    page: int = Query(1, ge=1),
    size: Optional[int] = Query(None, ge=1),
):
    size = page_size(size)
    filters = []
    if client_id is not None:
        filters.append(Quotation.client_id == client_id)
    if status_:
        filters.append(Quotation.status == status_)
    if search:
        like = f"%{search}%"
        filters.append(or_(Quotation.quotation_number.ilike(like), Quotation.client_name.ilike(like)))
    rows, total = QuotationService(db).list(filters, page, size)
    return QuotationsListOut(
        meta=PageMeta(**page_meta(total, page, size)),
        items=[QuotationOut.model_validate(r) for r in rows],
    )


@router.post("/", response_model=QuotationOut, status_code=status.HTTP_201_CREATED, dependencies=WRITE)
def create_quotation(
    body: QuotationIn,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return QuotationService(db).create(body, actor_from(request, current))


@router.get("/{quotation_id}", response_model=QuotationOut, dependencies=READ)
def get_quotation(quotation_id: int, db: Session = Depends(get_db)):
    return QuotationService(db).get(quotation_id)


@router.put("/{quotation_id}", response_model=QuotationOut, dependencies=WRITE)
def update_quotation(
    quotation_id: int,
    body: QuotationIn,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return QuotationService(db).update(quotation_id, body, actor_from(request, current))


@router.delete(
    "/{quotation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permissions(["quotations:delete"]))],
)
def delete_quotation(
    quotation_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    QuotationService(db).delete(quotation_id, actor_from(request, current))


# ---------- status ----------

@router.patch("/{quotation_id}/send", response_model=QuotationOut, dependencies=WRITE)
def send_quotation(
    quotation_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return QuotationService(db).send(quotation_id, actor_from(request, current))


@router.patch("/{quotation_id}/approve", response_model=QuotationOut, dependencies=WRITE)
def approve_quotation(
    quotation_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return QuotationService(db).approve(quotation_id, actor_from(request, current))


@router.patch("/{quotation_id}/reject", response_model=QuotationOut, dependencies=WRITE)
def reject_quotation(
    quotation_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return QuotationService(db).reject(quotation_id, actor_from(request, current))


@router.post(
    "/{quotation_id}/convert-to-contract",
    response_model=ContractOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=WRITE,
)
def convert_quotation(
    quotation_id: int,
    body: ConvertToContractIn,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return QuotationService(db).convert_to_contract(quotation_id, body, actor_from(request, current))
