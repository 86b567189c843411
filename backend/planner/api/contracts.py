# backend/planner/api/contracts.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..documents.common import page_meta
from ..documents.contracts import ContractService
from ..documents.schemas import (
    CancelIn,
    ContractCreate,
    ContractOut,
    ContractUpdate,
    RenewIn,
    SignIn,
    TermEntryIn,
    TermReorderIn,
)
from ..models import Contract
from .clients import PageMeta
from .deps import CurrentUser, actor_from, get_current_user, get_db, page_size, require_permissions

router = APIRouter(prefix="/contracts", tags=["contracts"])

READ = [Depends(require_permissions(["contracts:read"]))]
WRITE = [Depends(require_permissions(["contracts:write"]))]


class ContractsListOut(BaseModel):
    meta: PageMeta
    items: List[ContractOut]


@router.get("/", response_model=ContractsListOut, dependencies=READ)
def list_contracts(
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
        filters.append(Contract.client_id == client_id)
    if status_:
        filters.append(Contract.status == status_)
    if search:
        like = f"%{search}%"
        filters.append(or_(Contract.contract_number.ilike(like), Contract.client_name.ilike(like)))
    rows, total = ContractService(db).list(filters, page, size)
    return ContractsListOut(
        meta=PageMeta(**page_meta(total, page, size)),
        items=[ContractOut.model_validate(r) for r in rows],
    )


@router.post("/", response_model=ContractOut, status_code=status.HTTP_201_CREATED, dependencies=WRITE)
def create_contract(
    body: ContractCreate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ContractService(db).create(body, actor_from(request, current))


@router.get("/{contract_id}", response_model=ContractOut, dependencies=READ)
def get_contract(contract_id: int, db: Session = Depends(get_db)):
    return ContractService(db).get(contract_id)


@router.put("/{contract_id}", response_model=ContractOut, dependencies=WRITE)
def update_contract(
    contract_id: int,
    body: ContractUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ContractService(db).update(contract_id, body, actor_from(request, current))


@router.delete(
    "/{contract_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permissions(["contracts:delete"]))],
)
def delete_contract(
    contract_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    ContractService(db).delete(contract_id, actor_from(request, current))


# ---------- terms ----------

@router.post("/{contract_id}/terms", response_model=ContractOut, dependencies=WRITE)
def add_contract_term(
    contract_id: int,
    body: TermEntryIn,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ContractService(db).add_term(contract_id, body, actor_from(request, current))


@router.patch("/{contract_id}/terms/reorder", response_model=ContractOut, dependencies=WRITE)
def reorder_contract_terms(
    contract_id: int,
    body: TermReorderIn,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ContractService(db).reorder_terms(contract_id, body.terms, actor_from(request, current))


@router.delete("/{contract_id}/terms/{item_id}", response_model=ContractOut, dependencies=WRITE)
def remove_contract_term(
    contract_id: int,
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ContractService(db).remove_term(contract_id, item_id, actor_from(request, current))


# ---------- lifecycle ----------

@router.patch("/{contract_id}/sign", response_model=ContractOut, dependencies=WRITE)
def sign_contract(
    contract_id: int,
    request: Request,
    body: Optional[SignIn] = Body(None),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    signed_date = body.signed_date if body else None
    return ContractService(db).sign(contract_id, signed_date, actor_from(request, current))


@router.patch("/{contract_id}/activate", response_model=ContractOut, dependencies=WRITE)
def activate_contract(
    contract_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ContractService(db).activate(contract_id, actor_from(request, current))


@router.patch("/{contract_id}/complete", response_model=ContractOut, dependencies=WRITE)
def complete_contract(
    contract_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ContractService(db).complete(contract_id, actor_from(request, current))


@router.patch("/{contract_id}/cancel", response_model=ContractOut, dependencies=WRITE)
def cancel_contract(
    contract_id: int,
    request: Request,
    body: Optional[CancelIn] = Body(None),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    reason = body.reason if body else None
    return ContractService(db).cancel(contract_id, reason, actor_from(request, current))


@router.post("/{contract_id}/renew", response_model=ContractOut, dependencies=WRITE)
def renew_contract(
    contract_id: int,
    body: RenewIn,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return ContractService(db).renew(contract_id, body, actor_from(request, current))
