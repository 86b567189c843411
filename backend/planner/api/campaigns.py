# backend/planner/api/campaigns.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..documents.campaigns import CampaignService
from ..documents.common import page_meta
from ..documents.schemas import CampaignCreate, CampaignOut, CampaignUpdate
from ..models import CampaignPlan
from .clients import PageMeta
from .deps import CurrentUser, actor_from, get_current_user, get_db, page_size, require_permissions

router = APIRouter(prefix="/campaigns", tags=["campaigns"])

READ = [Depends(require_permissions(["campaigns:read"]))]
WRITE = [Depends(require_permissions(["campaigns:write"]))]


class CampaignsListOut(BaseModel):
    meta: PageMeta
    items: List[CampaignOut]


@router.get("/", response_model=CampaignsListOut, dependencies=READ)
def list_campaigns(
    db: Session = Depends(get_db),
    client_id: Optional[int] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    size: Optional[int] = Query(None, ge=1),
):
    size = page_size(size)
    filters = []
    if client_id is not None:
        filters.append(CampaignPlan.client_id == client_id)
    if status_:
        filters.append(CampaignPlan.status == status_)
    rows, total = CampaignService(db).list(filters, page, size)
    return CampaignsListOut(
        meta=PageMeta(**page_meta(total, page, size)),
        items=[CampaignOut.model_validate(r) for r in rows],
    )


@router.post("/", response_model=CampaignOut, status_code=status.HTTP_201_CREATED, dependencies=WRITE)
def create_campaign(
    body: CampaignCreate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return CampaignService(db).create(body, actor_from(request, current))


@router.get("/{plan_id}", response_model=CampaignOut, dependencies=READ)
def get_campaign(plan_id: int, db: Session = Depends(get_db)):
    return CampaignService(db).get(plan_id)


@router.put("/{plan_id}", response_model=CampaignOut, dependencies=WRITE)
def update_campaign(
    plan_id: int,
    body: CampaignUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return CampaignService(db).update(plan_id, body, actor_from(request, current))


@router.delete(
    "/{plan_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permissions(["campaigns:delete"]))],
)
def delete_campaign(
    plan_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    CampaignService(db).delete(plan_id, actor_from(request, current))
