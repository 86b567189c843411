# backend/planner/api/users.py
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, EmailStr
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..documents.common import commit, page_meta, record_audit
from ..documents.stores import SqlAuditSink
from ..models import User
from .auth import RoleName
from .clients import PageMeta
from .deps import CurrentUser, actor_from, get_current_user, get_db, page_size, require_permissions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


# ---------------------------
# Pydantic Schemas
# ---------------------------

class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    role_name: Optional[RoleName] = None
    is_active: Optional[bool] = None


class UserDetailOut(BaseModel):
    id: int
    email: EmailStr
    full_name: Optional[str] = None
    role_name: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UsersListOut(BaseModel):
    meta: PageMeta
    items: List[UserDetailOut]


def _load_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _guard_self(user: User, current: CurrentUser) -> None:
    # an admin cannot lock themselves out
    if user.id == current.id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cannot disable or demote yourself")


# ---------------------------
# Endpoints
# ---------------------------

@router.get(
    "/",
    response_model=UsersListOut,
    dependencies=[Depends(require_permissions(["users:admin"]))],
)
def list_users(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None, description="Search in email/full name"),
    role_name: Optional[RoleName] = Query(None, alias="role"),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    size: Optional[int] = Query(None, ge=1),
):
    size = page_size(size)
    stmt = select(User)
    if search:
        like = f"%{search.lower()}%"
        stmt = stmt.where(or_(User.email.ilike(like), func.coalesce(User.full_name, "").ilike(like)))
    if role_name:
        stmt = stmt.where(User.role_name == role_name)
    if is_active is not None:
        stmt = stmt.where(User.is_active.is_(is_active))

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = db.execute(stmt.order_by(User.id.desc()).offset((page - 1) * size).limit(size)).scalars().all()
    return UsersListOut(
        meta=PageMeta(**page_meta(total, page, size)),
        items=[UserDetailOut.model_validate(u) for u in rows],
    )


@router.get(
    "/{user_id}",
    response_model=UserDetailOut,
    dependencies=[Depends(require_permissions(["users:admin"]))],
)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return _load_user(db, user_id)


@router.patch(
    "/{user_id}",
    response_model=UserDetailOut,
    dependencies=[Depends(require_permissions(["users:admin"]))],
)
def update_user(
    user_id: int,
    body: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    user = _load_user(db, user_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("is_active") is False or changes.get("role_name") not in (None, "admin"):
        _guard_self(user, current)

    email = changes.get("email")
    if email is not None:
        email = changes["email"] = email.lower()
        taken = db.execute(select(User.id).where(User.email == email, User.id != user.id)).first()
        if taken:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    for field, value in changes.items():
        if value is None and field in ("email", "role_name", "is_active"):
            continue  # required columns
        setattr(user, field, value)
    commit(db)
    db.refresh(user)
    record_audit(SqlAuditSink(db), actor_from(request, current), "update", "User", user.id, changes)
    logger.info("user %s updated by %s: %s", user.id, current.id, sorted(changes))
    return user


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permissions(["users:admin"]))],
)
def disable_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    """Soft-disable: the row stays (audit and documents point at it), logins stop."""
    user = _load_user(db, user_id)
    _guard_self(user, current)
    user.is_active = False
    commit(db)
    record_audit(SqlAuditSink(db), actor_from(request, current), "disable", "User", user_id, {"is_active": False})
    logger.info("user %s disabled by %s", user_id, current.id)
