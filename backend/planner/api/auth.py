# backend/planner/api/auth.py
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.security import create_access_token, hash_password, password_needs_rehash, verify_password
from ..models import User
from .deps import CurrentUser, get_current_user, get_db, require_permissions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

RoleName = Literal["admin", "manager", "employee"]


# ---------- Schemas ----------

class SignupIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = None


class RegisterIn(SignupIn):
    role: RoleName = "employee"


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeOut(BaseModel):
    id: int
    email: EmailStr
    role: str


class UserOut(BaseModel):
    id: int
    email: EmailStr
    full_name: Optional[str] = None
    role_name: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


# ---------- Helpers ----------

def _create_user(db: Session, body: SignupIn, role: str) -> User:
    user = User(
        email=body.email.lower(),
        password_hash=hash_password(body.password),
        full_name=body.full_name,
        role_name=role,
        is_active=True,
    )
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    return user


# ---------- Endpoints ----------

@router.post("/signup", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
def signup(body: SignupIn, db: Session = Depends(get_db)):
    """
    Bootstraps the first admin. Closed once any user exists; after that
    accounts are created through /auth/register.
    """
    if db.execute(select(func.count(User.id))).scalar_one() > 0:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Signup is closed")
    user = _create_user(db, body, "admin")
    logger.info("bootstrap admin %s created", user.id)
    return TokenOut(access_token=create_access_token(user.id, user.role_name))


@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, db: Session = Depends(get_db)):
    user = db.execute(select(User).where(User.email == body.email.lower())).scalar_one_or_none()
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if user.is_active is False:
        raise HTTPException(status_code=403, detail="User is inactive")
    if password_needs_rehash(user.password_hash):
        user.password_hash = hash_password(body.password)
        db.commit()
    return TokenOut(access_token=create_access_token(user.id, user.role_name))


@router.post(
    "/register",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permissions(["users:admin"]))],
)
def register(body: RegisterIn, db: Session = Depends(get_db)):
    user = _create_user(db, body, body.role)
    logger.info("user %s registered with role %s", user.id, user.role_name)
    return user


@router.get("/me", response_model=MeOut)
def me(current: CurrentUser = Depends(get_current_user)):
    return MeOut(id=current.id, email=current.email, role=current.role_name)
