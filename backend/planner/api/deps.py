# backend/planner/api/deps.py
from typing import List, Optional, Set

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..core.config import get_db, settings
from ..core.security import decode_token
from ..documents.common import Actor
from ..models import User

# single Bearer field for Swagger "Authorize"
auth_scheme = HTTPBearer(auto_error=True)


# ---------------------------
# Current User DTO
# ---------------------------
class CurrentUser:
    def __init__(self, id: int, email: str, role_name: str):
        self.id = id
        self.email = email
        self.role_name = role_name


# ---------------------------
# AuthN: Token -> CurrentUser
# ---------------------------
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
    db: Session = Depends(get_db),
) -> CurrentUser:
    try:
        payload = decode_token(credentials.credentials)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, int(user_id))
    if not user or user.is_active is False:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # the stored role wins over the one baked into an older token
    return CurrentUser(id=user.id, email=user.email, role_name=user.role_name or payload.get("role") or "")


# ---------------------------
# AuthZ: Permission Check
# ---------------------------

# reads: anyone signed in; writes: admin | manager; deletes: admin
DEFAULT_ROLE_PERMS = {
    "admin": {"*"},
    "manager": {"*:read", "*:write"},
    "employee": {"*:read"},
}


def _perm_allows(perms: Set[str], needed: str) -> bool:
    """
    Matching rules:
      - exact: needed in perms
      - global wildcard: "*"
      - resource wildcard: "resource:*" covers "resource:<action>"
      - action wildcard: "*:action" covers "<resource>:action"
    """
    if needed in perms or "*" in perms:
        return True
    if ":" in needed:
        resource, action = needed.split(":", 1)
        return f"{resource}:*" in perms or f"*:{action}" in perms
    return False


def require_permissions(required: List[str]):
    """
    Usage:
      dependencies=[Depends(require_permissions(["quotations:write"]))]

    Any one of ``required`` satisfied by the role's permissions is enough.
    """
    required_set: Set[str] = set(required)

    def checker(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        perms = DEFAULT_ROLE_PERMS.get(current.role_name, set())
        if any(_perm_allows(perms, r) for r in required_set):
            return current
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permission denied")

    return checker


def actor_from(request: Request, current: CurrentUser) -> Actor:
    return Actor(
        user_id=current.id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def page_size(size: Optional[int]) -> int:
    """Clamp the requested page size to the configured bounds."""
    size = size or settings.DEFAULT_PAGE_SIZE
    return max(1, min(size, settings.MAX_PAGE_SIZE))
