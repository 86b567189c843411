# backend/planner/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings

# ---- passwords ----
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        # unrecognized hash format (e.g. a seeded placeholder)
        return False


def password_needs_rehash(hashed: str) -> bool:
    """True when the stored hash uses outdated bcrypt settings."""
    return pwd_context.needs_update(hashed)


# ---- access tokens ----
def create_access_token(user_id: int, role_name: str, expires_minutes: Optional[int] = None) -> str:
    """Claims: sub = user id (string, per JWT), role = admin | manager | employee."""
    now = datetime.now(timezone.utc)
    ttl = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": str(user_id), "role": role_name, "iat": now, "exp": now + ttl}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Signature and expiry are checked by jose; any failure is a ValueError."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise ValueError("Invalid token") from e
