# backend/planner/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
import secrets
from typing import List


class Settings(BaseSettings):
    # --- Security / JWT ---
    SECRET_KEY: str = secrets.token_urlsafe(32)  # set through ENV in production
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24h

    # --- Database ---
    DATABASE_URL: str = "sqlite:///./app.db"

    # --- HTTP ---
    API_PREFIX: str = "/api/v1"
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    # --- Business knobs ---
    DOCUMENT_NUMBER_ATTEMPTS: int = 20
    BULK_CREATE_LIMIT: int = 50
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    def cors_origins(self, fallback: List[str]) -> List[str]:
        """
        CORS_ALLOW_ORIGINS as a clean list (a comma-separated string works too).
        A lone "*" cannot be combined with credentials, so it means ``fallback``.
        """
        raw = self.CORS_ALLOW_ORIGINS
        items = raw.split(",") if isinstance(raw, str) else raw or []
        origins = [str(o).strip().rstrip("/") for o in items if str(o).strip()]
        if not origins or origins == ["*"]:
            return list(fallback)
        return origins


settings = Settings()


def build_engine(url: str):
    """SQLite needs check_same_thread off; in-memory databases share one connection."""
    if not url.startswith("sqlite"):
        return create_engine(url, future=True)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, future=True, **kwargs)


# SQLAlchemy Engine & Session
engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db() -> Session:
    """FastAPI dependency: one DB session for the whole request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
