# backend/tests/conftest.py
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from planner.main import app
from planner.api import deps as app_deps
from planner.core.config import build_engine
from planner.models import Base, Client, ContractTerm, Package, Segment, Service, User

# -----------------------------
# Test DB: in-memory SQLite shared through StaticPool
# -----------------------------
engine = build_engine("sqlite://")
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class _FakeCurrentUser:
    def __init__(self, id: int, email: str, role_name: str = "admin"):
        self.id = id
        self.email = email
        self.role_name = role_name


def _as(role_name: str):
    return lambda: _FakeCurrentUser(id=1, email="admin@agency.io", role_name=role_name)


# -----------------------------
# Pytest fixtures
# -----------------------------
@pytest.fixture(autouse=True)
def _fresh_db():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        db.add(User(id=1, email="admin@agency.io", password_hash="x", role_name="admin"))
        db.commit()
    finally:
        db.close()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """Authenticated as admin; use ``as_role`` to switch."""
    app.dependency_overrides[app_deps.get_db] = override_get_db
    app.dependency_overrides[app_deps.get_current_user] = _as("admin")
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anon_client():
    """Real token handling; only the database is swapped."""
    app.dependency_overrides[app_deps.get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def as_role():
    def switch(role_name: str):
        app.dependency_overrides[app_deps.get_current_user] = _as(role_name)
    return switch


# -----------------------------
# Seed helpers
# -----------------------------
def _add(db, row):
    db.add(row)
    db.commit()
    row_id = row.id
    # hand the shared connection back before the app uses it
    db.close()
    return row_id


@pytest.fixture
def make_client(db):
    def make(name="Acme", **kw):
        return _add(db, Client(business_name=name, status="active", deleted=False, **kw))
    return make


@pytest.fixture
def make_service(db):
    def make(price="100", discount="0", discount_type="percentage", client_id=None, **kw):
        return _add(
            db,
            Service(
                name_en=kw.pop("name_en", "Photo shoot"),
                name_ar=kw.pop("name_ar", "تصوير"),
                price=Decimal(price),
                discount=Decimal(discount),
                discount_type=discount_type,
                is_global=client_id is None,
                client_id=client_id,
                deleted=False,
                **kw,
            ),
        )
    return make


@pytest.fixture
def make_package(db):
    def make(price="500", client_id=None, **kw):
        return _add(
            db,
            Package(
                name_en="Starter",
                name_ar="البداية",
                price=Decimal(price),
                discount=Decimal("0"),
                discount_type="percentage",
                is_global=client_id is None,
                client_id=client_id,
                deleted=False,
                **kw,
            ),
        )
    return make


@pytest.fixture
def make_term(db):
    def make(key="Payment", key_ar="الدفع", **kw):
        return _add(db, ContractTerm(key=key, key_ar=key_ar, deleted=False, **kw))
    return make


@pytest.fixture
def make_segment(db):
    def make(client_id, name="Youth", **kw):
        return _add(db, Segment(client_id=client_id, name=name, deleted=False, **kw))
    return make
