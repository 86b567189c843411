# backend/tests/test_users_api.py
import pytest

from planner.core.security import create_access_token, hash_password
from planner.models import User

API = "/api/v1"


@pytest.fixture
def make_user(db):
    def make(email="staff@agency.io", role_name="employee", password="secret123", **kw):
        user = User(email=email, password_hash=hash_password(password), role_name=role_name, is_active=True, **kw)
        db.add(user)
        db.commit()
        user_id = user.id
        db.close()
        return user_id
    return make


def _bearer(user_id, role_name):
    return {"Authorization": f"Bearer {create_access_token(user_id, role_name)}"}


# -----------------------------
# List / get
# -----------------------------
def test_list_users_with_filters(client, make_user):
    make_user("ops@agency.io", "manager", full_name="Ops Lead")
    make_user("desk@agency.io", "employee")

    body = client.get(f"{API}/users/").json()
    assert body["meta"]["total"] == 3
    assert {u["email"] for u in body["items"]} == {"admin@agency.io", "ops@agency.io", "desk@agency.io"}

    managers = client.get(f"{API}/users/", params={"role": "manager"}).json()["items"]
    assert [u["email"] for u in managers] == ["ops@agency.io"]

    found = client.get(f"{API}/users/", params={"search": "ops lead"}).json()["items"]
    assert [u["email"] for u in found] == ["ops@agency.io"]


def test_get_user(client, make_user):
    uid = make_user(full_name="Desk")
    r = client.get(f"{API}/users/{uid}")
    assert r.status_code == 200
    assert r.json()["full_name"] == "Desk"
    assert "password_hash" not in r.json()
    assert client.get(f"{API}/users/9999").status_code == 404


# -----------------------------
# Update
# -----------------------------
def test_patch_changes_only_sent_fields(client, make_user):
    uid = make_user(full_name="Before")
    r = client.patch(f"{API}/users/{uid}", json={"role_name": "manager", "email": "New@Agency.io"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["role_name"] == "manager"
    assert body["email"] == "new@agency.io"
    assert body["full_name"] == "Before"


def test_patch_rejects_unknown_role(client, make_user):
    uid = make_user()
    assert client.patch(f"{API}/users/{uid}", json={"role_name": "owner"}).status_code == 422


def test_patch_email_taken(client, make_user):
    uid = make_user()
    r = client.patch(f"{API}/users/{uid}", json={"email": "admin@agency.io"})
    assert r.status_code == 409


def test_admin_cannot_demote_or_disable_themselves(client):
    assert client.patch(f"{API}/users/1", json={"role_name": "employee"}).status_code == 409
    assert client.patch(f"{API}/users/1", json={"is_active": False}).status_code == 409
    assert client.delete(f"{API}/users/1").status_code == 409
    assert client.patch(f"{API}/users/1", json={"full_name": "Root"}).json()["full_name"] == "Root"


def test_update_is_audited(client, make_user):
    uid = make_user()
    client.patch(f"{API}/users/{uid}", json={"full_name": "Named"})
    items = client.get(f"{API}/audit/", params={"entity_type": "User", "entity_id": uid}).json()["items"]
    assert [a["action"] for a in items] == ["update"]
    assert items[0]["changes"] == {"full_name": "Named"}


# -----------------------------
# Disable
# -----------------------------
def test_disabled_user_can_no_longer_sign_in(anon_client, make_user):
    uid = make_user("leaver@agency.io", password="secret123")
    their_token = _bearer(uid, "employee")
    assert anon_client.get(f"{API}/auth/me", headers=their_token).status_code == 200

    r = anon_client.delete(f"{API}/users/{uid}", headers=_bearer(1, "admin"))
    assert r.status_code == 204

    assert anon_client.get(f"{API}/auth/me", headers=their_token).status_code == 401
    r = anon_client.post(f"{API}/auth/login", json={"email": "leaver@agency.io", "password": "secret123"})
    assert r.status_code == 403

    # the row stays and shows as inactive
    body = anon_client.get(f"{API}/users/{uid}", headers=_bearer(1, "admin")).json()
    assert body["is_active"] is False


def test_reactivate_through_patch(client, make_user):
    uid = make_user()
    client.delete(f"{API}/users/{uid}")
    inactive = client.get(f"{API}/users/", params={"is_active": False}).json()["items"]
    assert [u["id"] for u in inactive] == [uid]
    assert client.patch(f"{API}/users/{uid}", json={"is_active": True}).json()["is_active"] is True


# -----------------------------
# Gating
# -----------------------------
@pytest.mark.parametrize("role", ["manager", "employee"])
def test_non_admins_cannot_manage_users(client, as_role, make_user, role):
    uid = make_user()
    as_role(role)
    assert client.get(f"{API}/users/").status_code == 403
    assert client.get(f"{API}/users/{uid}").status_code == 403
    assert client.patch(f"{API}/users/{uid}", json={"full_name": "x"}).status_code == 403
    assert client.delete(f"{API}/users/{uid}").status_code == 403
