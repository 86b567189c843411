# backend/tests/test_catalog_api.py
from decimal import Decimal

from planner.models import User

API = "/api/v1"


# -----------------------------
# Services
# -----------------------------
def test_create_global_service(client):
    r = client.post(
        f"{API}/services/",
        json={"name_en": "Reel", "name_ar": "ريل", "category": "reels", "price": 120, "discount": 5},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["is_global"] is True and body["client_id"] is None
    assert Decimal(body["price"]) == Decimal("120")


def test_global_service_cannot_have_owner(client, make_client):
    cid = make_client()
    r = client.post(
        f"{API}/services/",
        json={"name_en": "Reel", "name_ar": "ريل", "is_global": True, "client_id": cid},
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


def test_client_service_needs_live_owner(client):
    r = client.post(f"{API}/services/", json={"name_en": "Reel", "name_ar": "ريل", "is_global": False})
    assert r.status_code == 400

    r = client.post(
        f"{API}/services/", json={"name_en": "Reel", "name_ar": "ريل", "is_global": False, "client_id": 77},
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_CLIENT"


def test_making_service_global_drops_owner(client, make_client, make_service):
    cid = make_client()
    sid = make_service(client_id=cid)
    r = client.put(f"{API}/services/{sid}", json={"is_global": True})
    assert r.status_code == 200, r.text
    assert r.json()["client_id"] is None


def test_service_list_for_client(client, make_client, make_service):
    a, b = make_client("A"), make_client("B")
    make_service()
    own = make_service(client_id=a)
    make_service(client_id=b)
    body = client.get(f"{API}/services/", params={"client_id": a}).json()
    assert body["meta"]["total"] == 2
    assert own in [s["id"] for s in body["items"]]


# -----------------------------
# Packages
# -----------------------------
def test_package_members_must_exist(client):
    r = client.post(
        f"{API}/packages/",
        json={"name_en": "Gold", "name_ar": "ذهبي", "price": 900, "service_ids": [404]},
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_REFERENCE"


def test_global_package_cannot_bundle_client_service(client, make_client, make_service):
    cid = make_client()
    sid = make_service(client_id=cid)
    r = client.post(
        f"{API}/packages/",
        json={"name_en": "Gold", "name_ar": "ذهبي", "price": 900, "service_ids": [sid]},
    )
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "CROSS_TENANT_REFERENCE"


def test_package_activation(client, make_service):
    sid = make_service()
    r = client.post(
        f"{API}/packages/",
        json={
            "name_en": "Gold",
            "name_ar": "ذهبي",
            "price": 900,
            "service_ids": [sid],
            "features": [{"en": "4 reels", "ar": "٤ ريلز", "quantity": 4}],
        },
    )
    assert r.status_code == 201, r.text
    pid = r.json()["id"]
    assert r.json()["is_active"] is True

    assert client.patch(f"{API}/packages/{pid}/deactivate").json()["is_active"] is False
    listed = client.get(f"{API}/packages/", params={"is_active": True}).json()
    assert listed["meta"]["total"] == 0
    assert client.patch(f"{API}/packages/{pid}/activate").json()["is_active"] is True


# -----------------------------
# Contract terms
# -----------------------------
def test_bulk_terms(client):
    terms = [{"key": f"Term {i}", "key_ar": f"بند {i}"} for i in range(3)]
    r = client.post(f"{API}/contract-terms/bulk", json={"terms": terms})
    assert r.status_code == 201, r.text
    assert [t["key"] for t in r.json()] == ["Term 0", "Term 1", "Term 2"]


def test_bulk_terms_limit(client):
    terms = [{"key": f"Term {i}", "key_ar": f"بند {i}"} for i in range(51)]
    r = client.post(f"{API}/contract-terms/bulk", json={"terms": terms})
    assert r.status_code == 400
    assert client.get(f"{API}/contract-terms/").json()["meta"]["total"] == 0


def test_deleted_term_is_gone(client, make_term):
    tid = make_term()
    assert client.delete(f"{API}/contract-terms/{tid}").status_code == 204
    assert client.get(f"{API}/contract-terms/{tid}").status_code == 404


# -----------------------------
# Client-owned resources
# -----------------------------
def test_bulk_segments(client, make_client):
    cid = make_client()
    r = client.post(
        f"{API}/clients/{cid}/segments/bulk",
        json={"items": [{"name": "Youth", "age_range": ["18-24"]}, {"name": "Parents"}]},
    )
    assert r.status_code == 201, r.text
    assert [s["client_id"] for s in r.json()] == [cid, cid]
    assert len(client.get(f"{API}/clients/{cid}/segments/").json()) == 2


def test_other_clients_row_is_not_found(client, make_client, make_segment):
    a, b = make_client("A"), make_client("B")
    seg = make_segment(b)
    assert client.get(f"{API}/clients/{a}/segments/{seg}").status_code == 404
    assert client.put(f"{API}/clients/{a}/segments/{seg}", json={"name": "x"}).status_code == 404
    assert client.get(f"{API}/clients/{b}/segments/{seg}").status_code == 200


def test_competitor_update_keeps_name_on_null(client, make_client):
    cid = make_client()
    comp = client.post(
        f"{API}/clients/{cid}/competitors/", json={"name": "Rival", "swot_strengths": ["price"]},
    ).json()
    r = client.put(f"{API}/clients/{cid}/competitors/{comp['id']}", json={"name": None, "description": "big"})
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Rival"
    assert r.json()["description"] == "big"


# -----------------------------
# Clients & roles
# -----------------------------
def test_client_crud(client):
    r = client.post(f"{API}/clients/", json={"business_name": "Acme", "email": "ops@acme-agency.io"})
    assert r.status_code == 201, r.text
    cid = r.json()["id"]
    assert r.json()["created_by"] == 1

    r = client.patch(f"{API}/clients/{cid}", json={"status": "inactive"})
    assert r.json()["status"] == "inactive"
    assert client.get(f"{API}/clients/", params={"status": "active"}).json()["meta"]["total"] == 0

    assert client.delete(f"{API}/clients/{cid}").status_code == 204
    assert client.get(f"{API}/clients/{cid}").status_code == 404


def test_employee_cannot_write_catalog(client, as_role):
    as_role("employee")
    r = client.post(f"{API}/services/", json={"name_en": "Reel", "name_ar": "ريل"})
    assert r.status_code == 403
    assert client.get(f"{API}/services/").status_code == 200


def test_audit_is_admin_only(client, as_role):
    as_role("manager")
    assert client.get(f"{API}/audit/").status_code == 403


# -----------------------------
# Auth
# -----------------------------
def _clear_users(db):
    db.query(User).delete()
    db.commit()
    db.close()


def test_signup_bootstraps_first_admin_only(anon_client, db):
    _clear_users(db)
    creds = {"email": "owner@agency.io", "password": "s3cret!"}
    r = anon_client.post(f"{API}/auth/signup", json=creds)
    assert r.status_code == 201, r.text
    assert r.json()["access_token"]

    r = anon_client.post(f"{API}/auth/signup", json={"email": "late@agency.io", "password": "s3cret!"})
    assert r.status_code == 403


def test_login_me_and_register(anon_client, db):
    _clear_users(db)
    anon_client.post(f"{API}/auth/signup", json={"email": "owner@agency.io", "password": "s3cret!"})

    assert anon_client.post(
        f"{API}/auth/login", json={"email": "owner@agency.io", "password": "wrong"},
    ).status_code == 401

    token = anon_client.post(
        f"{API}/auth/login", json={"email": "OWNER@agency.io", "password": "s3cret!"},
    ).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    me = anon_client.get(f"{API}/auth/me", headers=headers).json()
    assert me["email"] == "owner@agency.io" and me["role"] == "admin"

    r = anon_client.post(
        f"{API}/auth/register",
        json={"email": "staff@agency.io", "password": "s3cret!", "role": "employee"},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    assert r.json()["role_name"] == "employee"

    staff = anon_client.post(
        f"{API}/auth/login", json={"email": "staff@agency.io", "password": "s3cret!"},
    ).json()["access_token"]
    r = anon_client.post(
        f"{API}/auth/register",
        json={"email": "other@agency.io", "password": "s3cret!"},
        headers={"Authorization": f"Bearer {staff}"},
    )
    assert r.status_code == 403


def test_bad_token_is_rejected(anon_client):
    r = anon_client.get(f"{API}/auth/me", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_health(anon_client):
    assert anon_client.get("/health").json() == {"status": "ok"}
