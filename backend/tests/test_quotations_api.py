# backend/tests/test_quotations_api.py
import re
from decimal import Decimal

from planner.models import Client

API = "/api/v1"
D = Decimal


def _scenario_payload(service_id, **extra):
    body = {
        "client_name": "Walk-in customer",
        "services": [service_id],
        "custom_services": [{"id": "c1", "name_en": "Extra edit", "price": 50}],
        "discount_value": 20,
        "discount_type": "fixed",
    }
    body.update(extra)
    return body


def _create(client, make_service, **extra):
    sid = make_service(price="200", discount="10")
    r = client.post(f"{API}/quotations/", json=_scenario_payload(sid, **extra))
    assert r.status_code == 201, r.text
    return r.json()


# -----------------------------
# Pricing
# -----------------------------
def test_quotation_totals(client, make_service):
    q = _create(client, make_service)
    assert re.fullmatch(r"QUO-\d{4}-\d{4}", q["quotation_number"])
    assert D(q["subtotal"]) == D("230")
    assert D(q["total"]) == D("210")
    assert q["is_total_overridden"] is False
    assert q["status"] == "draft"
    assert q["created_by"] == 1

    line = q["lines"][0]
    assert line["source"] == "catalog" and line["kind"] == "service"
    assert D(line["unit_price"]) == D("200")
    assert D(line["amount"]) == D("180")
    assert q["custom_lines"][0]["key"] == "c1"


def test_price_override_per_id(client, make_service):
    q = _create(client, make_service, services_pricing={})
    sid = q["lines"][0]["ref_id"]
    r = client.put(f"{API}/quotations/{q['id']}", json={"services": [sid], "services_pricing": {str(sid): 100}})
    assert r.status_code == 200, r.text
    # 100 - 10% = 90, + 50 custom = 140, - 20 fixed = 120
    assert D(r.json()["subtotal"]) == D("140")
    assert D(r.json()["total"]) == D("120")


def test_partial_price_map_keeps_other_overrides(client, make_service):
    a = make_service(price="100")
    b = make_service(price="100", name_en="Video")
    r = client.post(
        f"{API}/quotations/",
        json={"client_name": "Walk-in", "services": [a, b], "services_pricing": {str(a): 80, str(b): 60}},
    )
    assert r.status_code == 201, r.text
    qid = r.json()["id"]

    r = client.put(f"{API}/quotations/{qid}", json={"services_pricing": {str(a): 90}})
    assert r.status_code == 200, r.text
    prices = {ln["ref_id"]: D(ln["unit_price"]) for ln in r.json()["lines"]}
    assert prices == {a: D("90"), b: D("60")}
    assert D(r.json()["subtotal"]) == D("150")

    r = client.put(f"{API}/quotations/{qid}", json={"services_pricing": None})
    prices = {ln["ref_id"]: D(ln["unit_price"]) for ln in r.json()["lines"]}
    assert prices == {a: D("100"), b: D("100")}


def test_update_keeps_what_was_not_sent(client, make_service):
    q = _create(client, make_service)
    r = client.put(f"{API}/quotations/{q['id']}", json={"note": "call back friday"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["note"] == "call back friday"
    assert body["client_name"] == "Walk-in customer"
    assert D(body["subtotal"]) == D("230")
    assert D(body["total"]) == D("210")
    assert len(body["lines"]) == 1 and len(body["custom_lines"]) == 1


def test_override_law(client, make_service):
    q = _create(client, make_service)
    r = client.put(f"{API}/quotations/{q['id']}", json={"overridden_total": 150})
    body = r.json()
    assert D(body["total"]) == D("150")
    assert D(body["subtotal"]) == D("230")
    assert body["is_total_overridden"] is True

    r = client.put(f"{API}/quotations/{q['id']}", json={"overridden_total": None})
    body = r.json()
    assert D(body["total"]) == D("210")
    assert body["overridden_total"] is None
    assert body["is_total_overridden"] is False


def test_negative_override_is_rejected_by_schema(client, make_service):
    q = _create(client, make_service)
    r = client.put(f"{API}/quotations/{q['id']}", json={"overridden_total": -1})
    assert r.status_code == 422


# -----------------------------
# References
# -----------------------------
def test_unknown_service_is_invalid_reference(client):
    r = client.post(f"{API}/quotations/", json={"client_name": "X", "services": [999]})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "INVALID_REFERENCE"
    assert err["kind"] == "service" and err["id"] == 999


def test_other_clients_service_is_cross_tenant(client, make_client, make_service):
    a, b = make_client("A"), make_client("B")
    sid = make_service(client_id=b)
    r = client.post(f"{API}/quotations/", json={"client_id": a, "services": [sid]})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "CROSS_TENANT_REFERENCE"
    assert r.json()["error"]["cross_tenant_ids"] == [sid]


def test_deleted_client_is_rejected(client, db, make_client):
    cid = make_client()
    db.get(Client, cid).deleted = True
    db.commit()
    db.close()
    r = client.post(f"{API}/quotations/", json={"client_id": cid})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_CLIENT"


def test_linking_a_client_clears_free_text_name(client, make_client, make_service):
    q = _create(client, make_service)
    cid = make_client()
    r = client.put(f"{API}/quotations/{q['id']}", json={"client_id": cid})
    body = r.json()
    assert body["client_id"] == cid
    assert body["client_name"] is None

    r = client.put(f"{API}/quotations/{q['id']}", json={"client_name": "Someone else"})
    body = r.json()
    assert body["client_id"] is None
    assert body["client_name"] == "Someone else"


# -----------------------------
# Status & conversion
# -----------------------------
def test_send_then_approve(client, make_service):
    q = _create(client, make_service)
    r = client.patch(f"{API}/quotations/{q['id']}/send")
    assert r.json()["status"] == "sent" and r.json()["sent_at"]

    r = client.patch(f"{API}/quotations/{q['id']}/send")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    r = client.patch(f"{API}/quotations/{q['id']}/approve")
    assert r.json()["status"] == "approved"


def test_convert_to_contract_copies_pricing(client, make_service):
    q = _create(client, make_service)
    r = client.post(
        f"{API}/quotations/{q['id']}/convert-to-contract",
        json={"start_date": "2026-01-01", "end_date": "2026-12-31"},
    )
    assert r.status_code == 201, r.text
    contract = r.json()
    assert contract["quotation_id"] == q["id"]
    assert contract["client_name"] == "Walk-in customer"
    assert contract["status"] == "draft"
    assert D(contract["total"]) == D("210")
    assert len(contract["lines"]) == 1
    assert re.fullmatch(r"CNT-\d{4}-\d{4}", contract["contract_number"])

    assert client.get(f"{API}/quotations/{q['id']}").json()["status"] == "approved"


def test_convert_rejects_bad_dates(client, make_service):
    q = _create(client, make_service)
    r = client.post(
        f"{API}/quotations/{q['id']}/convert-to-contract",
        json={"start_date": "2026-05-01", "end_date": "2026-05-01"},
    )
    assert r.status_code == 422


def test_rejected_quotation_cannot_be_converted(client, make_service):
    q = _create(client, make_service)
    client.patch(f"{API}/quotations/{q['id']}/reject")
    r = client.post(
        f"{API}/quotations/{q['id']}/convert-to-contract",
        json={"start_date": "2026-01-01", "end_date": "2026-02-01"},
    )
    assert r.status_code == 409


# -----------------------------
# Delete, listing, roles, audit
# -----------------------------
def test_soft_delete_hides_quotation(client, make_service):
    q = _create(client, make_service)
    assert client.delete(f"{API}/quotations/{q['id']}").status_code == 204
    r = client.get(f"{API}/quotations/{q['id']}")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"
    assert client.get(f"{API}/quotations/").json()["meta"]["total"] == 0


def test_list_filters_and_pages(client, make_service):
    _create(client, make_service)
    _create(client, make_service)
    body = client.get(f"{API}/quotations/", params={"size": 1, "search": "Walk-in"}).json()
    assert body["meta"] == {"total": 2, "page": 1, "size": 1, "pages": 2}
    assert len(body["items"]) == 1


def test_roles(client, as_role, make_service):
    q = _create(client, make_service)

    as_role("employee")
    assert client.get(f"{API}/quotations/{q['id']}").status_code == 200
    assert client.put(f"{API}/quotations/{q['id']}", json={"note": "x"}).status_code == 403

    as_role("manager")
    assert client.put(f"{API}/quotations/{q['id']}", json={"note": "x"}).status_code == 200
    assert client.delete(f"{API}/quotations/{q['id']}").status_code == 403


def test_writes_are_audited(client, make_service):
    q = _create(client, make_service)
    client.put(f"{API}/quotations/{q['id']}", json={"note": "n"})
    body = client.get(f"{API}/audit/", params={"entity_type": "Quotation", "entity_id": q["id"]}).json()
    actions = [row["action"] for row in body["items"]]
    assert actions == ["update", "create"]
    assert body["items"][0]["changes"] == {"note": "n"}
