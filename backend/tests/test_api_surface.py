# backend/tests/test_api_surface.py
from __future__ import annotations

from stayledger.domain import activity as act


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_validation_errors_are_400(client, acme):
    r = client.post("/api/expenses", json={"listing_id": "not-a-number"}, headers=acme["headers"])
    assert r.status_code == 400
    body = r.json()
    assert body["detail"] == "Invalid request data"
    assert body["errors"]


def test_missing_identity_is_rejected(client):
    r = client.get("/api/owners")
    assert r.status_code == 401


def test_register_login_and_bearer_me(client):
    r = client.post(
        "/api/auth/register",
        json={"username": "jane", "email": "Jane@Example.test", "password": "s3cret!", "company_name": "Jane Stays"},
    )
    assert r.status_code == 201, r.text
    assert r.json()["user"]["role"] == "standard_admin"

    dup = client.post("/api/auth/register", json={"username": "jane", "email": "x@y.test", "password": "s3cret!"})
    assert dup.status_code == 400
    assert dup.json()["detail"] == "Username or email already registered"

    bad = client.post("/api/auth/login", json={"username": "jane", "password": "wrong!!"})
    assert bad.status_code == 401

    r = client.post("/api/auth/login", json={"username": "jane@example.test", "password": "s3cret!"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    client.cookies.clear()
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "jane@example.test"


def test_owner_and_listing_lifecycle(client, seed, acme):
    h = acme["headers"]
    r = client.post("/api/owners", json={"name": "Cedar Trust", "email": "cedar@trust.test"}, headers=h)
    assert r.status_code == 201
    owner_id = r.json()["id"]

    r = client.post(
        "/api/listings",
        json={"owner_id": owner_id, "name": "Lake House", "address": "9 Shore Rd", "property_type": "house"},
        headers=h,
    )
    assert r.status_code == 201, r.text
    listing_id = r.json()["id"]
    assert r.json()["property_type"] == "house"

    r = client.delete(f"/api/owners/{owner_id}", headers=h)
    assert r.status_code == 400
    assert r.json()["detail"] == "Owner still has listings"

    assert [row["id"] for row in client.get(f"/api/listings/owner/{owner_id}", headers=h).json()] == [listing_id]
    assert client.delete(f"/api/listings/{listing_id}", headers=h).status_code == 200
    assert client.delete(f"/api/owners/{owner_id}", headers=h).status_code == 200
    assert seed.count_actions(act.OWNER_DELETED) == 1


def test_listing_with_expenses_cannot_be_deleted(client, acme):
    h = acme["headers"]
    client.post("/api/expenses", json={"listing_id": acme["listing_id"], "total_cost": 10.0}, headers=h)
    r = client.delete(f"/api/listings/{acme['listing_id']}", headers=h)
    assert r.status_code == 400


def test_dashboard_rollup(client, seed, acme):
    h = acme["headers"]
    client.post(
        "/api/expenses",
        json={"listing_id": acme["listing_id"], "inventory_id": acme["item_id"], "quantity_used": 15, "total_cost": 100.0},
        headers=h,
    )

    r = client.get("/api/stats/dashboard", headers=h)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["total_owners"] == 1
    assert body["total_listings"] == 1
    assert body["total_inventory"] == 1
    assert body["low_stock_count"] == 1
    assert body["total_cost"] == 100.0
    assert body["total_billed"] == 115.0
    assert body["profit"] == 15.0
    assert len(body["chart"]) == 6
    assert body["recent_activity"]


def test_dashboard_requires_admin_role(client, seed, acme):
    viewer = seed.user(acme["portfolio_id"], "viewer@acme.test", "standard_user")
    assert client.get("/api/stats/dashboard", headers=viewer).status_code == 403


def test_activity_feed_is_per_user(client, seed, acme):
    client.post("/api/owners", json={"name": "Dune Co", "email": "dune@co.test"}, headers=acme["headers"])
    colleague = seed.user(acme["portfolio_id"], "colleague@acme.test", "standard_admin")

    mine = client.get("/api/activity", headers=acme["headers"]).json()
    theirs = client.get("/api/activity", headers=colleague).json()
    assert [a["action"] for a in mine] == [act.OWNER_CREATED]
    assert theirs == []


def test_request_id_is_echoed(client):
    r = client.get("/api/health", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    assert client.get("/api/health").headers["X-Request-ID"]


def test_unsafe_request_id_is_replaced(client):
    unsafe = "<script> spaces " + "x" * 200
    rid = client.get("/api/health", headers={"X-Request-ID": unsafe}).headers["X-Request-ID"]
    assert rid != unsafe
    assert len(rid) == 32
