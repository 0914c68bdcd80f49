# backend/tests/test_portfolio_tenancy_guard.py
from __future__ import annotations


def _other_portfolio(seed):
    pid = seed.portfolio("Other Portfolio")
    return pid, seed.user(pid, "intruder@other.test", "standard_admin")


def _create_expense(client, acme, qty=5):
    r = client.post(
        "/api/expenses",
        json={
            "listing_id": acme["listing_id"],
            "inventory_id": acme["item_id"],
            "quantity_used": qty,
            "total_cost": 20.0,
        },
        headers=acme["headers"],
    )
    assert r.status_code == 201, r.text
    return r.json()["id"]


def test_foreign_expense_update_and_delete_are_not_found(client, seed, acme):
    expense_id = _create_expense(client, acme)
    _, intruder = _other_portfolio(seed)

    r = client.put(f"/api/expenses/{expense_id}", json={"quantity_used": 1}, headers=intruder)
    assert r.status_code == 404

    r = client.delete(f"/api/expenses/{expense_id}", headers=intruder)
    assert r.status_code == 404

    # Untouched: still 5 units drawn.
    assert seed.quantity(acme["item_id"]) == 15
    r = client.get(f"/api/expenses/{expense_id}", headers=acme["headers"])
    assert r.status_code == 200
    assert r.json()["quantity_used"] == 5


def test_foreign_records_are_invisible(client, seed, acme):
    _create_expense(client, acme)
    _, intruder = _other_portfolio(seed)

    assert client.get(f"/api/owners/{acme['owner_id']}", headers=intruder).status_code == 404
    assert client.get(f"/api/listings/{acme['listing_id']}", headers=intruder).status_code == 404
    assert client.get(f"/api/inventory/{acme['item_id']}", headers=intruder).status_code == 404
    assert client.get("/api/expenses", headers=intruder).json() == []
    assert client.get("/api/owners", headers=intruder).json() == []


def test_expense_cannot_draw_foreign_inventory(client, seed, acme):
    other_pid, intruder = _other_portfolio(seed)
    owner = seed.owner(other_pid, "Intruder Owner", "io@other.test")
    listing = seed.listing(other_pid, owner, "Other Unit")

    r = client.post(
        "/api/expenses",
        json={"listing_id": listing, "inventory_id": acme["item_id"], "quantity_used": 3, "total_cost": 9.0},
        headers=intruder,
    )
    assert r.status_code == 404
    assert seed.quantity(acme["item_id"]) == 20


def test_foreign_batch_is_forbidden(client, seed, acme):
    r = client.post(
        "/api/reports/generate",
        json={"month": 3, "year": 2026, "owner_ids": [acme["owner_id"]], "batch_title": "March"},
        headers=acme["headers"],
    )
    assert r.status_code == 201, r.text
    batch_id = r.json()["batch_id"]
    _, intruder = _other_portfolio(seed)

    r = client.get(f"/api/reports/batch/{batch_id}", headers=intruder)
    assert r.status_code == 403
    assert r.json()["detail"] == "Access denied to this batch"

    r = client.delete(f"/api/reports/batch/{batch_id}", headers=intruder)
    assert r.status_code == 403
    assert client.get(f"/api/reports/batch/{batch_id}", headers=acme["headers"]).status_code == 200


def test_administrator_sees_every_portfolio(client, seed, acme):
    expense_id = _create_expense(client, acme)
    other_pid = seed.portfolio("Head Office")
    admin = seed.user(other_pid, "root@stayledger.test", "administrator")

    r = client.get(f"/api/expenses/{expense_id}", headers=admin)
    assert r.status_code == 200
    assert r.json()["portfolio_id"] == acme["portfolio_id"]


def test_standard_user_cannot_generate_reports(client, seed, acme):
    viewer = seed.user(acme["portfolio_id"], "viewer@acme.test", "standard_user")
    r = client.post(
        "/api/reports/generate",
        json={"month": 3, "year": 2026, "owner_ids": [acme["owner_id"]], "batch_title": "March"},
        headers=viewer,
    )
    assert r.status_code == 403
    assert r.json()["detail"] == "Insufficient permissions"
