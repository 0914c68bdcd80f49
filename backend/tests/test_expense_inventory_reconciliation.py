# backend/tests/test_expense_inventory_reconciliation.py
from __future__ import annotations

from sqlalchemy import delete

from stayledger.db import SessionLocal
from stayledger.domain import activity as act
from stayledger.models import InventoryItem


def _expense(client, acme, **overrides):
    body = {
        "listing_id": acme["listing_id"],
        "inventory_id": acme["item_id"],
        "quantity_used": 5,
        "total_cost": 25.0,
        "markup_percent": 15.0,
    }
    body.update(overrides)
    r = client.post("/api/expenses", json=body, headers=acme["headers"])
    assert r.status_code == 201, r.text
    return r.json()


def test_create_then_delete_restores_quantity(client, seed, acme):
    exp = _expense(client, acme, quantity_used=5)
    assert seed.quantity(acme["item_id"]) == 15

    r = client.delete(f"/api/expenses/{exp['id']}", headers=acme["headers"])
    assert r.status_code == 200
    assert seed.quantity(acme["item_id"]) == 20
    assert seed.count_actions(act.INVENTORY_RESTORED) == 1
    assert seed.count_actions(act.EXPENSE_DELETED) == 1


def test_quantity_change_applies_only_the_difference(client, seed, acme):
    exp = _expense(client, acme, quantity_used=5)
    assert seed.quantity(acme["item_id"]) == 15

    r = client.put(f"/api/expenses/{exp['id']}", json={"quantity_used": 3}, headers=acme["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["quantity_used"] == 3
    assert seed.quantity(acme["item_id"]) == 17
    assert seed.count_actions(act.INVENTORY_ADJUSTED) == 1


def test_moving_expense_to_another_item(client, seed, acme):
    other = seed.item(acme["portfolio_id"], "Soap", quantity=20, min_quantity=2)
    exp = _expense(client, acme, quantity_used=4)
    assert seed.quantity(acme["item_id"]) == 16

    r = client.put(
        f"/api/expenses/{exp['id']}",
        json={"inventory_id": other, "quantity_used": 6},
        headers=acme["headers"],
    )
    assert r.status_code == 200, r.text
    assert r.json()["inventory_id"] == other
    assert seed.quantity(acme["item_id"]) == 20
    assert seed.quantity(other) == 14


def test_null_fields_in_update_are_ignored(client, seed, acme):
    exp = _expense(client, acme, quantity_used=5)

    r = client.put(
        f"/api/expenses/{exp['id']}",
        json={"inventory_id": None, "quantity_used": None, "notes": "restocked bathroom"},
        headers=acme["headers"],
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["inventory_id"] == acme["item_id"]
    assert body["quantity_used"] == 5
    assert body["notes"] == "restocked bathroom"
    assert seed.quantity(acme["item_id"]) == 15


def test_low_stock_alert_is_logged_once(client, seed, acme):
    # 20 on hand, minimum 10: using 12 leaves 8.
    exp = _expense(client, acme, quantity_used=12, total_cost=60.0)
    assert seed.quantity(acme["item_id"]) == 8
    assert seed.count_actions(act.LOW_INVENTORY_ALERT) == 1

    r = client.delete(f"/api/expenses/{exp['id']}", headers=acme["headers"])
    assert r.status_code == 200
    assert seed.quantity(acme["item_id"]) == 20
    assert seed.count_actions(act.LOW_INVENTORY_ALERT) == 1


def test_no_alert_above_threshold(client, seed, acme):
    _expense(client, acme, quantity_used=2)
    assert seed.quantity(acme["item_id"]) == 18
    assert seed.count_actions(act.LOW_INVENTORY_ALERT) == 0


def test_quantity_may_go_negative(client, seed, acme):
    _expense(client, acme, quantity_used=25)
    assert seed.quantity(acme["item_id"]) == -5


def test_unknown_listing_leaves_inventory_untouched(client, seed, acme):
    r = client.post(
        "/api/expenses",
        json={"listing_id": 9999, "inventory_id": acme["item_id"], "quantity_used": 5, "total_cost": 10.0},
        headers=acme["headers"],
    )
    assert r.status_code == 404
    assert r.json()["detail"] == "Listing not found"
    assert seed.quantity(acme["item_id"]) == 20
    assert seed.count_actions(act.EXPENSE_CREATED) == 0


def test_unknown_target_item_rolls_back_update(client, seed, acme):
    exp = _expense(client, acme, quantity_used=5)

    r = client.put(f"/api/expenses/{exp['id']}", json={"inventory_id": 9999}, headers=acme["headers"])
    assert r.status_code == 404
    assert seed.quantity(acme["item_id"]) == 15

    r = client.get(f"/api/expenses/{exp['id']}", headers=acme["headers"])
    assert r.json()["inventory_id"] == acme["item_id"]


def test_billed_amount_defaults_to_markup(client, acme):
    exp = _expense(client, acme, quantity_used=None, inventory_id=None, total_cost=100.0, markup_percent=15.0)
    assert exp["billed_amount"] == 115.0


def test_client_billed_amount_is_kept(client, acme):
    exp = _expense(client, acme, total_cost=100.0, markup_percent=15.0, billed_amount=120.0)
    assert exp["billed_amount"] == 120.0


def test_cost_change_recomputes_billed_amount(client, acme):
    exp = _expense(client, acme, total_cost=100.0, markup_percent=10.0)
    assert exp["billed_amount"] == 110.0

    r = client.put(f"/api/expenses/{exp['id']}", json={"total_cost": 200.0}, headers=acme["headers"])
    assert r.status_code == 200
    assert r.json()["billed_amount"] == 220.0


def test_listing_change_moves_owner(client, seed, acme):
    other_owner = seed.owner(acme["portfolio_id"], "Beta Rentals", "beta@rentals.test")
    other_listing = seed.listing(acme["portfolio_id"], other_owner, "Cabin 7")
    exp = _expense(client, acme)

    r = client.put(f"/api/expenses/{exp['id']}", json={"listing_id": other_listing}, headers=acme["headers"])
    assert r.status_code == 200
    assert r.json()["owner_id"] == other_owner

    r = client.get(f"/api/expenses/owner/{other_owner}", headers=acme["headers"])
    assert [e["id"] for e in r.json()] == [exp["id"]]


def test_towels_scenario(client, seed):
    pid = seed.portfolio("Acme")
    headers = seed.user(pid, "ops@acme.test")
    owner = seed.owner(pid, "Acme", "acme@owners.test")
    unit = seed.listing(pid, owner, "Unit 1")
    towels = seed.item(pid, "Towels", quantity=20, min_quantity=10)

    r = client.post(
        "/api/expenses",
        json={
            "listing_id": unit,
            "inventory_id": towels,
            "quantity_used": 12,
            "total_cost": 24.00,
            "markup_percent": 15,
            "billed_amount": 27.60,
        },
        headers=headers,
    )
    assert r.status_code == 201, r.text
    assert r.json()["billed_amount"] == 27.60
    assert r.json()["owner_id"] == owner
    assert seed.quantity(towels) == 8
    assert seed.count_actions(act.LOW_INVENTORY_ALERT) == 1

    r = client.delete(f"/api/expenses/{r.json()['id']}", headers=headers)
    assert r.status_code == 200
    assert seed.quantity(towels) == 20
    assert seed.count_actions(act.LOW_INVENTORY_ALERT) == 1


def _drop_item_row(item_id):
    db = SessionLocal()
    try:
        db.execute(delete(InventoryItem).where(InventoryItem.id == item_id))
        db.commit()
    finally:
        db.close()


def test_update_skips_adjustment_when_item_row_is_gone(client, seed, acme):
    exp = _expense(client, acme, quantity_used=5)
    _drop_item_row(acme["item_id"])

    r = client.put(f"/api/expenses/{exp['id']}", json={"quantity_used": 2}, headers=acme["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["quantity_used"] == 2
    assert seed.count_actions(act.INVENTORY_ADJUSTED) == 0
    assert seed.count_actions(act.EXPENSE_UPDATED) == 1


def test_delete_skips_restore_when_item_row_is_gone(client, seed, acme):
    exp = _expense(client, acme, quantity_used=5)
    _drop_item_row(acme["item_id"])

    r = client.delete(f"/api/expenses/{exp['id']}", headers=acme["headers"])
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert seed.count_actions(act.INVENTORY_RESTORED) == 0
    assert seed.count_actions(act.EXPENSE_DELETED) == 1


def test_expense_against_already_low_item_alerts_without_quantity(client, seed, acme):
    low = seed.item(acme["portfolio_id"], "Soap", quantity=3, min_quantity=10)

    _expense(client, acme, inventory_id=low, quantity_used=None)
    assert seed.quantity(low) == 3
    assert seed.count_actions(act.LOW_INVENTORY_ALERT) == 1
