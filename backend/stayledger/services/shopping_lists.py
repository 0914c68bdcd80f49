# backend/stayledger/services/shopping_lists.py
from __future__ import annotations

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain import activity as act
from ..domain.activity import log_activity
from ..models import InventoryItem, ShoppingList, ShoppingListItem
from .inventory_ledger import RefillRequest, apply_refill, low_stock_items, min_quantity_of
from .ownership import must_get_inventory, must_get_shopping_item, must_get_shopping_list

log = logging.getLogger(__name__)

DEFAULT_LIST_NAME = "Low Stock Items"


def _touch(lst: ShoppingList) -> None:
    lst.updated_at = datetime.utcnow()


def list_lists(db: Session, *, p: Principal) -> list[ShoppingList]:
    q = (
        select(ShoppingList)
        .where(ShoppingList.user_id == p.user_id, ShoppingList.is_default.is_(False))
        .order_by(desc(ShoppingList.updated_at), desc(ShoppingList.id))
    )
    return list(db.scalars(q).all())


def default_list(db: Session, *, p: Principal) -> ShoppingList:
    """
    Get or create the user's "Low Stock Items" list and top it up with
    every low-stock item that is not on it yet.
    """
    lst = db.scalar(select(ShoppingList).where(ShoppingList.user_id == p.user_id, ShoppingList.is_default.is_(True)))
    if lst is None:
        now = datetime.utcnow()
        lst = ShoppingList(user_id=p.user_id, name=DEFAULT_LIST_NAME, is_default=True, created_at=now, updated_at=now)
        db.add(lst)
        db.flush()

    on_list = {int(i.inventory_id) for i in lst.items}
    added = 0
    for item in low_stock_items(db, p):
        if int(item.id) in on_list:
            continue
        now = datetime.utcnow()
        lst.items.append(
            ShoppingListItem(
                inventory_id=item.id,
                quantity=max(min_quantity_of(item) - int(item.quantity), 1),
                completed=False,
                created_at=now,
                updated_at=now,
            )
        )
        added += 1

    if added:
        _touch(lst)
    db.commit()
    db.refresh(lst)
    return lst


def create_list(db: Session, *, p: Principal, name: str) -> ShoppingList:
    now = datetime.utcnow()
    lst = ShoppingList(user_id=p.user_id, name=name.strip(), is_default=False, created_at=now, updated_at=now)
    db.add(lst)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.SHOPPING_LIST_CREATED,
        details=f'Created shopping list "{lst.name}"',
    )
    db.commit()
    db.refresh(lst)
    return lst


def rename_list(db: Session, *, p: Principal, list_id: int, name: str) -> ShoppingList:
    lst = must_get_shopping_list(db, p=p, list_id=list_id)
    lst.name = name.strip()
    _touch(lst)
    db.add(lst)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.SHOPPING_LIST_UPDATED,
        details=f'Updated shopping list "{lst.name}"',
    )
    db.commit()
    db.refresh(lst)
    return lst


def delete_list(db: Session, *, p: Principal, list_id: int) -> None:
    lst = must_get_shopping_list(db, p=p, list_id=list_id)
    if lst.is_default:
        raise HTTPException(status_code=400, detail="Cannot delete the default shopping list")
    name = lst.name
    db.delete(lst)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.SHOPPING_LIST_DELETED,
        details=f'Deleted shopping list "{name}"',
    )
    db.commit()


def add_item(db: Session, *, p: Principal, list_id: int, inventory_id: int, quantity: int = 1) -> ShoppingListItem:
    lst = must_get_shopping_list(db, p=p, list_id=list_id)
    inv = must_get_inventory(db, p=p, inventory_id=inventory_id)

    now = datetime.utcnow()
    row = ShoppingListItem(inventory_id=inv.id, quantity=int(quantity), completed=False, created_at=now, updated_at=now)
    lst.items.append(row)
    _touch(lst)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.SHOPPING_LIST_ITEM_ADDED,
        details=f'Added {inv.name} to shopping list "{lst.name}"',
    )
    db.commit()
    db.refresh(row)
    return row


def update_item(db: Session, *, p: Principal, item_id: int, quantity=None, completed=None) -> ShoppingListItem:
    row = must_get_shopping_item(db, p=p, item_id=item_id)
    if quantity is not None:
        row.quantity = int(quantity)
    if completed is not None:
        row.completed = bool(completed)
    row.updated_at = datetime.utcnow()
    _touch(row.shopping_list)
    db.add(row)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.SHOPPING_LIST_ITEM_UPDATED,
        details=f'Updated {_item_name(row)} in "{row.shopping_list.name}"',
    )
    db.commit()
    db.refresh(row)
    return row


def set_completed(db: Session, *, p: Principal, item_id: int, completed: bool) -> ShoppingListItem:
    row = must_get_shopping_item(db, p=p, item_id=item_id)
    row.completed = bool(completed)
    row.updated_at = datetime.utcnow()
    db.add(row)
    state = "completed" if completed else "not completed"
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.SHOPPING_LIST_ITEM_COMPLETED if completed else act.SHOPPING_LIST_ITEM_UNCOMPLETED,
        details=f'Marked {_item_name(row)} as {state} in "{row.shopping_list.name}"',
    )
    db.commit()
    db.refresh(row)
    return row


def remove_item(db: Session, *, p: Principal, item_id: int) -> None:
    row = must_get_shopping_item(db, p=p, item_id=item_id)
    lst = row.shopping_list
    name = _item_name(row)
    lst.items.remove(row)
    _touch(lst)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.SHOPPING_LIST_ITEM_REMOVED,
        details=f'Removed {name} from shopping list "{lst.name}"',
    )
    db.commit()


def refill_completed(db: Session, *, p: Principal, list_id: int) -> list[InventoryItem]:
    """Restock every completed item on the list, then clear the completed flags."""
    lst = must_get_shopping_list(db, p=p, list_id=list_id)
    done = [i for i in lst.items if i.completed]
    if not done:
        raise HTTPException(status_code=400, detail="No completed items to refill")

    now = datetime.utcnow()
    touched: list[InventoryItem] = []
    for row in done:
        inv = row.inventory_item
        apply_refill(db, p=p, item=inv, req=RefillRequest(inv.id, int(row.quantity), 0.0, f'From shopping list "{lst.name}"'))
        row.completed = False
        row.updated_at = now
        if inv not in touched:
            touched.append(inv)
    _touch(lst)

    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.INVENTORY_REFILLED,
        details=f'Refilled {len(done)} inventory items from shopping list "{lst.name}"',
    )
    db.commit()
    for inv in touched:
        db.refresh(inv)
    log.info("shopping_list_refilled", extra={"portfolio_id": p.portfolio_id})
    return touched


def _item_name(row: ShoppingListItem) -> str:
    inv = row.inventory_item
    return inv.name if inv is not None else "item"
