# backend/stayledger/services/expense_service.py
"""
Expense lifecycle with inventory reconciliation.

Every public function here is one unit of work: inventory adjustments, the
expense row, and activity-log rows share the request session and are
committed together at the end. Anything raised before the commit is rolled
back by `get_db`.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain import activity as act
from ..domain.activity import log_activity
from ..domain.markup import billed_amount, matches_markup
from ..models import Expense, InventoryItem
from ..schemas import ExpenseCreate, ExpenseUpdate
from .inventory_ledger import adjust_quantity, check_low_stock
from .ownership import must_get_expense, must_get_inventory, must_get_listing, must_get_owner, scoped

log = logging.getLogger(__name__)


def _resolve_billed(total_cost: float, markup_percent: float, billed: Optional[float], *, expense_id=None) -> float:
    if billed is None:
        return billed_amount(total_cost, markup_percent)
    if not matches_markup(total_cost, markup_percent, billed):
        # Client-supplied amounts are stored as sent.
        log.warning(
            "billed_amount_mismatch",
            extra={"expense_id": expense_id},
        )
    return float(billed)


def list_expenses(db: Session, *, p: Principal, owner_id: Optional[int] = None) -> list[Expense]:
    q = select(Expense)
    if owner_id is not None:
        q = q.where(Expense.owner_id == int(owner_id))
    q = scoped(q, Expense, p).order_by(desc(Expense.date), desc(Expense.id))
    return list(db.scalars(q).all())


def list_for_listing(db: Session, *, p: Principal, listing_id: int) -> list[Expense]:
    must_get_listing(db, p=p, listing_id=listing_id)
    q = select(Expense).where(Expense.listing_id == int(listing_id)).order_by(desc(Expense.date), desc(Expense.id))
    return list(db.scalars(q).all())


def list_for_owner(db: Session, *, p: Principal, owner_id: int) -> list[Expense]:
    must_get_owner(db, p=p, owner_id=owner_id)
    q = select(Expense).where(Expense.owner_id == int(owner_id)).order_by(desc(Expense.date), desc(Expense.id))
    return list(db.scalars(q).all())


def create_expense(db: Session, *, p: Principal, payload: ExpenseCreate) -> Expense:
    # Resolve every reference before anything is mutated.
    listing = must_get_listing(db, p=p, listing_id=payload.listing_id)
    item: Optional[InventoryItem] = None
    if payload.inventory_id is not None:
        item = must_get_inventory(db, p=p, inventory_id=payload.inventory_id)

    row = Expense(
        portfolio_id=int(listing.portfolio_id),
        listing_id=int(listing.id),
        owner_id=int(listing.owner_id),
        inventory_id=int(item.id) if item is not None else None,
        quantity_used=payload.quantity_used,
        total_cost=float(payload.total_cost),
        markup_percent=float(payload.markup_percent),
        billed_amount=_resolve_billed(payload.total_cost, payload.markup_percent, payload.billed_amount),
        notes=payload.notes,
        date=payload.date or datetime.utcnow(),
    )
    db.add(row)

    if item is not None:
        # An expense against an item that is already low still raises the alert.
        new_qty = adjust_quantity(db, item.id, -int(payload.quantity_used)) if payload.quantity_used else item.quantity
        check_low_stock(db, p=p, item=item, quantity=int(new_qty))

    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=listing.portfolio_id,
        action=act.EXPENSE_CREATED,
        details=f"New expense of ${row.total_cost:.2f} created for {listing.name}",
    )
    db.commit()
    db.refresh(row)
    log.info("expense_created", extra={"expense_id": row.id, "portfolio_id": row.portfolio_id})
    return row


def _restore(db: Session, *, p: Principal, item_id: int, quantity: int, reason: str) -> None:
    """Put units back on an item. A missing item is skipped, never fatal."""
    item = db.get(InventoryItem, int(item_id))
    if item is None:
        log.warning("inventory_restore_skipped", extra={"inventory_id": item_id})
        return
    adjust_quantity(db, item.id, int(quantity))
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=item.portfolio_id,
        action=act.INVENTORY_RESTORED,
        details=f"{quantity} units of {item.name} restored {reason}",
    )


def update_expense(db: Session, *, p: Principal, expense_id: int, payload: ExpenseUpdate) -> Expense:
    row = must_get_expense(db, p=p, expense_id=expense_id)
    # Null fields mean "leave as is".
    patch = payload.model_dump(exclude_unset=True, exclude_none=True)

    listing = None
    if "listing_id" in patch:
        listing = must_get_listing(db, p=p, listing_id=patch["listing_id"])

    old_inv = row.inventory_id
    old_qty = int(row.quantity_used or 0)
    new_inv = patch.get("inventory_id", old_inv)
    new_qty = int(patch["quantity_used"]) if "quantity_used" in patch else old_qty

    new_item: Optional[InventoryItem] = None
    if "inventory_id" in patch and new_inv != old_inv:
        new_item = must_get_inventory(db, p=p, inventory_id=new_inv)

    if old_inv is not None and new_item is not None:
        # Moved to a different item: give the old one its units back, then draw from the new one.
        if old_qty:
            _restore(db, p=p, item_id=old_inv, quantity=old_qty, reason="due to expense update")
        if new_qty:
            remaining = adjust_quantity(db, new_item.id, -new_qty)
            check_low_stock(db, p=p, item=new_item, quantity=int(remaining))
    elif old_inv is not None and new_inv == old_inv and new_qty != old_qty:
        diff = old_qty - new_qty
        item = db.get(InventoryItem, int(old_inv))
        if item is None:
            log.warning("inventory_adjust_skipped", extra={"inventory_id": old_inv, "expense_id": row.id})
        else:
            remaining = adjust_quantity(db, item.id, diff)
            if diff > 0:
                details = f"{diff} units of {item.name} returned to inventory due to expense update"
            else:
                details = f"{-diff} additional units of {item.name} used in expense update"
            log_activity(
                db,
                user_id=p.user_id,
                portfolio_id=item.portfolio_id,
                action=act.INVENTORY_ADJUSTED,
                details=details,
            )
            if diff < 0:
                check_low_stock(db, p=p, item=item, quantity=int(remaining))

    if listing is not None:
        row.listing_id = int(listing.id)
        row.owner_id = int(listing.owner_id)
        row.portfolio_id = int(listing.portfolio_id)
    if "inventory_id" in patch:
        row.inventory_id = int(new_inv)
    for k in ("quantity_used", "total_cost", "markup_percent", "notes", "date"):
        if k in patch:
            setattr(row, k, patch[k])

    if "billed_amount" in patch:
        row.billed_amount = _resolve_billed(row.total_cost, row.markup_percent, patch["billed_amount"], expense_id=row.id)
    elif "total_cost" in patch or "markup_percent" in patch:
        row.billed_amount = billed_amount(row.total_cost, row.markup_percent)

    db.add(row)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=row.portfolio_id,
        action=act.EXPENSE_UPDATED,
        details=f"Expense updated for ${float(row.total_cost):.2f}",
    )
    db.commit()
    db.refresh(row)
    log.info("expense_updated", extra={"expense_id": row.id, "portfolio_id": row.portfolio_id})
    return row


def delete_expense(db: Session, *, p: Principal, expense_id: int) -> None:
    row = must_get_expense(db, p=p, expense_id=expense_id)

    if row.inventory_id is not None and row.quantity_used:
        _restore(
            db,
            p=p,
            item_id=row.inventory_id,
            quantity=int(row.quantity_used),
            reason="to inventory after expense deletion",
        )

    total = float(row.total_cost)
    portfolio_id = row.portfolio_id
    db.delete(row)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=portfolio_id,
        action=act.EXPENSE_DELETED,
        details=f"Expense of ${total:.2f} deleted",
    )
    db.commit()
    log.info("expense_deleted", extra={"expense_id": expense_id, "portfolio_id": portfolio_id})
