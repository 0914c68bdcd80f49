# backend/stayledger/services/ownership.py
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..models import Expense, InventoryItem, Listing, Owner, Report, ReportBatch, ShoppingList, ShoppingListItem


def scoped(q, model, p: Principal):
    """Restrict a select to the caller's portfolio unless they are an administrator."""
    if p.is_administrator:
        return q
    return q.where(model.portfolio_id == p.portfolio_id)


def _must_get(db: Session, model, row_id, p: Principal, label: str):
    row = db.scalar(scoped(select(model).where(model.id == row_id), model, p))
    if not row:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def must_get_owner(db: Session, *, p: Principal, owner_id: int) -> Owner:
    return _must_get(db, Owner, owner_id, p, "Owner")


def must_get_listing(db: Session, *, p: Principal, listing_id: int) -> Listing:
    return _must_get(db, Listing, listing_id, p, "Listing")


def must_get_inventory(db: Session, *, p: Principal, inventory_id: int) -> InventoryItem:
    return _must_get(db, InventoryItem, inventory_id, p, "Inventory item")


def must_get_expense(db: Session, *, p: Principal, expense_id: int) -> Expense:
    return _must_get(db, Expense, expense_id, p, "Expense")


def must_get_report(db: Session, *, p: Principal, report_id: int) -> Report:
    return _must_get(db, Report, report_id, p, "Report")


def must_get_batch(db: Session, *, p: Principal, batch_id: str) -> ReportBatch:
    row = db.get(ReportBatch, batch_id)
    if not row:
        raise HTTPException(status_code=404, detail="Batch not found")
    if not p.is_administrator and int(row.portfolio_id) != int(p.portfolio_id):
        raise HTTPException(status_code=403, detail="Access denied to this batch")
    return row


def must_get_shopping_list(db: Session, *, p: Principal, list_id: int) -> ShoppingList:
    row = db.get(ShoppingList, list_id)
    if not row:
        raise HTTPException(status_code=404, detail="Shopping list not found")
    if int(row.user_id) != int(p.user_id):
        raise HTTPException(status_code=403, detail="You don't have permission to access this list")
    return row


def must_get_shopping_item(db: Session, *, p: Principal, item_id: int) -> ShoppingListItem:
    row = db.get(ShoppingListItem, item_id)
    if not row:
        raise HTTPException(status_code=404, detail="Shopping list item not found")
    must_get_shopping_list(db, p=p, list_id=row.shopping_list_id)
    return row
