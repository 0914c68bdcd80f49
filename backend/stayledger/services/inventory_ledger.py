# backend/stayledger/services/inventory_ledger.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain import activity as act
from ..domain.activity import log_activity
from ..models import InventoryItem, InventoryRefill
from .ownership import must_get_inventory, scoped

log = logging.getLogger(__name__)


def min_quantity_of(item: InventoryItem) -> int:
    if item.min_quantity is None:
        return int(settings.default_min_quantity)
    return int(item.min_quantity)


def adjust_quantity(db: Session, item_id: int, delta: int) -> Optional[int]:
    """
    Apply `quantity = quantity + delta` as a single UPDATE and return the
    resulting quantity, or None if the row does not exist.

    Never read-modify-write the quantity in Python: concurrent expenses
    against the same item would lose decrements.
    """
    db.execute(
        update(InventoryItem)
        .where(InventoryItem.id == int(item_id))
        .values(quantity=InventoryItem.quantity + int(delta))
        .execution_options(synchronize_session="fetch")
    )
    return db.scalar(select(InventoryItem.quantity).where(InventoryItem.id == int(item_id)))


def check_low_stock(db: Session, *, p: Principal, item: InventoryItem, quantity: int) -> bool:
    """Emit one LOW_INVENTORY_ALERT when quantity is at or below the item's threshold."""
    threshold = min_quantity_of(item)
    if int(quantity) > threshold:
        return False

    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=item.portfolio_id,
        action=act.LOW_INVENTORY_ALERT,
        details=f"{item.name} is running low ({quantity} remaining, minimum {threshold})",
    )
    log.info(
        "low_inventory_alert",
        extra={"inventory_id": item.id, "portfolio_id": item.portfolio_id},
    )
    return True


def low_stock_items(db: Session, p: Principal) -> list[InventoryItem]:
    """Items shown on the low-stock views: below their minimum or at/below the hard floor."""
    threshold = InventoryItem.min_quantity
    q = (
        select(InventoryItem)
        .where(InventoryItem.deleted.is_(False))
        .where(
            or_(
                InventoryItem.quantity < threshold,
                and_(threshold.is_(None), InventoryItem.quantity < int(settings.default_min_quantity)),
                InventoryItem.quantity <= int(settings.low_stock_floor),
            )
        )
        .order_by(InventoryItem.quantity.asc(), InventoryItem.id.asc())
    )
    return list(db.scalars(scoped(q, InventoryItem, p)).all())


@dataclass(frozen=True)
class RefillRequest:
    inventory_id: int
    quantity: int
    cost: Optional[float] = None
    notes: Optional[str] = None


def _validate_quantity(quantity) -> int:
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid quantity for refill")
    if qty <= 0:
        raise HTTPException(status_code=400, detail="Invalid quantity for refill")
    return qty


def apply_refill(db: Session, *, p: Principal, item: InventoryItem, req: RefillRequest) -> InventoryRefill:
    """Write the refill history row and add stock. Does not commit."""
    now = datetime.utcnow()
    row = InventoryRefill(
        inventory_id=int(item.id),
        user_id=p.user_id,
        quantity=int(req.quantity),
        cost=float(req.cost or 0.0),
        notes=req.notes,
        refill_date=now,
        created_at=now,
    )
    db.add(row)
    adjust_quantity(db, item.id, int(req.quantity))
    return row


def refill(db: Session, *, p: Principal, req: RefillRequest) -> tuple[InventoryItem, InventoryRefill]:
    qty = _validate_quantity(req.quantity)
    item = must_get_inventory(db, p=p, inventory_id=req.inventory_id)

    row = apply_refill(db, p=p, item=item, req=RefillRequest(item.id, qty, req.cost, req.notes))
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=item.portfolio_id,
        action=act.INVENTORY_REFILLED,
        details=f"Refilled {qty} units of {item.name}",
    )
    db.commit()
    db.refresh(item)
    db.refresh(row)
    return item, row


def batch_refill(db: Session, *, p: Principal, entries: Iterable[RefillRequest]) -> list[InventoryItem]:
    """
    All-or-nothing: every entry is validated before any quantity moves,
    then all entries are applied and committed together.
    """
    entries = list(entries)
    if not entries:
        raise HTTPException(status_code=400, detail="Invalid or empty refills data")

    planned: list[tuple[InventoryItem, RefillRequest]] = []
    for e in entries:
        try:
            qty = _validate_quantity(e.quantity)
        except HTTPException:
            raise HTTPException(
                status_code=400,
                detail="Invalid refill data - each refill must have inventory_id and positive quantity",
            )
        item = db.scalar(scoped(select(InventoryItem).where(InventoryItem.id == int(e.inventory_id)), InventoryItem, p))
        if item is None:
            raise HTTPException(status_code=404, detail=f"Inventory item with ID {e.inventory_id} not found")
        planned.append((item, RefillRequest(item.id, qty, e.cost, e.notes)))

    for item, req in planned:
        apply_refill(db, p=p, item=item, req=req)

    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.INVENTORY_BATCH_REFILLED,
        details=f"Batch refilled {len(planned)} inventory items",
    )
    db.commit()

    out: list[InventoryItem] = []
    for item, _ in planned:
        db.refresh(item)
        out.append(item)
    return out


def refill_history(db: Session, *, p: Principal, inventory_id: int) -> list[InventoryRefill]:
    must_get_inventory(db, p=p, inventory_id=inventory_id)
    q = (
        select(InventoryRefill)
        .where(InventoryRefill.inventory_id == int(inventory_id))
        .order_by(InventoryRefill.refill_date.desc(), InventoryRefill.id.desc())
    )
    return list(db.scalars(q).all())
