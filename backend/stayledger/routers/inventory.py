# backend/stayledger/routers/inventory.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain import activity as act
from ..domain.activity import log_activity
from ..models import InventoryItem
from ..schemas import (
    BatchRefillIn,
    BatchRefillOut,
    InventoryCreate,
    InventoryOut,
    InventoryUpdate,
    RefillIn,
    RefillOut,
    RefillResultOut,
)
from ..services import inventory_ledger as ledger
from ..services.ownership import must_get_inventory, scoped

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("", response_model=list[InventoryOut])
def list_inventory(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    q = select(InventoryItem).where(InventoryItem.deleted.is_(False))
    q = scoped(q, InventoryItem, p).order_by(InventoryItem.name.asc(), InventoryItem.id.asc())
    return list(db.scalars(q).all())


@router.get("/all", response_model=list[InventoryOut])
def list_all_inventory(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    q = scoped(select(InventoryItem), InventoryItem, p).order_by(InventoryItem.name.asc(), InventoryItem.id.asc())
    return list(db.scalars(q).all())


@router.get("/low", response_model=list[InventoryOut])
def list_low_inventory(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return ledger.low_stock_items(db, p)


@router.post("/refill", response_model=RefillResultOut)
def refill(payload: RefillIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    item, row = ledger.refill(
        db,
        p=p,
        req=ledger.RefillRequest(payload.inventory_id, payload.quantity, payload.cost, payload.notes),
    )
    return {"item": item, "refill": row}


@router.post("/batch-refill", response_model=BatchRefillOut)
def batch_refill(payload: BatchRefillIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    items = ledger.batch_refill(
        db,
        p=p,
        entries=[ledger.RefillRequest(e.inventory_id, e.quantity, e.cost, e.notes) for e in payload.items],
    )
    return {"refilled": len(payload.items), "items": items}


@router.get("/{inventory_id}", response_model=InventoryOut)
def get_inventory(inventory_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_inventory(db, p=p, inventory_id=inventory_id)


@router.get("/{inventory_id}/refills", response_model=list[RefillOut])
def refill_history(inventory_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return ledger.refill_history(db, p=p, inventory_id=inventory_id)


@router.post("", response_model=InventoryOut, status_code=201)
def create_inventory(payload: InventoryCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = InventoryItem(**payload.model_dump(), portfolio_id=p.portfolio_id, deleted=False, created_at=datetime.utcnow())
    db.add(row)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.INVENTORY_CREATED,
        details=f"Inventory item {row.name} created with {row.quantity} units",
    )
    db.commit()
    db.refresh(row)
    return row


@router.put("/{inventory_id}", response_model=InventoryOut)
def update_inventory(
    inventory_id: int,
    payload: InventoryUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    row = must_get_inventory(db, p=p, inventory_id=inventory_id)
    for k, v in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, k, v)
    db.add(row)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=row.portfolio_id,
        action=act.INVENTORY_UPDATED,
        details=f"Inventory item {row.name} updated",
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{inventory_id}")
def delete_inventory(inventory_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    # Soft delete: expenses keep pointing at the row.
    row = must_get_inventory(db, p=p, inventory_id=inventory_id)
    row.deleted = True
    db.add(row)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=row.portfolio_id,
        action=act.INVENTORY_DELETED,
        details=f"Inventory item {row.name} deleted",
    )
    db.commit()
    return {"ok": True}
