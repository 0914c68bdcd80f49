# backend/stayledger/routers/shopping_lists.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import (
    ItemCompleteIn,
    ShoppingListCreate,
    ShoppingListItemCreate,
    ShoppingListItemOut,
    ShoppingListItemUpdate,
    ShoppingListOut,
    ShoppingListRefillOut,
)
from ..services import shopping_lists as svc
from ..services.ownership import must_get_shopping_list

router = APIRouter(prefix="/shopping-lists", tags=["shopping-lists"])


@router.get("", response_model=list[ShoppingListOut])
def list_lists(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return svc.list_lists(db, p=p)


@router.get("/default", response_model=ShoppingListOut)
def default_list(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return svc.default_list(db, p=p)


@router.post("", response_model=ShoppingListOut, status_code=201)
def create_list(payload: ShoppingListCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return svc.create_list(db, p=p, name=payload.name)


# -------------------- Items --------------------

@router.put("/items/{item_id}/complete", response_model=ShoppingListItemOut)
def complete_item(
    item_id: int,
    payload: ItemCompleteIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.set_completed(db, p=p, item_id=item_id, completed=payload.completed)


@router.put("/items/{item_id}", response_model=ShoppingListItemOut)
def update_item(
    item_id: int,
    payload: ShoppingListItemUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.update_item(db, p=p, item_id=item_id, quantity=payload.quantity, completed=payload.completed)


@router.delete("/items/{item_id}")
def remove_item(item_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    svc.remove_item(db, p=p, item_id=item_id)
    return {"ok": True}


# -------------------- Lists by id --------------------

@router.get("/{list_id}", response_model=ShoppingListOut)
def get_list(list_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_shopping_list(db, p=p, list_id=list_id)


@router.put("/{list_id}", response_model=ShoppingListOut)
def rename_list(
    list_id: int,
    payload: ShoppingListCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.rename_list(db, p=p, list_id=list_id, name=payload.name)


@router.delete("/{list_id}")
def delete_list(list_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    svc.delete_list(db, p=p, list_id=list_id)
    return {"ok": True}


@router.get("/{list_id}/items", response_model=list[ShoppingListItemOut])
def list_items(list_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return list(must_get_shopping_list(db, p=p, list_id=list_id).items)


@router.post("/{list_id}/items", response_model=ShoppingListItemOut, status_code=201)
def add_item(
    list_id: int,
    payload: ShoppingListItemCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return svc.add_item(db, p=p, list_id=list_id, inventory_id=payload.inventory_id, quantity=payload.quantity)


@router.post("/{list_id}/refill", response_model=ShoppingListRefillOut)
def refill_list(list_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    items = svc.refill_completed(db, p=p, list_id=list_id)
    return {"refilled": len(items), "items": items}
