# backend/stayledger/routers/expenses.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import ExpenseCreate, ExpenseOut, ExpenseUpdate
from ..services import expense_service
from ..services.ownership import must_get_expense

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.get("", response_model=list[ExpenseOut])
def list_expenses(
    owner_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return expense_service.list_expenses(db, p=p, owner_id=owner_id)


@router.get("/listing/{listing_id}", response_model=list[ExpenseOut])
def expenses_for_listing(listing_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return expense_service.list_for_listing(db, p=p, listing_id=listing_id)


@router.get("/owner/{owner_id}", response_model=list[ExpenseOut])
def expenses_for_owner(owner_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return expense_service.list_for_owner(db, p=p, owner_id=owner_id)


@router.get("/{expense_id}", response_model=ExpenseOut)
def get_expense(expense_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_expense(db, p=p, expense_id=expense_id)


@router.post("", response_model=ExpenseOut, status_code=201)
def create_expense(payload: ExpenseCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return expense_service.create_expense(db, p=p, payload=payload)


@router.put("/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: int,
    payload: ExpenseUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return expense_service.update_expense(db, p=p, expense_id=expense_id, payload=payload)


@router.delete("/{expense_id}")
def delete_expense(expense_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    expense_service.delete_expense(db, p=p, expense_id=expense_id)
    return {"ok": True}
