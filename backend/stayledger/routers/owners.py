# backend/stayledger/routers/owners.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain import activity as act
from ..domain.activity import log_activity
from ..models import Listing, Owner
from ..schemas import OwnerCreate, OwnerOut, OwnerUpdate
from ..services.ownership import must_get_owner, scoped

router = APIRouter(prefix="/owners", tags=["owners"])


@router.get("", response_model=list[OwnerOut])
def list_owners(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    q = scoped(select(Owner), Owner, p).order_by(Owner.name.asc(), Owner.id.asc())
    return list(db.scalars(q).all())


@router.get("/{owner_id}", response_model=OwnerOut)
def get_owner(owner_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_owner(db, p=p, owner_id=owner_id)


@router.post("", response_model=OwnerOut, status_code=201)
def create_owner(payload: OwnerCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = Owner(**payload.model_dump(), portfolio_id=p.portfolio_id, created_at=datetime.utcnow())
    db.add(row)
    log_activity(db, user_id=p.user_id, portfolio_id=p.portfolio_id, action=act.OWNER_CREATED, details=f"Owner {row.name} created")
    db.commit()
    db.refresh(row)
    return row


@router.put("/{owner_id}", response_model=OwnerOut)
def update_owner(owner_id: int, payload: OwnerUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get_owner(db, p=p, owner_id=owner_id)
    for k, v in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, k, v)
    db.add(row)
    log_activity(db, user_id=p.user_id, portfolio_id=row.portfolio_id, action=act.OWNER_UPDATED, details=f"Owner {row.name} updated")
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{owner_id}")
def delete_owner(owner_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get_owner(db, p=p, owner_id=owner_id)
    listings = db.scalar(select(func.count()).select_from(Listing).where(Listing.owner_id == row.id)) or 0
    if listings:
        raise HTTPException(status_code=400, detail="Owner still has listings")

    name, portfolio_id = row.name, row.portfolio_id
    db.delete(row)
    log_activity(db, user_id=p.user_id, portfolio_id=portfolio_id, action=act.OWNER_DELETED, details=f"Owner {name} deleted")
    db.commit()
    return {"ok": True}
