# backend/stayledger/routers/listings.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain import activity as act
from ..domain.activity import log_activity
from ..models import Expense, Listing
from ..schemas import ListingCreate, ListingOut, ListingUpdate
from ..services.ownership import must_get_listing, must_get_owner, scoped

router = APIRouter(prefix="/listings", tags=["listings"])


@router.get("", response_model=list[ListingOut])
def list_listings(
    owner_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Listing)
    if owner_id is not None:
        q = q.where(Listing.owner_id == owner_id)
    q = scoped(q, Listing, p).order_by(Listing.name.asc(), Listing.id.asc())
    return list(db.scalars(q).all())


@router.get("/owner/{owner_id}", response_model=list[ListingOut])
def listings_for_owner(owner_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    must_get_owner(db, p=p, owner_id=owner_id)
    q = select(Listing).where(Listing.owner_id == owner_id).order_by(Listing.name.asc(), Listing.id.asc())
    return list(db.scalars(q).all())


@router.get("/{listing_id}", response_model=ListingOut)
def get_listing(listing_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_listing(db, p=p, listing_id=listing_id)


@router.post("", response_model=ListingOut, status_code=201)
def create_listing(payload: ListingCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    owner = must_get_owner(db, p=p, owner_id=payload.owner_id)

    data = payload.model_dump()
    data["property_type"] = payload.property_type.value
    row = Listing(**data, portfolio_id=owner.portfolio_id, created_at=datetime.utcnow())
    db.add(row)
    log_activity(db, user_id=p.user_id, portfolio_id=owner.portfolio_id, action=act.LISTING_CREATED, details=f"Listing {row.name} created")
    db.commit()
    db.refresh(row)
    return row


@router.put("/{listing_id}", response_model=ListingOut)
def update_listing(listing_id: int, payload: ListingUpdate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get_listing(db, p=p, listing_id=listing_id)
    data = payload.model_dump(exclude_unset=True, exclude_none=True)

    if "owner_id" in data:
        owner = must_get_owner(db, p=p, owner_id=data["owner_id"])
        if int(owner.portfolio_id) != int(row.portfolio_id):
            raise HTTPException(status_code=400, detail="Owner belongs to another portfolio")
    if "property_type" in data:
        data["property_type"] = payload.property_type.value

    for k, v in data.items():
        setattr(row, k, v)
    db.add(row)
    log_activity(db, user_id=p.user_id, portfolio_id=row.portfolio_id, action=act.LISTING_UPDATED, details=f"Listing {row.name} updated")
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{listing_id}")
def delete_listing(listing_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = must_get_listing(db, p=p, listing_id=listing_id)
    expenses = db.scalar(select(func.count()).select_from(Expense).where(Expense.listing_id == row.id)) or 0
    if expenses:
        raise HTTPException(status_code=400, detail="Listing has expenses and cannot be deleted")

    name, portfolio_id = row.name, row.portfolio_id
    db.delete(row)
    log_activity(db, user_id=p.user_id, portfolio_id=portfolio_id, action=act.LISTING_DELETED, details=f"Listing {name} deleted")
    db.commit()
    return {"ok": True}
