# backend/stayledger/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from stayledger.auth import hash_password
from stayledger.db import SessionLocal, init_db
from stayledger.models import AppUser, InventoryItem, Listing, Owner, Portfolio

SAMPLE_INVENTORY = (
    # name, category, cost, quantity, min_quantity
    ("Bath Towels", "Linens", 2.00, 40, 10),
    ("Toilet Paper (12pk)", "Bathroom", 6.50, 12, 10),
    ("Dish Soap", "Kitchen", 3.25, 6, 8),
    ("Coffee Pods (24ct)", "Kitchen", 11.00, 4, 5),
)


@dataclass(frozen=True)
class SeedResult:
    portfolio_id: int
    user_email: str
    owner_id: Optional[int]
    listing_id: Optional[int]
    inventory_ids: tuple[int, ...] = field(default_factory=tuple)


def _get_or_create_portfolio(db: Session, name: str) -> Portfolio:
    row = db.scalar(select(Portfolio).where(Portfolio.name == name))
    if row:
        return row
    row = Portfolio(name=name, created_at=datetime.utcnow())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_user(db: Session, *, portfolio: Portfolio, username: str, email: str, password: str, role: str) -> AppUser:
    row = db.scalar(select(AppUser).where(AppUser.email == email))
    if row:
        return row
    row = AppUser(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        portfolio_id=int(portfolio.id),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _seed_sample_data(db: Session, portfolio: Portfolio) -> tuple[int, int, tuple[int, ...]]:
    owner = db.scalar(select(Owner).where(Owner.portfolio_id == portfolio.id, Owner.name == "Acme Holdings"))
    if owner is None:
        owner = Owner(
            portfolio_id=portfolio.id,
            name="Acme Holdings",
            email="owner@acme.example",
            phone="555-0100",
            markup_percentage=15.0,
            created_at=datetime.utcnow(),
        )
        db.add(owner)
        db.flush()

    listing = db.scalar(select(Listing).where(Listing.owner_id == owner.id, Listing.name == "Unit 1"))
    if listing is None:
        listing = Listing(
            portfolio_id=portfolio.id,
            owner_id=owner.id,
            name="Unit 1",
            address="100 Harbor Way",
            property_type="apartment",
            beds=2,
            baths=1.0,
            active=True,
            created_at=datetime.utcnow(),
        )
        db.add(listing)
        db.flush()

    ids: list[int] = []
    for name, category, cost, qty, min_qty in SAMPLE_INVENTORY:
        item = db.scalar(select(InventoryItem).where(InventoryItem.portfolio_id == portfolio.id, InventoryItem.name == name))
        if item is None:
            item = InventoryItem(
                portfolio_id=portfolio.id,
                name=name,
                category=category,
                cost_price=cost,
                default_markup=15.0,
                quantity=qty,
                min_quantity=min_qty,
                deleted=False,
                created_at=datetime.utcnow(),
            )
            db.add(item)
            db.flush()
        ids.append(int(item.id))

    db.commit()
    return int(owner.id), int(listing.id), tuple(ids)


def seed_demo(
    *,
    portfolio_name: str,
    username: str,
    user_email: str,
    password: str,
    role: str = "standard_admin",
    create_sample_data: bool = True,
) -> SeedResult:
    """Idempotent: re-running returns the rows created the first time."""
    init_db()
    db = SessionLocal()
    try:
        portfolio = _get_or_create_portfolio(db, portfolio_name)
        user = _get_or_create_user(
            db,
            portfolio=portfolio,
            username=username,
            email=user_email.strip().lower(),
            password=password,
            role=role,
        )

        owner_id = listing_id = None
        inventory_ids: tuple[int, ...] = ()
        if create_sample_data:
            owner_id, listing_id, inventory_ids = _seed_sample_data(db, portfolio)

        return SeedResult(
            portfolio_id=int(portfolio.id),
            user_email=str(user.email),
            owner_id=owner_id,
            listing_id=listing_id,
            inventory_ids=inventory_ids,
        )
    finally:
        db.close()
