# backend/stayledger/services/dashboard_rollups.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.markup import profit
from ..domain.periods import month_bounds, month_name, trailing_months
from ..models import ActivityLog, Expense, InventoryItem, Listing, Owner
from .inventory_ledger import low_stock_items
from .ownership import scoped


@dataclass
class PortfolioRollup:
    total_owners: int
    total_listings: int
    total_inventory: int
    low_stock_count: int
    low_stock_items: list[InventoryItem]
    total_cost: float
    total_billed: float
    profit: float
    recent_activity: list[ActivityLog]
    recent_listings: list[Listing]
    chart: list[dict[str, Any]] = field(default_factory=list)


def _count(db: Session, q) -> int:
    return int(db.scalar(select(func.count()).select_from(q.subquery())) or 0)


def _sums(db: Session, p: Principal, start: Optional[datetime] = None, end: Optional[datetime] = None) -> tuple[float, float]:
    q = select(
        func.coalesce(func.sum(Expense.total_cost), 0.0),
        func.coalesce(func.sum(Expense.billed_amount), 0.0),
    )
    if start is not None:
        q = q.where(Expense.date >= start)
    if end is not None:
        q = q.where(Expense.date < end)
    cost, billed = db.execute(scoped(q, Expense, p)).one()
    return round(float(cost or 0.0), 2), round(float(billed or 0.0), 2)


def expense_chart(db: Session, p: Principal, *, now: Optional[datetime] = None, months: int = 6) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for year, month in trailing_months(now or datetime.utcnow(), months):
        start, end = month_bounds(year, month)
        cost, billed = _sums(db, p, start, end)
        out.append(
            {
                "month": month_name(month)[:3],
                "year": year,
                "expenses": cost,
                "billed": billed,
                "profit": profit(cost, billed),
            }
        )
    return out


def compute_rollup(db: Session, *, p: Principal, now: Optional[datetime] = None) -> PortfolioRollup:
    low = low_stock_items(db, p)
    cost, billed = _sums(db, p)

    activity_q = select(ActivityLog)
    if not p.is_administrator:
        activity_q = activity_q.where(ActivityLog.portfolio_id == p.portfolio_id)
    recent_activity = list(db.scalars(activity_q.order_by(desc(ActivityLog.timestamp), desc(ActivityLog.id)).limit(10)).all())

    recent_listings = list(
        db.scalars(scoped(select(Listing), Listing, p).order_by(desc(Listing.created_at), desc(Listing.id)).limit(3)).all()
    )

    return PortfolioRollup(
        total_owners=_count(db, scoped(select(Owner.id), Owner, p)),
        total_listings=_count(db, scoped(select(Listing.id), Listing, p)),
        total_inventory=_count(db, scoped(select(InventoryItem.id).where(InventoryItem.deleted.is_(False)), InventoryItem, p)),
        low_stock_count=len(low),
        low_stock_items=low,
        total_cost=cost,
        total_billed=billed,
        profit=profit(cost, billed),
        recent_activity=recent_activity,
        recent_listings=recent_listings,
        chart=expense_chart(db, p, now=now),
    )
