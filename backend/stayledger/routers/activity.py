# backend/stayledger/routers/activity.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..models import ActivityLog
from ..schemas import ActivityOut

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("", response_model=list[ActivityOut])
def list_activity(
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = (
        select(ActivityLog)
        .where(ActivityLog.user_id == p.user_id)
        .order_by(desc(ActivityLog.timestamp), desc(ActivityLog.id))
        .limit(limit)
    )
    return list(db.scalars(q).all())
