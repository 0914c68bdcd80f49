# backend/stayledger/routers/dashboard.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..db import get_db
from ..schemas import DashboardOut
from ..services.dashboard_rollups import compute_rollup

router = APIRouter(prefix="/stats", tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    rollup = compute_rollup(db, p=p)
    return DashboardOut.model_validate(vars(rollup), from_attributes=True)
