# backend/stayledger/routers/admin.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, require_roles
from ..db import get_db
from ..domain import activity as act
from ..domain.activity import log_activity
from ..models import ActivityLog, AppUser, UserRole
from ..schemas import ActivityOut, RoleUpdateIn, UserOut

# Cross-portfolio views; administrators only.
router = APIRouter(prefix="/admin", tags=["admin"])

require_administrator = require_roles(UserRole.administrator)


@router.get("/users", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db), p: Principal = Depends(require_administrator)):
    return list(db.scalars(select(AppUser).order_by(AppUser.id.asc())).all())


@router.put("/users/{user_id}/role", response_model=UserOut)
def update_user_role(
    user_id: int,
    payload: RoleUpdateIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_administrator),
):
    user = db.get(AppUser, int(user_id))
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    user.role = payload.role.value
    db.add(user)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=user.portfolio_id,
        action=act.USER_ROLE_UPDATED,
        details=f"User {user.username} role updated to {payload.role.value}",
    )
    db.commit()
    db.refresh(user)
    return user


@router.get("/activity-logs", response_model=list[ActivityOut])
def list_activity_logs(
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_administrator),
):
    q = select(ActivityLog).order_by(desc(ActivityLog.timestamp), desc(ActivityLog.id)).limit(int(limit))
    return list(db.scalars(q).all())
