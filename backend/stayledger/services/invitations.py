# backend/stayledger/services/invitations.py
"""
Portfolio invitations.

An admin invites an email address into a portfolio with a role. Whoever
signs in with that address and presents the token is moved into the
portfolio with that role. Tokens are single use and expire after
`settings.invitation_ttl_hours`.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import desc, select, update
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain import activity as act
from ..domain.activity import log_activity
from ..models import AppUser, Invitation, Portfolio, UserRole
from ..schemas import InvitationCreate

log = logging.getLogger(__name__)


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _expiry(now: datetime) -> datetime:
    return now + timedelta(hours=int(settings.invitation_ttl_hours))


def must_get_invitation(db: Session, *, p: Principal, invitation_id: int) -> Invitation:
    row = db.get(Invitation, int(invitation_id))
    if row is None:
        raise HTTPException(status_code=404, detail="Invitation not found")
    if not p.is_administrator and row.portfolio_id != p.portfolio_id:
        raise HTTPException(status_code=403, detail="Access forbidden")
    return row


def _by_token(db: Session, token: str) -> Invitation:
    row = db.scalar(select(Invitation).where(Invitation.token == str(token)))
    if row is None:
        raise HTTPException(status_code=404, detail="Invitation not found")
    return row


def list_invitations(db: Session, *, p: Principal) -> list[Invitation]:
    q = select(Invitation)
    if not p.is_administrator:
        q = q.where(Invitation.portfolio_id == p.portfolio_id)
    return list(db.scalars(q.order_by(desc(Invitation.created_at), desc(Invitation.id))).all())


def create_invitation(db: Session, *, p: Principal, payload: InvitationCreate) -> Invitation:
    portfolio_id = int(payload.portfolio_id) if payload.portfolio_id is not None else p.portfolio_id
    if not p.is_administrator and portfolio_id != p.portfolio_id:
        raise HTTPException(status_code=403, detail="You can only invite users to portfolios you own")
    if payload.role == UserRole.administrator and not p.is_administrator:
        raise HTTPException(status_code=403, detail="Only administrators can grant the administrator role")

    portfolio = db.get(Portfolio, portfolio_id)
    if portfolio is None:
        raise HTTPException(status_code=404, detail="Portfolio not found")

    email = payload.email.strip().lower()
    member = db.scalar(select(AppUser).where(AppUser.email == email, AppUser.portfolio_id == portfolio_id))
    if member is not None:
        raise HTTPException(status_code=400, detail="User already belongs to this portfolio")

    now = datetime.utcnow()
    pending = db.scalar(
        select(Invitation).where(
            Invitation.email == email,
            Invitation.portfolio_id == portfolio_id,
            Invitation.accepted.is_(False),
            Invitation.expires_at > now,
        )
    )
    if pending is not None:
        raise HTTPException(status_code=400, detail="Active invitation already exists for this email")

    row = Invitation(
        portfolio_id=portfolio_id,
        invited_by=p.user_id,
        email=email,
        role=payload.role.value,
        token=_new_token(),
        accepted=False,
        expires_at=_expiry(now),
        created_at=now,
    )
    db.add(row)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=portfolio_id,
        action=act.INVITATION_SENT,
        details=f"Invitation sent to {email} for portfolio {portfolio.name}",
    )
    db.commit()
    db.refresh(row)
    log.info("invitation_created", extra={"portfolio_id": portfolio_id, "user_id": p.user_id})
    return row


def resend_invitation(db: Session, *, p: Principal, invitation_id: int) -> Invitation:
    """Issue a fresh token and expiry; the old token stops working."""
    row = must_get_invitation(db, p=p, invitation_id=invitation_id)
    if row.accepted:
        raise HTTPException(status_code=400, detail="Invitation has already been accepted")

    row.token = _new_token()
    row.expires_at = _expiry(datetime.utcnow())
    db.add(row)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=row.portfolio_id,
        action=act.INVITATION_RESENT,
        details=f"Invitation to {row.email} was resent",
    )
    db.commit()
    db.refresh(row)
    return row


def delete_invitation(db: Session, *, p: Principal, invitation_id: int) -> None:
    row = must_get_invitation(db, p=p, invitation_id=invitation_id)
    email, portfolio_id = row.email, row.portfolio_id
    db.delete(row)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=portfolio_id,
        action=act.INVITATION_DELETED,
        details=f"Invitation to {email} was deleted",
    )
    db.commit()


def preview(db: Session, *, token: str, now: Optional[datetime] = None) -> dict:
    row = _by_token(db, token)
    portfolio = db.get(Portfolio, row.portfolio_id)
    return {
        "email": row.email,
        "role": row.role,
        "portfolio_id": row.portfolio_id,
        "portfolio_name": portfolio.name if portfolio is not None else "",
        "accepted": bool(row.accepted),
        "expired": row.expires_at < (now or datetime.utcnow()),
        "expires_at": row.expires_at,
    }


def accept_invitation(db: Session, *, p: Principal, token: str) -> AppUser:
    row = _by_token(db, token)
    if row.expires_at < datetime.utcnow():
        raise HTTPException(status_code=400, detail="Invitation has expired")
    if row.accepted:
        raise HTTPException(status_code=400, detail="Invitation has already been accepted")
    if row.email != p.email.strip().lower():
        raise HTTPException(status_code=403, detail="Invitation was issued to a different email")

    user = db.get(AppUser, p.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")

    # Conditional flip so two concurrent accepts cannot both succeed.
    claimed = db.execute(
        update(Invitation)
        .where(Invitation.id == row.id, Invitation.accepted.is_(False))
        .values(accepted=True)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        raise HTTPException(status_code=400, detail="Invitation has already been accepted")

    user.portfolio_id = int(row.portfolio_id)
    user.role = str(row.role)
    db.add(user)
    log_activity(
        db,
        user_id=user.id,
        portfolio_id=row.portfolio_id,
        action=act.INVITATION_ACCEPTED,
        details=f"User accepted invitation to portfolio {row.portfolio_id}",
    )
    db.commit()
    db.refresh(user)
    log.info("invitation_accepted", extra={"user_id": user.id, "portfolio_id": user.portfolio_id})
    return user
