# backend/stayledger/routers/auth.py
from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..auth import Principal, create_access_token, get_principal, hash_password, verify_password
from ..config import settings
from ..db import get_db
from ..models import AppUser, Portfolio, UserRole
from ..schemas import LoginIn, RegisterIn, TokenOut, UserOut

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.jwt_cookie_name,
        token,
        httponly=True,
        secure=bool(settings.jwt_cookie_secure),
        samesite=str(settings.jwt_cookie_samesite),
        max_age=int(settings.jwt_exp_minutes) * 60,
        path="/",
    )


def _issue(response: Response, user: AppUser) -> TokenOut:
    token = create_access_token(user_id=user.id, role=user.role, portfolio_id=user.portfolio_id)
    _set_session_cookie(response, token)
    return TokenOut(access_token=token, user=UserOut.model_validate(user))


@router.post("/register", response_model=TokenOut, status_code=201)
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    """
    Create a user together with a fresh portfolio they administer.
    """
    username = payload.username.strip()
    email = payload.email.strip().lower()

    clash = db.scalar(select(AppUser).where(or_(AppUser.username == username, AppUser.email == email)))
    if clash:
        raise HTTPException(status_code=400, detail="Username or email already registered")

    now = datetime.utcnow()
    portfolio = Portfolio(name=(payload.company_name or username).strip(), created_at=now)
    db.add(portfolio)
    db.flush()

    user = AppUser(
        username=username,
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        company_name=payload.company_name,
        role=UserRole.standard_admin.value,
        portfolio_id=int(portfolio.id),
        created_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("user_registered", extra={"user_id": user.id, "portfolio_id": user.portfolio_id})
    return _issue(response, user)


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    ident = payload.username.strip()
    user = db.scalar(select(AppUser).where(or_(AppUser.username == ident, AppUser.email == ident.lower())))
    if user is None or not user.password_hash or not verify_password(payload.password, str(user.password_hash)):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _issue(response, user)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.jwt_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    user = db.get(AppUser, p.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    out = UserOut.model_validate(user)
    # Administrators may be working in another portfolio than their home one.
    return out.model_copy(update={"portfolio_id": p.portfolio_id})
