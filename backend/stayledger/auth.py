# backend/stayledger/auth.py
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import AppUser, Portfolio, UserRole

log = logging.getLogger(__name__)

ADMIN_ROLES = (UserRole.standard_admin.value, UserRole.administrator.value)


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str
    role: str  # standard_user | standard_admin | administrator
    portfolio_id: int

    @property
    def is_administrator(self) -> bool:
        return self.role == UserRole.administrator.value


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(os.getenv("AUTH_PBKDF2_ITERS", "210000"))
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        salt = base64.b64decode(salt_b64.encode())
        dk = base64.b64decode(dk_b64.encode())
        test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iters_s))
        return hmac.compare_digest(test, dk)
    except (ValueError, TypeError):
        return False


# -------------------------
# JWT helpers (PyJWT, HS256)
# -------------------------
def create_access_token(*, user_id: int, role: str, portfolio_id: int, minutes: int | None = None) -> str:
    now = datetime.utcnow()
    payload: dict[str, Any] = {
        "sub": str(int(user_id)),
        "role": str(role),
        "pid": int(portfolio_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=int(minutes or settings.jwt_exp_minutes))).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def _principal_from_user(user: AppUser) -> Principal:
    return Principal(
        user_id=int(user.id),
        email=str(user.email),
        role=str(user.role),
        portfolio_id=int(user.portfolio_id),
    )


def _parse_portfolio_id(raw: Optional[str]) -> Optional[int]:
    if raw is None or not str(raw).strip():
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid X-Portfolio-Id")


def _dev_principal(request: Request, db: Session) -> Principal:
    email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
    role_hint = (request.headers.get(settings.dev_header_user_role) or UserRole.standard_admin.value).strip().lower()
    portfolio_hint = _parse_portfolio_id(request.headers.get(settings.dev_header_portfolio_id))
    if not email:
        raise HTTPException(status_code=401, detail="Missing X-User-Email for dev auth")

    user = db.scalar(select(AppUser).where(AppUser.email == email))
    if user is None:
        if not settings.dev_auto_provision:
            raise HTTPException(status_code=401, detail="Unknown user")

        portfolio = db.get(Portfolio, portfolio_hint) if portfolio_hint is not None else None
        if portfolio is None:
            portfolio = Portfolio(name=f"{email.split('@')[0]} portfolio", created_at=datetime.utcnow())
            if portfolio_hint is not None:
                portfolio.id = portfolio_hint
            db.add(portfolio)
            db.flush()

        role = role_hint if role_hint in {r.value for r in UserRole} else UserRole.standard_admin.value
        user = AppUser(
            username=email,
            email=email,
            role=role,
            portfolio_id=int(portfolio.id),
            created_at=datetime.utcnow(),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        log.info("dev_user_provisioned", extra={"user_id": user.id, "portfolio_id": user.portfolio_id})

    p = _principal_from_user(user)
    # Administrators may switch their active portfolio.
    if p.is_administrator and portfolio_hint is not None:
        p = Principal(user_id=p.user_id, email=p.email, role=p.role, portfolio_id=portfolio_hint)
    return p


# -------------------------
# get_principal
# -------------------------
def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Auth modes supported (in priority order):
      1) JWT cookie OR Authorization: Bearer <token>
      2) dev header spoofing (ONLY if settings.auth_mode == "dev")
    """
    token = request.cookies.get(settings.jwt_cookie_name) if settings.jwt_cookie_name else None
    if not token and authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()

    if token:
        claims = decode_access_token(token)
        sub = str(claims.get("sub") or "")
        if not sub.isdigit():
            raise HTTPException(status_code=401, detail="Token missing sub")

        user = db.get(AppUser, int(sub))
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        p = _principal_from_user(user)
    elif settings.auth_mode == "dev":
        p = _dev_principal(request, db)
    else:
        raise HTTPException(status_code=401, detail="Not authenticated")

    # Picked up by the request-log middleware.
    request.state.principal = p
    return p


def require_roles(*roles: str):
    allowed = {str(r.value if isinstance(r, UserRole) else r) for r in roles}

    def _dep(p: Principal = Depends(get_principal)) -> Principal:
        if p.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return p

    return _dep


require_admin = require_roles(*ADMIN_ROLES)
