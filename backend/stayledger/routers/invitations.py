# backend/stayledger/routers/invitations.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_admin
from ..db import get_db
from ..schemas import InvitationCreate, InvitationOut, InvitationPreviewOut, UserOut
from ..services import invitations

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.get("", response_model=list[InvitationOut])
def list_invitations(db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return invitations.list_invitations(db, p=p)


@router.post("", response_model=InvitationOut, status_code=201)
def create_invitation(payload: InvitationCreate, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return invitations.create_invitation(db, p=p, payload=payload)


@router.get("/validate/{token}", response_model=InvitationPreviewOut)
def validate_invitation(token: str, db: Session = Depends(get_db)):
    """No sign-in needed: the invite page shows this before the user logs in."""
    return invitations.preview(db, token=token)


@router.post("/accept/{token}")
def accept_invitation(token: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    user = invitations.accept_invitation(db, p=p, token=token)
    return {"message": "Invitation accepted successfully", "user": UserOut.model_validate(user)}


@router.get("/{invitation_id}", response_model=InvitationOut)
def get_invitation(invitation_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return invitations.must_get_invitation(db, p=p, invitation_id=invitation_id)


@router.post("/{invitation_id}/resend", response_model=InvitationOut)
def resend_invitation(invitation_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return invitations.resend_invitation(db, p=p, invitation_id=invitation_id)


@router.delete("/{invitation_id}")
def delete_invitation(invitation_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    invitations.delete_invitation(db, p=p, invitation_id=invitation_id)
    return {"ok": True}
