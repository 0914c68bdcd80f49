# backend/tests/test_tenancy_management.py
from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import update

from stayledger.db import SessionLocal
from stayledger.domain import activity as act
from stayledger.models import Invitation


def _invite(client, headers, email, role="standard_user", **extra):
    return client.post("/api/invitations", json={"email": email, "role": role, **extra}, headers=headers)


def _expire(invitation_id):
    db = SessionLocal()
    try:
        db.execute(
            update(Invitation)
            .where(Invitation.id == invitation_id)
            .values(expires_at=datetime.utcnow() - timedelta(minutes=1))
        )
        db.commit()
    finally:
        db.close()


# -------------------- Admin user management --------------------

def test_administrator_changes_a_users_role(client, seed, acme):
    root = seed.user(seed.portfolio("Ops"), "root@ops.test", "administrator")

    users = client.get("/api/admin/users", headers=root).json()
    target = next(u for u in users if u["email"] == "admin@acme.test")
    assert target["role"] == "standard_admin"

    r = client.put(f"/api/admin/users/{target['id']}/role", json={"role": "standard_user"}, headers=root)
    assert r.status_code == 200, r.text
    assert r.json()["role"] == "standard_user"
    assert seed.count_actions(act.USER_ROLE_UPDATED) == 1

    # The demoted user loses admin-only routes straight away.
    assert client.get("/api/stats/dashboard", headers=acme["headers"]).status_code == 403


def test_role_change_rejects_unknown_role_and_user(client, seed):
    root = seed.user(seed.portfolio("Ops"), "root@ops.test", "administrator")

    r = client.put("/api/admin/users/1/role", json={"role": "superuser"}, headers=root)
    assert r.status_code == 400
    r = client.put("/api/admin/users/9999/role", json={"role": "standard_user"}, headers=root)
    assert r.status_code == 404
    assert r.json()["detail"] == "User not found"


def test_admin_routes_need_administrator(client, acme):
    assert client.get("/api/admin/users", headers=acme["headers"]).status_code == 403
    assert client.put("/api/admin/users/1/role", json={"role": "administrator"}, headers=acme["headers"]).status_code == 403
    assert client.get("/api/admin/activity-logs", headers=acme["headers"]).status_code == 403


def test_admin_activity_log_spans_portfolios(client, seed, acme):
    client.post("/api/owners", json={"name": "Dune Co", "email": "dune@co.test"}, headers=acme["headers"])
    root = seed.user(seed.portfolio("Ops"), "root@ops.test", "administrator")

    logs = client.get("/api/admin/activity-logs", headers=root).json()
    assert [row["action"] for row in logs] == [act.OWNER_CREATED]


# -------------------- Invitations --------------------

def test_invited_user_joins_portfolio_with_role(client, seed, acme):
    r = _invite(client, acme["headers"], "Helper@Acme.test")
    assert r.status_code == 201, r.text
    invitation = r.json()
    assert invitation["portfolio_id"] == acme["portfolio_id"]
    assert invitation["email"] == "helper@acme.test"
    assert seed.count_actions(act.INVITATION_SENT) == 1

    preview = client.get(f"/api/invitations/validate/{invitation['token']}").json()
    assert preview["portfolio_name"] == "Acme Portfolio"
    assert preview["expired"] is False
    assert "token" not in preview

    helper = seed.user(seed.portfolio("Helper home"), "helper@acme.test", "standard_admin")
    r = client.post(f"/api/invitations/accept/{invitation['token']}", headers=helper)
    assert r.status_code == 200, r.text
    assert r.json()["user"]["portfolio_id"] == acme["portfolio_id"]
    assert r.json()["user"]["role"] == "standard_user"
    assert seed.count_actions(act.INVITATION_ACCEPTED) == 1

    # Now inside Acme, but without admin rights.
    owners = client.get("/api/owners", headers=helper).json()
    assert [o["id"] for o in owners] == [acme["owner_id"]]
    assert client.get("/api/stats/dashboard", headers=helper).status_code == 403

    again = client.post(f"/api/invitations/accept/{invitation['token']}", headers=helper)
    assert again.status_code == 400
    assert again.json()["detail"] == "Invitation has already been accepted"


def test_registered_user_accepts_with_bearer_token(client, acme):
    r = client.post(
        "/api/auth/register",
        json={"username": "sam", "email": "sam@example.test", "password": "s3cret!"},
    )
    token = r.json()["access_token"]
    client.cookies.clear()

    invitation = _invite(client, acme["headers"], "sam@example.test", role="standard_admin").json()
    bearer = {"Authorization": f"Bearer {token}"}
    r = client.post(f"/api/invitations/accept/{invitation['token']}", headers=bearer)
    assert r.status_code == 200, r.text

    me = client.get("/api/auth/me", headers=bearer).json()
    assert me["portfolio_id"] == acme["portfolio_id"]
    assert me["role"] == "standard_admin"


def test_invitation_for_someone_else_cannot_be_accepted(client, seed, acme):
    invitation = _invite(client, acme["headers"], "helper@acme.test").json()
    stranger = seed.user(seed.portfolio("Elsewhere"), "stranger@else.test")

    r = client.post(f"/api/invitations/accept/{invitation['token']}", headers=stranger)
    assert r.status_code == 403


def test_expired_invitation_is_refused(client, seed, acme):
    invitation = _invite(client, acme["headers"], "late@acme.test").json()
    _expire(invitation["id"])
    late = seed.user(seed.portfolio("Late home"), "late@acme.test")

    assert client.get(f"/api/invitations/validate/{invitation['token']}").json()["expired"] is True
    r = client.post(f"/api/invitations/accept/{invitation['token']}", headers=late)
    assert r.status_code == 400
    assert r.json()["detail"] == "Invitation has expired"


def test_resend_replaces_token(client, seed, acme):
    first = _invite(client, acme["headers"], "late@acme.test").json()
    _expire(first["id"])

    r = client.post(f"/api/invitations/{first['id']}/resend", headers=acme["headers"])
    assert r.status_code == 200, r.text
    fresh = r.json()
    assert fresh["token"] != first["token"]
    assert seed.count_actions(act.INVITATION_RESENT) == 1

    assert client.get(f"/api/invitations/validate/{first['token']}").status_code == 404
    late = seed.user(seed.portfolio("Late home"), "late@acme.test")
    assert client.post(f"/api/invitations/accept/{fresh['token']}", headers=late).status_code == 200


def test_duplicate_pending_invitation_is_rejected(client, acme):
    assert _invite(client, acme["headers"], "helper@acme.test").status_code == 201
    r = _invite(client, acme["headers"], "helper@acme.test")
    assert r.status_code == 400
    assert r.json()["detail"] == "Active invitation already exists for this email"

    r = _invite(client, acme["headers"], "admin@acme.test")
    assert r.status_code == 400
    assert r.json()["detail"] == "User already belongs to this portfolio"


def test_invitations_stay_inside_the_portfolio(client, seed, acme):
    rival_pid = seed.portfolio("Rival")
    rival = seed.user(rival_pid, "ops@rival.test")

    r = _invite(client, acme["headers"], "x@rival.test", portfolio_id=rival_pid)
    assert r.status_code == 403
    r = _invite(client, acme["headers"], "boss@acme.test", role="administrator")
    assert r.status_code == 403

    invitation = _invite(client, acme["headers"], "helper@acme.test").json()
    assert client.get("/api/invitations", headers=rival).json() == []
    assert client.get(f"/api/invitations/{invitation['id']}", headers=rival).status_code == 403
    assert client.delete(f"/api/invitations/{invitation['id']}", headers=rival).status_code == 403

    assert client.delete(f"/api/invitations/{invitation['id']}", headers=acme["headers"]).json() == {"ok": True}
    assert client.get("/api/invitations", headers=acme["headers"]).json() == []
    assert seed.count_actions(act.INVITATION_DELETED) == 1


def test_standard_user_cannot_invite(client, seed, acme):
    viewer = seed.user(acme["portfolio_id"], "viewer@acme.test", "standard_user")
    assert _invite(client, viewer, "x@acme.test").status_code == 403
