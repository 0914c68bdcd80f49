# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="stayledger-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["REPORT_TEMP_DIR"] = os.path.join(_TMP, "reports")
os.environ["AUTH_MODE"] = "dev"
os.environ["APP_ENV"] = "local"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["AUTH_PBKDF2_ITERS"] = "1000"

from datetime import datetime  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from stayledger import models  # noqa: E402,F401
from stayledger.db import Base, SessionLocal, engine  # noqa: E402
from stayledger.main import create_app  # noqa: E402
from stayledger.models import (  # noqa: E402
    ActivityLog,
    AppUser,
    InventoryItem,
    Listing,
    Owner,
    Portfolio,
)
from stayledger.services.email_service import get_email_sender  # noqa: E402
from stayledger.services.report_files import get_report_renderer  # noqa: E402


class FakeRenderer:
    """Writes a stub PDF and counts how often it was asked to."""

    def __init__(self, fail: bool = False):
        self.calls: list[tuple[int, int, int]] = []
        self.fail = fail

    def __call__(self, snapshot, out_path):
        self.calls.append((int(snapshot.owner.id), int(snapshot.year), int(snapshot.month)))
        if self.fail:
            raise RuntimeError("renderer exploded")
        with open(out_path, "wb") as fh:
            fh.write(b"%PDF-1.4\n% stub report\n")
        return out_path


class FakeSender:
    def __init__(self, fail_for: tuple[str, ...] = ()):
        self.sent: list[dict] = []
        self.fail_for = set(fail_for)

    def send_report_email(self, *, to_email, owner_name, month, year, attachment_path, attachment_name):
        if to_email in self.fail_for:
            return False
        self.sent.append(
            {
                "to": to_email,
                "owner_name": owner_name,
                "month": month,
                "year": year,
                "attachment_path": attachment_path,
                "attachment_name": attachment_name,
            }
        )
        return True


class Seed:
    """Direct-to-database fixtures; every helper commits and returns ids."""

    def portfolio(self, name: str = "Acme Portfolio") -> int:
        db = SessionLocal()
        try:
            row = Portfolio(name=name, created_at=datetime.utcnow())
            db.add(row)
            db.commit()
            db.refresh(row)
            return int(row.id)
        finally:
            db.close()

    def user(self, portfolio_id: int, email: str, role: str = "standard_admin") -> dict[str, str]:
        db = SessionLocal()
        try:
            db.add(AppUser(username=email, email=email, role=role, portfolio_id=portfolio_id, created_at=datetime.utcnow()))
            db.commit()
        finally:
            db.close()
        return {"X-User-Email": email, "X-User-Role": role}

    def owner(self, portfolio_id: int, name: str = "Acme Holdings", email: str = "owner@acme.test") -> int:
        db = SessionLocal()
        try:
            row = Owner(portfolio_id=portfolio_id, name=name, email=email, markup_percentage=15.0, created_at=datetime.utcnow())
            db.add(row)
            db.commit()
            db.refresh(row)
            return int(row.id)
        finally:
            db.close()

    def listing(self, portfolio_id: int, owner_id: int, name: str = "Unit 1") -> int:
        db = SessionLocal()
        try:
            row = Listing(
                portfolio_id=portfolio_id,
                owner_id=owner_id,
                name=name,
                address="1 Main St",
                property_type="apartment",
                active=True,
                created_at=datetime.utcnow(),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return int(row.id)
        finally:
            db.close()

    def item(self, portfolio_id: int, name: str = "Towel", quantity: int = 20, min_quantity: Optional[int] = 10) -> int:
        db = SessionLocal()
        try:
            row = InventoryItem(
                portfolio_id=portfolio_id,
                name=name,
                category="Linens",
                cost_price=5.0,
                default_markup=15.0,
                quantity=quantity,
                min_quantity=min_quantity,
                deleted=False,
                created_at=datetime.utcnow(),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return int(row.id)
        finally:
            db.close()

    def quantity(self, item_id: int) -> int:
        db = SessionLocal()
        try:
            return int(db.scalar(select(InventoryItem.quantity).where(InventoryItem.id == item_id)))
        finally:
            db.close()

    def count_actions(self, action: str) -> int:
        db = SessionLocal()
        try:
            return int(db.scalar(select(func.count(ActivityLog.id)).where(ActivityLog.action == action)) or 0)
        finally:
            db.close()


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def seed() -> Seed:
    return Seed()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def app(renderer, sender):
    app = create_app()
    app.dependency_overrides[get_report_renderer] = lambda: renderer
    app.dependency_overrides[get_email_sender] = lambda: sender
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def acme(seed):
    """One portfolio with an admin, an owner, a listing and a 20-unit item (min 10)."""
    pid = seed.portfolio("Acme Portfolio")
    headers = seed.user(pid, "admin@acme.test", "standard_admin")
    owner_id = seed.owner(pid)
    listing_id = seed.listing(pid, owner_id)
    item_id = seed.item(pid, "Towel", quantity=20, min_quantity=10)
    return {
        "portfolio_id": pid,
        "headers": headers,
        "owner_id": owner_id,
        "listing_id": listing_id,
        "item_id": item_id,
    }
