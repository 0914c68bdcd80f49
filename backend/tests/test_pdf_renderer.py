# backend/tests/test_pdf_renderer.py
from __future__ import annotations

import os
import re
from datetime import datetime
from types import SimpleNamespace

from stayledger.services.pdf_renderer import render_owner_report
from stayledger.services.report_files import ReportSnapshot


def _snapshot(expense_count: int) -> ReportSnapshot:
    owner = SimpleNamespace(id=1, name="Acme Holdings", email="owner@acme.test", phone="555-0100")
    listing = SimpleNamespace(id=10, name="Unit 1", address="1 Main St", property_type="apartment")
    towels = SimpleNamespace(id=7, name="Towels")
    expenses = [
        SimpleNamespace(
            id=n,
            listing_id=10,
            inventory_id=7,
            quantity_used=2,
            billed_amount=4.60,
            notes=f"Turnover {n}",
            date=datetime(2026, 3, 1 + n % 28),
        )
        for n in range(expense_count)
    ]
    return ReportSnapshot(
        owner=owner,
        month=3,
        year=2026,
        expenses=expenses,
        listings=[listing],
        inventory={7: towels},
        company_name="StayLedger",
    )


def test_renders_pdf_and_leaves_no_partial_file(tmp_path):
    out = str(tmp_path / "report.pdf")
    assert render_owner_report(_snapshot(3), out) == out

    with open(out, "rb") as fh:
        assert fh.read(5) == b"%PDF-"
    assert not os.path.exists(out + ".part")


def test_long_expense_table_spans_pages(tmp_path):
    out = str(tmp_path / "long.pdf")
    render_owner_report(_snapshot(120), out)

    with open(out, "rb") as fh:
        body = fh.read()
    assert len(re.findall(rb"/Type /Page\b", body)) >= 2


def test_snapshot_totals():
    snap = _snapshot(3)
    assert snap.total_billed == 13.8
    assert list(snap.expenses_by_listing) == [10]
