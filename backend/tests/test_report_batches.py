# backend/tests/test_report_batches.py
from __future__ import annotations

import os
import tempfile

from sqlalchemy import event, func, select

from stayledger.db import SessionLocal
from stayledger.models import Report, ReportBatch
from stayledger.services.report_files import get_report_renderer, report_root


def _generate(client, headers, owner_ids, title="March owners", month=3, year=2026):
    return client.post(
        "/api/reports/generate",
        json={"month": month, "year": year, "owner_ids": owner_ids, "batch_title": title},
        headers=headers,
    )


def _counts():
    db = SessionLocal()
    try:
        batches = int(db.scalar(select(func.count(ReportBatch.id))) or 0)
        reports = int(db.scalar(select(func.count(Report.id))) or 0)
        return batches, reports
    finally:
        db.close()


def _add_march_expense(client, acme, total=40.0):
    r = client.post(
        "/api/expenses",
        json={
            "listing_id": acme["listing_id"],
            "total_cost": total,
            "markup_percent": 15.0,
            "notes": "Deep clean",
            "date": "2026-03-15T10:00:00",
        },
        headers=acme["headers"],
    )
    assert r.status_code == 201, r.text


def test_generate_creates_one_report_per_owner(client, seed, renderer, acme):
    second = seed.owner(acme["portfolio_id"], "Beta Rentals", "beta@rentals.test")

    r = _generate(client, acme["headers"], [acme["owner_id"], second, acme["owner_id"]])
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["batch_id"].startswith("batch_3_2026_")
    assert len(body["reports"]) == 2
    assert body["failures"] == []
    assert {rep["name"] for rep in body["reports"]} == {
        "Acme Holdings - March 2026 Expense Report",
        "Beta Rentals - March 2026 Expense Report",
    }
    assert all(rep["file_path"] is None for rep in body["reports"])
    # Nothing is rendered at generation time.
    assert renderer.calls == []


def test_regenerating_same_title_replaces_batch(client, acme):
    _generate(client, acme["headers"], [acme["owner_id"]])
    second = _generate(client, acme["headers"], [acme["owner_id"]]).json()

    assert _counts() == (1, 1)
    batches = client.get("/api/reports/batches", headers=acme["headers"]).json()
    assert [b["id"] for b in batches] == [second["batch_id"]]
    assert len(batches[0]["reports"]) == 1


def test_new_title_takes_over_existing_report(client, acme):
    first = _generate(client, acme["headers"], [acme["owner_id"]], title="March owners").json()
    second = _generate(client, acme["headers"], [acme["owner_id"]], title="March resend").json()

    assert second["reports"][0]["id"] == first["reports"][0]["id"]
    assert second["reports"][0]["batch_id"] == second["batch_id"]
    assert _counts() == (2, 1)

    old = client.get(f"/api/reports/batch/{first['batch_id']}", headers=acme["headers"]).json()
    assert old["reports"] == []


def test_blank_title_is_rejected(client, acme):
    r = _generate(client, acme["headers"], [acme["owner_id"]], title="   ")
    assert r.status_code == 400
    assert r.json()["detail"] == "Batch title is required"
    assert _counts() == (0, 0)


def test_unknown_owner_is_reported_not_fatal(client, acme):
    r = _generate(client, acme["headers"], [acme["owner_id"], 9999])
    assert r.status_code == 201
    body = r.json()
    assert len(body["reports"]) == 1
    assert body["failures"] == [{"owner_id": 9999, "message": "Owner not found"}]


def test_download_renders_once_and_reuses_file(client, renderer, acme):
    _add_march_expense(client, acme)
    report_id = _generate(client, acme["headers"], [acme["owner_id"]]).json()["reports"][0]["id"]

    r1 = client.get(f"/api/reports/{report_id}/download", headers=acme["headers"])
    assert r1.status_code == 200
    assert r1.headers["content-type"] == "application/pdf"
    assert "Acme_Holdings_March_2026_Expense_Report.pdf" in r1.headers["content-disposition"]

    r2 = client.get(f"/api/reports/{report_id}/download", headers=acme["headers"])
    assert r2.status_code == 200
    assert r2.content == r1.content
    assert renderer.calls == [(acme["owner_id"], 2026, 3)]

    stored = client.get(f"/api/reports/{report_id}", headers=acme["headers"]).json()["file_path"]
    assert stored and os.path.isfile(stored)


def test_vanished_file_is_rendered_again(client, renderer, acme):
    report_id = _generate(client, acme["headers"], [acme["owner_id"]]).json()["reports"][0]["id"]
    client.get(f"/api/reports/{report_id}/download", headers=acme["headers"])
    stored = client.get(f"/api/reports/{report_id}", headers=acme["headers"]).json()["file_path"]

    os.remove(stored)
    r = client.get(f"/api/reports/{report_id}/download", headers=acme["headers"])
    assert r.status_code == 200
    assert len(renderer.calls) == 2


def test_render_failure_keeps_path_empty(client, renderer, acme):
    renderer.fail = True
    report_id = _generate(client, acme["headers"], [acme["owner_id"]]).json()["reports"][0]["id"]

    r = client.get(f"/api/reports/{report_id}/download", headers=acme["headers"])
    assert r.status_code == 500
    assert r.json()["detail"] == "Failed to generate report PDF"
    assert client.get(f"/api/reports/{report_id}", headers=acme["headers"]).json()["file_path"] is None


def test_report_details_group_by_listing(client, acme):
    _add_march_expense(client, acme, total=40.0)
    _add_march_expense(client, acme, total=60.0)
    report_id = _generate(client, acme["headers"], [acme["owner_id"]]).json()["reports"][0]["id"]

    r = client.get(f"/api/reports/{report_id}/details", headers=acme["headers"])
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["owner"]["id"] == acme["owner_id"]
    assert len(body["expenses"]) == 2
    assert body["summary"] == {"total_expenses": 115.0, "total_properties": 1}
    assert body["expenses_by_listing"][0]["listing_id"] == acme["listing_id"]
    assert body["expenses_by_listing"][0]["total"] == 115.0


def test_batch_notes_and_delete(client, renderer, acme):
    batch_id = _generate(client, acme["headers"], [acme["owner_id"]]).json()["batch_id"]

    r = client.patch(f"/api/reports/batch/{batch_id}/notes", json={"notes": "Sent late"}, headers=acme["headers"])
    assert r.json() == {"batch_id": batch_id, "notes": "Sent late"}
    assert client.get(f"/api/reports/batch/{batch_id}/notes", headers=acme["headers"]).json()["notes"] == "Sent late"

    report_id = client.get(f"/api/reports/batch/{batch_id}", headers=acme["headers"]).json()["reports"][0]["id"]
    client.get(f"/api/reports/{report_id}/download", headers=acme["headers"])
    stored = client.get(f"/api/reports/{report_id}", headers=acme["headers"]).json()["file_path"]

    r = client.delete(f"/api/reports/batch/{batch_id}", headers=acme["headers"])
    assert r.json() == {"ok": True, "deleted_reports": 1}
    assert _counts() == (0, 0)
    assert not os.path.exists(stored)


def test_owner_whose_row_fails_to_save_is_isolated(client, seed, acme):
    broken = seed.owner(acme["portfolio_id"], "Broken Estates", "broken@estates.test")

    def _refuse(mapper, connection, target):
        if target.owner_id == broken:
            raise RuntimeError("disk full")

    event.listen(Report, "before_insert", _refuse)
    try:
        r = _generate(client, acme["headers"], [broken, acme["owner_id"]])
    finally:
        event.remove(Report, "before_insert", _refuse)

    assert r.status_code == 201, r.text
    body = r.json()
    assert [rep["owner_id"] for rep in body["reports"]] == [acme["owner_id"]]
    assert body["failures"] == [{"owner_id": broken, "message": "disk full"}]
    assert _counts() == (1, 1)


def test_pdf_rendered_outside_report_root_is_copied_in(app, client, acme):
    elsewhere = tempfile.mkdtemp(prefix="stayledger-elsewhere-")

    def render_elsewhere(snapshot, out_path):
        produced = os.path.join(elsewhere, "x.pdf")
        with open(produced, "wb") as fh:
            fh.write(b"%PDF-1.4\n% rendered elsewhere\n")
        return produced

    app.dependency_overrides[get_report_renderer] = lambda: render_elsewhere
    report_id = _generate(client, acme["headers"], [acme["owner_id"]]).json()["reports"][0]["id"]

    r = client.get(f"/api/reports/{report_id}/download", headers=acme["headers"])
    assert r.status_code == 200
    assert r.content.startswith(b"%PDF-")

    stored = client.get(f"/api/reports/{report_id}", headers=acme["headers"]).json()["file_path"]
    assert stored.startswith(report_root())
    assert os.path.isfile(stored)


def test_related_reports_share_the_period(client, seed, acme):
    second = seed.owner(acme["portfolio_id"], "Beta Rentals", "beta@rentals.test")
    march = _generate(client, acme["headers"], [acme["owner_id"], second]).json()["reports"]
    _generate(client, acme["headers"], [second], title="April owners", month=4)

    mine = next(rep for rep in march if rep["owner_id"] == acme["owner_id"])
    r = client.get(f"/api/reports/{mine['id']}/related", headers=acme["headers"])
    assert r.status_code == 200, r.text
    related = r.json()
    assert [rep["owner_id"] for rep in related] == [second]
    assert related[0]["owner_name"] == "Beta Rentals"
    assert related[0]["month"] == 3


def test_related_reports_stay_in_portfolio(client, seed, acme):
    mine = _generate(client, acme["headers"], [acme["owner_id"]]).json()["reports"][0]

    other_pid = seed.portfolio("Rival")
    rival = seed.user(other_pid, "ops@rival.test")
    rival_owner = seed.owner(other_pid, "Rival Owner", "owner@rival.test")
    _generate(client, rival, [rival_owner])

    assert client.get(f"/api/reports/{mine['id']}/related", headers=acme["headers"]).json() == []
    assert client.get(f"/api/reports/{mine['id']}/related", headers=rival).status_code == 404
