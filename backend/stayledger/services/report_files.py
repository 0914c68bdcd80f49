# backend/stayledger/services/report_files.py
"""
Lazy PDF materialization for owner reports.

A report row's `file_path` is a cache entry: it is reused while the file is
on disk and regenerated from a fresh snapshot otherwise. The path is only
persisted after the file is confirmed to exist under the report root.
"""
from __future__ import annotations

import logging
import os
import re
import shutil
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.periods import month_bounds, month_name
from ..models import Expense, InventoryItem, Listing, Owner, Report
from .pdf_renderer import render_owner_report

log = logging.getLogger(__name__)

# (snapshot, out_path) -> path actually written
ReportRenderer = Callable[["ReportSnapshot", str], Optional[str]]


class ReportGenerationError(HTTPException):
    def __init__(self, detail: str = "Failed to generate report PDF"):
        super().__init__(status_code=500, detail=detail)


@dataclass
class ReportSnapshot:
    owner: Owner
    month: int
    year: int
    expenses: list[Expense]
    listings: list[Listing]
    inventory: dict[int, InventoryItem]
    company_name: str = field(default_factory=lambda: settings.company_name)

    @property
    def expenses_by_listing(self) -> dict[int, list[Expense]]:
        grouped: dict[int, list[Expense]] = defaultdict(list)
        for e in self.expenses:
            grouped[int(e.listing_id)].append(e)
        return dict(grouped)

    @property
    def total_billed(self) -> float:
        return round(sum(float(e.billed_amount) for e in self.expenses), 2)


def get_report_renderer() -> ReportRenderer:
    return render_owner_report


def report_root() -> str:
    root = os.path.abspath(settings.report_temp_dir)
    os.makedirs(root, exist_ok=True)
    return root


def _inside(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([os.path.abspath(path), root]) == root
    except ValueError:
        return False


def _slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", text or "").strip("_") or "owner"


def build_snapshot(db: Session, *, owner: Owner, year: int, month: int) -> ReportSnapshot:
    start, end = month_bounds(year, month)
    expenses = list(
        db.scalars(
            select(Expense)
            .where(Expense.owner_id == owner.id, Expense.date >= start, Expense.date < end)
            .order_by(Expense.date.asc(), Expense.id.asc())
        ).all()
    )
    listings = list(
        db.scalars(select(Listing).where(Listing.owner_id == owner.id).order_by(Listing.id.asc())).all()
    )
    inv_ids = {int(e.inventory_id) for e in expenses if e.inventory_id is not None}
    inventory: dict[int, InventoryItem] = {}
    if inv_ids:
        for item in db.scalars(select(InventoryItem).where(InventoryItem.id.in_(inv_ids))).all():
            inventory[int(item.id)] = item
    return ReportSnapshot(owner=owner, month=int(month), year=int(year), expenses=expenses, listings=listings, inventory=inventory)


def cached_path(report: Report) -> Optional[str]:
    if report.file_path and os.path.isfile(report.file_path):
        return report.file_path
    return None


def ensure_report_pdf(db: Session, *, report: Report, renderer: ReportRenderer, commit: bool = True) -> str:
    """Return a path to the report's PDF, generating it when absent or vanished."""
    path = cached_path(report)
    if path:
        return path

    if report.owner_id is None or report.month is None or report.year is None:
        raise HTTPException(status_code=400, detail="Report is missing owner, month or year")

    owner = db.get(Owner, int(report.owner_id))
    if owner is None:
        raise HTTPException(status_code=404, detail="Owner not found")

    snapshot = build_snapshot(db, owner=owner, year=int(report.year), month=int(report.month))
    root = report_root()
    target = os.path.join(
        root,
        f"report_{report.id}_{_slug(owner.name)}_{int(report.year)}_{int(report.month):02d}.pdf",
    )

    try:
        produced = renderer(snapshot, target) or target
    except Exception:
        log.exception("report_render_failed", extra={"report_id": report.id, "owner_id": owner.id})
        raise ReportGenerationError()

    if not os.path.isfile(produced):
        log.error("report_render_missing_file", extra={"report_id": report.id})
        raise ReportGenerationError()

    if not _inside(produced, root):
        try:
            shutil.copyfile(produced, target)
        except OSError:
            log.exception("report_copy_failed", extra={"report_id": report.id})
            raise ReportGenerationError()
        produced = target

    report.file_path = os.path.abspath(produced)
    db.add(report)
    if commit:
        db.commit()
        db.refresh(report)
    log.info("report_pdf_generated", extra={"report_id": report.id, "owner_id": owner.id})
    return report.file_path


def attachment_name(owner: Owner, *, month: int, year: int) -> str:
    return f"{_slug(owner.name)}_{month_name(month)}_{year}_Expense_Report.pdf"


def remove_quietly(path: Optional[str]) -> None:
    if not path:
        return
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError:
        log.warning("report_file_cleanup_failed", exc_info=True)


def report_details(db: Session, *, report: Report) -> dict[str, Any]:
    """JSON aggregation behind the report preview screen."""
    if report.owner_id is None or report.month is None or report.year is None:
        raise HTTPException(status_code=400, detail="Report is missing owner, month or year")
    owner = db.get(Owner, int(report.owner_id))
    if owner is None:
        raise HTTPException(status_code=404, detail="Owner not found")

    snap = build_snapshot(db, owner=owner, year=int(report.year), month=int(report.month))
    by_listing = snap.expenses_by_listing

    grouped = []
    for listing in snap.listings:
        rows = by_listing.get(int(listing.id), [])
        grouped.append(
            {
                "listing_id": listing.id,
                "listing_name": listing.name,
                "expenses": rows,
                "total": round(sum(float(e.billed_amount) for e in rows), 2),
            }
        )

    return {
        "report": report,
        "owner": owner,
        "expenses": snap.expenses,
        "listings": snap.listings,
        "inventory": {str(k): v for k, v in snap.inventory.items()},
        "expenses_by_listing": grouped,
        "summary": {
            "total_expenses": snap.total_billed,
            "total_properties": len(snap.listings),
        },
    }
