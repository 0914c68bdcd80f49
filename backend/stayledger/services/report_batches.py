# backend/stayledger/services/report_batches.py
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Iterable, Optional

from fastapi import HTTPException
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain import activity as act
from ..domain.activity import log_activity
from ..domain.periods import month_name
from ..models import Owner, Report, ReportBatch, ReportType
from .ownership import must_get_batch, must_get_owner, scoped
from .report_files import remove_quietly

log = logging.getLogger(__name__)


def new_batch_id(db: Session, *, month: int, year: int) -> str:
    base = f"batch_{int(month)}_{int(year)}_{int(time.time() * 1000)}"
    batch_id = base
    n = 1
    while db.get(ReportBatch, batch_id) is not None:
        batch_id = f"{base}_{n}"
        n += 1
    return batch_id


def _drop_batch(db: Session, batch: ReportBatch) -> list[Optional[str]]:
    """Delete a batch and every report it owns; returns their cached PDF paths."""
    paths = []
    for r in list(batch.reports):
        paths.append(r.file_path)
        db.delete(r)
    db.delete(batch)
    return paths


def _attach_owner_report(
    db: Session,
    *,
    p: Principal,
    batch: ReportBatch,
    owner: Owner,
    month: int,
    year: int,
    now: datetime,
) -> Report:
    """Move the owner's report for the period into `batch`, or create one there."""
    current = db.scalar(
        select(Report)
        .where(
            Report.owner_id == owner.id,
            Report.month == int(month),
            Report.year == int(year),
            Report.type == ReportType.monthly,
        )
        .order_by(desc(Report.generated_at), desc(Report.id))
    )
    if current is not None:
        current.batch_id = batch.id
        current.generated_at = now
        current.portfolio_id = p.portfolio_id
        db.add(current)
        log.info("report_reparented", extra={"report_id": current.id, "batch_id": batch.id})
        return current

    row = Report(
        portfolio_id=p.portfolio_id,
        batch_id=batch.id,
        owner_id=owner.id,
        name=f"{owner.name} - {month_name(month)} {year} Expense Report",
        type=ReportType.monthly,
        month=int(month),
        year=int(year),
        sent=False,
        generated_at=now,
    )
    db.add(row)
    return row


def generate_batch(
    db: Session,
    *,
    p: Principal,
    month: int,
    year: int,
    owner_ids: Iterable[int],
    title: str,
) -> tuple[ReportBatch, list[Report], list[dict[str, Any]]]:
    """
    Create a batch of monthly owner reports. PDFs are not rendered here.

    Re-running with the same (portfolio, month, year, title) replaces the
    earlier batch. An owner's monthly report for the same period that sits
    in another batch is moved into this one rather than duplicated.
    """
    title = (title or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="Batch title is required")

    existing = db.scalars(
        select(ReportBatch).where(
            ReportBatch.portfolio_id == p.portfolio_id,
            ReportBatch.month == int(month),
            ReportBatch.year == int(year),
            ReportBatch.title == title,
        )
    ).all()
    stale_files: list[Optional[str]] = []
    for old in existing:
        stale_files.extend(_drop_batch(db, old))
        log.info("report_batch_replaced", extra={"batch_id": old.id, "portfolio_id": p.portfolio_id})
    if existing:
        db.flush()

    now = datetime.utcnow()
    batch = ReportBatch(
        id=new_batch_id(db, month=month, year=year),
        portfolio_id=p.portfolio_id,
        title=title,
        notes="",
        month=int(month),
        year=int(year),
        generated_at=now,
    )
    db.add(batch)

    reports: list[Report] = []
    failures: list[dict[str, Any]] = []
    seen: set[int] = set()
    for owner_id in owner_ids:
        if owner_id in seen:
            continue
        seen.add(owner_id)
        owner = db.scalar(scoped(select(Owner).where(Owner.id == int(owner_id)), Owner, p))
        if owner is None:
            log.warning("report_owner_not_found", extra={"owner_id": owner_id, "batch_id": batch.id})
            failures.append({"owner_id": owner_id, "message": "Owner not found"})
            continue

        # Each owner gets its own savepoint so a failed write only drops that owner.
        try:
            with db.begin_nested():
                row = _attach_owner_report(db, p=p, batch=batch, owner=owner, month=month, year=year, now=now)
        except Exception as e:
            log.exception("report_owner_failed", extra={"owner_id": owner_id, "batch_id": batch.id})
            failures.append({"owner_id": owner_id, "message": str(e) or "Failed to generate report"})
            continue
        reports.append(row)

    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=p.portfolio_id,
        action=act.REPORTS_GENERATED,
        details=f"Generated {len(reports)} reports for {month}/{year}",
    )
    db.commit()
    db.refresh(batch)
    for r in reports:
        db.refresh(r)
    for path in stale_files:
        remove_quietly(path)
    log.info(
        "report_batch_generated",
        extra={"batch_id": batch.id, "portfolio_id": p.portfolio_id},
    )
    return batch, reports, failures


def list_batches(db: Session, *, p: Principal) -> list[ReportBatch]:
    q = scoped(select(ReportBatch), ReportBatch, p).order_by(desc(ReportBatch.generated_at))
    return list(db.scalars(q).all())


def update_notes(db: Session, *, p: Principal, batch_id: str, notes: str) -> ReportBatch:
    batch = must_get_batch(db, p=p, batch_id=batch_id)
    batch.notes = notes or ""
    db.add(batch)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=batch.portfolio_id,
        action=act.BATCH_NOTES_UPDATED,
        details=f"Updated notes for batch {batch.title}",
    )
    db.commit()
    db.refresh(batch)
    return batch


def delete_batch(db: Session, *, p: Principal, batch_id: str) -> int:
    batch = must_get_batch(db, p=p, batch_id=batch_id)
    title, portfolio_id = batch.title, batch.portfolio_id
    paths = _drop_batch(db, batch)
    count = len(paths)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=portfolio_id,
        action=act.BATCH_REPORTS_DELETED,
        details=f"Deleted batch {title} with {count} reports",
    )
    db.commit()
    # Files go only once the rows are gone.
    for path in paths:
        remove_quietly(path)
    log.info("report_batch_deleted", extra={"batch_id": batch_id, "portfolio_id": portfolio_id})
    return count


def list_reports(db: Session, *, p: Principal, owner_id: Optional[int] = None) -> list[tuple[Report, Optional[Owner]]]:
    q = select(Report, Owner).outerjoin(Owner, Owner.id == Report.owner_id)
    if owner_id is not None:
        must_get_owner(db, p=p, owner_id=owner_id)
        q = q.where(Report.owner_id == int(owner_id))
    q = scoped(q, Report, p).order_by(desc(Report.generated_at), desc(Report.id))
    return [(r, o) for r, o in db.execute(q).all()]


def related_reports(db: Session, *, p: Principal, report: Report) -> list[tuple[Report, Optional[Owner]]]:
    """Other reports for the same month and year, visible to the caller."""
    if report.month is None or report.year is None:
        return []
    q = (
        select(Report, Owner)
        .outerjoin(Owner, Owner.id == Report.owner_id)
        .where(Report.id != report.id, Report.month == report.month, Report.year == report.year)
    )
    q = scoped(q, Report, p).order_by(desc(Report.generated_at), desc(Report.id))
    return [(r, o) for r, o in db.execute(q).all()]
