# backend/stayledger/services/distribution.py
from __future__ import annotations

import logging
import os
import time
import zipfile
from typing import Any

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain import activity as act
from ..domain.activity import log_activity
from ..models import Owner, Report, ReportType
from .email_service import EmailService
from .ownership import must_get_batch, must_get_report
from .report_files import (
    ReportGenerationError,
    ReportRenderer,
    attachment_name,
    ensure_report_pdf,
    remove_quietly,
    report_root,
)

log = logging.getLogger(__name__)


def _owner_of(db: Session, report: Report) -> Owner:
    owner = db.get(Owner, int(report.owner_id)) if report.owner_id is not None else None
    if owner is None:
        raise HTTPException(status_code=404, detail="Owner not found")
    return owner


def download_report(db: Session, *, p: Principal, report_id: int, renderer: ReportRenderer) -> tuple[str, str]:
    """Returns (path, download filename) for a report's PDF, rendering it on first use."""
    report = must_get_report(db, p=p, report_id=report_id)
    path = ensure_report_pdf(db, report=report, renderer=renderer)
    owner = _owner_of(db, report)

    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=report.portfolio_id,
        action=act.REPORT_DOWNLOADED,
        details=f"Downloaded report {report.name}",
    )
    db.commit()
    return path, attachment_name(owner, month=int(report.month), year=int(report.year))


def build_batch_zip(db: Session, *, p: Principal, batch_id: str, renderer: ReportRenderer) -> str:
    """
    Zip every owner report in a batch, rendering missing PDFs on the way.

    Reports that cannot be rendered are skipped. The caller owns the
    returned file and must delete it once the response has been sent.
    """
    batch = must_get_batch(db, p=p, batch_id=batch_id)

    entries: list[tuple[str, str]] = []
    used_names: set[str] = set()
    for report in list(batch.reports):
        if report.type != ReportType.monthly:
            continue
        try:
            path = ensure_report_pdf(db, report=report, renderer=renderer)
            owner = _owner_of(db, report)
        except HTTPException as e:
            log.warning(
                "batch_zip_report_skipped: %s",
                e.detail,
                extra={"report_id": report.id, "batch_id": batch.id},
            )
            continue
        name = attachment_name(owner, month=int(report.month), year=int(report.year))
        if name in used_names:
            name = f"{report.id}_{name}"
        used_names.add(name)
        entries.append((path, name))

    if not entries:
        raise HTTPException(status_code=404, detail="No report files available for this batch")

    zip_path = os.path.join(report_root(), f"batch_reports_{batch.id}_{int(time.time() * 1000)}.zip")
    try:
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path, name in entries:
                zf.write(path, arcname=name)
    except OSError:
        log.exception("batch_zip_failed", extra={"batch_id": batch.id})
        remove_quietly(zip_path)
        raise ReportGenerationError("Failed to create ZIP archive")

    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=batch.portfolio_id,
        action=act.BATCH_REPORTS_DOWNLOADED,
        details=f"Downloaded {len(entries)} reports from batch {batch.title}",
    )
    db.commit()
    log.info("batch_zip_built", extra={"batch_id": batch.id})
    return zip_path


def _send(db: Session, *, report: Report, renderer: ReportRenderer, sender: EmailService) -> Owner:
    path = ensure_report_pdf(db, report=report, renderer=renderer)
    owner = _owner_of(db, report)
    ok = sender.send_report_email(
        to_email=owner.email,
        owner_name=owner.name,
        month=int(report.month),
        year=int(report.year),
        attachment_path=path,
        attachment_name=attachment_name(owner, month=int(report.month), year=int(report.year)),
    )
    if not ok:
        raise HTTPException(status_code=500, detail="Failed to send email")
    return owner


def email_report(
    db: Session,
    *,
    p: Principal,
    report_id: int,
    renderer: ReportRenderer,
    sender: EmailService,
) -> Report:
    report = must_get_report(db, p=p, report_id=report_id)
    owner = _send(db, report=report, renderer=renderer, sender=sender)

    report.sent = True
    db.add(report)
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=report.portfolio_id,
        action=act.REPORT_SENT,
        details=f"Sent report {report.name} to {owner.email}",
    )
    db.commit()
    db.refresh(report)
    log.info("report_emailed", extra={"report_id": report.id, "owner_id": owner.id})
    return report


def email_batch(
    db: Session,
    *,
    p: Principal,
    batch_id: str,
    renderer: ReportRenderer,
    sender: EmailService,
) -> dict[str, Any]:
    """
    Email every owner report in a batch. Failures are tallied per report;
    earlier successes stay sent and nothing is retried.
    """
    batch = must_get_batch(db, p=p, batch_id=batch_id)

    results: list[dict[str, Any]] = []
    for report in list(batch.reports):
        if report.type != ReportType.monthly:
            continue
        try:
            owner = _send(db, report=report, renderer=renderer, sender=sender)
        except HTTPException as e:
            log.warning(
                "batch_email_failed: %s",
                e.detail,
                extra={"report_id": report.id, "batch_id": batch.id},
            )
            results.append({"report_id": report.id, "owner_id": report.owner_id, "success": False, "message": str(e.detail)})
            continue

        report.sent = True
        db.add(report)
        log_activity(
            db,
            user_id=p.user_id,
            portfolio_id=batch.portfolio_id,
            action=act.REPORT_EMAILED,
            details=f"Emailed report {report.name} to {owner.email}",
        )
        db.commit()
        results.append({"report_id": report.id, "owner_id": owner.id, "success": True, "message": f"Sent to {owner.email}"})

    success_count = sum(1 for r in results if r["success"])
    failure_count = len(results) - success_count
    log_activity(
        db,
        user_id=p.user_id,
        portfolio_id=batch.portfolio_id,
        action=act.BATCH_REPORTS_SENT,
        details=f"Sent {success_count} of {len(results)} reports from batch {batch.title}",
    )
    db.commit()
    log.info("batch_emailed", extra={"batch_id": batch.id})
    return {
        "batch_id": batch.id,
        "success_count": success_count,
        "failure_count": failure_count,
        "results": results,
    }
