# backend/stayledger/routers/reports.py
from __future__ import annotations

import os

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from starlette.background import BackgroundTask

from ..auth import Principal, get_principal, require_admin
from ..db import get_db
from ..schemas import (
    BatchEmailOut,
    BatchNotesIn,
    BatchNotesOut,
    BatchOut,
    GenerateReportsIn,
    GenerateReportsOut,
    ReportDetailsOut,
    ReportListOut,
    ReportOut,
)
from ..services import distribution, report_batches
from ..services.email_service import EmailService, get_email_sender
from ..services.ownership import must_get_batch, must_get_report
from ..services.report_files import ReportRenderer, get_report_renderer, remove_quietly, report_details

router = APIRouter(prefix="/reports", tags=["reports"])


def _list_out(rows) -> list[ReportListOut]:
    out: list[ReportListOut] = []
    for report, owner in rows:
        item = ReportListOut.model_validate(report)
        if owner is not None:
            item = item.model_copy(update={"owner_name": owner.name, "owner_email": owner.email})
        out.append(item)
    return out


@router.get("", response_model=list[ReportListOut])
def list_reports(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _list_out(report_batches.list_reports(db, p=p))


@router.get("/batches", response_model=list[BatchOut])
def list_batches(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return report_batches.list_batches(db, p=p)


@router.post("/generate", response_model=GenerateReportsOut, status_code=201)
def generate_reports(payload: GenerateReportsIn, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    batch, reports, failures = report_batches.generate_batch(
        db,
        p=p,
        month=payload.month,
        year=payload.year,
        owner_ids=payload.owner_ids,
        title=payload.batch_title,
    )
    return {"batch_id": batch.id, "reports": reports, "failures": failures}


@router.get("/owner/{owner_id}", response_model=list[ReportListOut])
def reports_for_owner(owner_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _list_out(report_batches.list_reports(db, p=p, owner_id=owner_id))


# -------------------- Batches --------------------

@router.get("/batch/{batch_id}", response_model=BatchOut)
def get_batch(batch_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_batch(db, p=p, batch_id=batch_id)


@router.get("/batch/{batch_id}/notes", response_model=BatchNotesOut)
def get_batch_notes(batch_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    batch = must_get_batch(db, p=p, batch_id=batch_id)
    return {"batch_id": batch.id, "notes": batch.notes or ""}


@router.patch("/batch/{batch_id}/notes", response_model=BatchNotesOut)
def update_batch_notes(
    batch_id: str,
    payload: BatchNotesIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    batch = report_batches.update_notes(db, p=p, batch_id=batch_id, notes=payload.notes)
    return {"batch_id": batch.id, "notes": batch.notes}


@router.delete("/batch/{batch_id}")
def delete_batch(batch_id: str, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    deleted = report_batches.delete_batch(db, p=p, batch_id=batch_id)
    return {"ok": True, "deleted_reports": deleted}


@router.get("/batch/{batch_id}/download")
def download_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    renderer: ReportRenderer = Depends(get_report_renderer),
):
    zip_path = distribution.build_batch_zip(db, p=p, batch_id=batch_id, renderer=renderer)
    return FileResponse(
        zip_path,
        media_type="application/zip",
        filename=os.path.basename(zip_path),
        background=BackgroundTask(remove_quietly, zip_path),
    )


@router.post("/batch/{batch_id}/email", response_model=BatchEmailOut)
def email_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    renderer: ReportRenderer = Depends(get_report_renderer),
    sender: EmailService = Depends(get_email_sender),
):
    return distribution.email_batch(db, p=p, batch_id=batch_id, renderer=renderer, sender=sender)


# -------------------- Single reports --------------------

@router.get("/{report_id}", response_model=ReportOut)
def get_report(report_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_report(db, p=p, report_id=report_id)


@router.get("/{report_id}/details", response_model=ReportDetailsOut)
def get_report_details(report_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    report = must_get_report(db, p=p, report_id=report_id)
    return ReportDetailsOut.model_validate(report_details(db, report=report), from_attributes=True)


@router.get("/{report_id}/related", response_model=list[ReportListOut])
def get_related_reports(report_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    report = must_get_report(db, p=p, report_id=report_id)
    return _list_out(report_batches.related_reports(db, p=p, report=report))


@router.get("/{report_id}/download")
def download_report(
    report_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    renderer: ReportRenderer = Depends(get_report_renderer),
):
    path, filename = distribution.download_report(db, p=p, report_id=report_id, renderer=renderer)
    return FileResponse(path, media_type="application/pdf", filename=filename)


@router.post("/{report_id}/email", response_model=ReportOut)
def email_report(
    report_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    renderer: ReportRenderer = Depends(get_report_renderer),
    sender: EmailService = Depends(get_email_sender),
):
    return distribution.email_report(db, p=p, report_id=report_id, renderer=renderer, sender=sender)
