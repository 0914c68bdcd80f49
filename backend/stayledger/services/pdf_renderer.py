# backend/stayledger/services/pdf_renderer.py
from __future__ import annotations

import os
from datetime import datetime, date

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from ..domain.periods import month_name

MARGIN = 18 * mm
FOOTER_H = 12 * mm

NAVY = colors.HexColor("#1e3a5f")
TEAL = colors.HexColor("#0f766e")
GRAY = colors.HexColor("#6b7280")
DARK = colors.HexColor("#111827")
LINE = colors.HexColor("#e5e7eb")
HEAD_BG = colors.HexColor("#f3f4f6")


def _fmt_date(d):
    if not d:
        return "-"
    if isinstance(d, (datetime, date)):
        return d.strftime("%Y-%m-%d")
    return str(d)


def _money(v) -> str:
    if v is None:
        return "-"
    return f"${float(v):,.2f}"


def _table_style() -> TableStyle:
    return TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEAD_BG),
        ("TEXTCOLOR", (0, 0), (-1, 0), DARK),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.5, LINE),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("PADDING", (0, 0), (-1, -1), 5),
    ])


class _Pager:
    """Keeps a running y cursor and starts new pages as content overflows."""

    def __init__(self, c: canvas.Canvas, *, footer: str):
        self.c = c
        self.width, self.height = A4
        self.footer = footer
        self.page = 1
        self.y = self.height - MARGIN

    def _draw_footer(self) -> None:
        c = self.c
        c.setFillColor(LINE)
        c.rect(0, 0, self.width, FOOTER_H, stroke=0, fill=1)
        c.setFillColor(colors.HexColor("#374151"))
        c.setFont("Helvetica", 8)
        c.drawString(MARGIN, 4 * mm, self.footer)
        c.setFillColor(GRAY)
        c.drawRightString(self.width - MARGIN, 4 * mm, f"Page {self.page}")

    def new_page(self) -> None:
        self._draw_footer()
        self.c.showPage()
        self.page += 1
        self.y = self.height - MARGIN

    def ensure(self, needed: float) -> None:
        if self.y - needed < FOOTER_H + 8 * mm:
            self.new_page()

    def heading(self, text: str, *, size: int = 12) -> None:
        self.ensure(10 * mm)
        self.c.setFillColor(DARK)
        self.c.setFont("Helvetica-Bold", size)
        self.c.drawString(MARGIN, self.y, text)
        self.y -= 7 * mm

    def table(self, table: Table) -> None:
        avail_w = self.width - 2 * MARGIN
        pending = [table]
        while pending:
            t = pending.pop(0)
            avail_h = self.y - (FOOTER_H + 8 * mm)
            _, th = t.wrapOn(self.c, avail_w, avail_h)
            if th <= avail_h:
                t.drawOn(self.c, MARGIN, self.y - th)
                self.y -= th + 6 * mm
                continue
            parts = t.split(avail_w, avail_h)
            if len(parts) < 2:
                if self.y >= self.height - MARGIN:
                    # Fresh page and still unsplittable: draw and let it clip.
                    t.drawOn(self.c, MARGIN, self.y - th)
                    self.y -= th + 6 * mm
                    continue
                self.new_page()
                pending.insert(0, t)
                continue
            first, rest = parts[0], parts[1:]
            _, fh = first.wrapOn(self.c, avail_w, avail_h)
            first.drawOn(self.c, MARGIN, self.y - fh)
            self.new_page()
            pending[:0] = rest

    def finish(self) -> None:
        self._draw_footer()
        self.c.showPage()
        self.c.save()


def render_owner_report(snapshot, out_path: str) -> str:
    """
    Render one owner's monthly expense report to `out_path`.

    Writes to a sibling temp file and renames it into place, so a crash
    mid-render never leaves a truncated PDF at `out_path`.
    """
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    part_path = out_path + ".part"

    owner = snapshot.owner
    period = f"{month_name(snapshot.month)} {snapshot.year}"

    c = canvas.Canvas(part_path, pagesize=A4)
    c.setTitle(f"{owner.name} - {period} Expense Report")
    width, height = A4
    pager = _Pager(c, footer=f"{snapshot.company_name} - Property Management")

    # --- Header bar ---
    c.setFillColor(NAVY)
    c.rect(0, height - 28 * mm, width, 28 * mm, stroke=0, fill=1)
    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 16)
    c.drawString(MARGIN, height - 15 * mm, "Monthly Expense Report")
    c.setFont("Helvetica", 10)
    c.drawString(MARGIN, height - 22 * mm, period)
    c.setFont("Helvetica", 9)
    c.drawRightString(width - MARGIN, height - 15 * mm, snapshot.company_name)
    c.drawRightString(width - MARGIN, height - 22 * mm, f"Generated: {_fmt_date(date.today())}")
    pager.y = height - 38 * mm

    # --- Owner card ---
    pager.heading("Owner Information", size=11)
    card_h = 24 * mm
    c.setStrokeColor(LINE)
    c.setFillColor(colors.white)
    c.roundRect(MARGIN, pager.y - card_h + 4 * mm, width - 2 * MARGIN, card_h, 6, stroke=1, fill=1)
    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(MARGIN + 4 * mm, pager.y - 3 * mm, owner.name)
    c.setFont("Helvetica", 9)
    c.drawString(MARGIN + 4 * mm, pager.y - 9 * mm, f"Email: {owner.email}")
    if owner.phone:
        c.drawString(MARGIN + 4 * mm, pager.y - 15 * mm, f"Phone: {owner.phone}")
    pager.y -= card_h + 4 * mm

    # --- Properties ---
    pager.heading("Properties", size=11)
    rows = [["Property", "Address", "Type"]]
    for listing in snapshot.listings:
        rows.append([listing.name, (listing.address or "")[:60], str(listing.property_type).title()])
    if len(rows) == 1:
        rows.append(["(No properties)", "-", "-"])
    t = Table(rows, colWidths=[50 * mm, 100 * mm, 24 * mm], hAlign="LEFT", repeatRows=1)
    t.setStyle(_table_style())
    pager.table(t)

    # --- Summary ---
    pager.heading("Financial Summary", size=11)
    pager.ensure(14 * mm)
    c.setFont("Helvetica", 9)
    c.setFillColor(GRAY)
    c.drawString(MARGIN, pager.y, "Total Expenses")
    c.drawString(MARGIN + 70 * mm, pager.y, "Properties")
    c.setFillColor(TEAL)
    c.setFont("Helvetica-Bold", 12)
    c.drawString(MARGIN, pager.y - 6 * mm, _money(snapshot.total_billed))
    c.drawString(MARGIN + 70 * mm, pager.y - 6 * mm, str(len(snapshot.listings)))
    pager.y -= 16 * mm

    # --- Per-listing expense tables ---
    for listing in snapshot.listings:
        expenses = snapshot.expenses_by_listing.get(listing.id, [])
        if not expenses:
            continue
        pager.heading(f"{listing.name} - Expenses", size=10)
        rows = [["Date", "Description", "Item", "Qty", "Unit Cost", "Total"]]
        for e in expenses:
            item = snapshot.inventory.get(e.inventory_id) if e.inventory_id is not None else None
            qty = int(e.quantity_used or 0)
            unit = (float(e.billed_amount) / qty) if qty else None
            rows.append([
                _fmt_date(e.date),
                (e.notes or "-")[:40],
                item.name if item is not None else "-",
                str(qty) if qty else "-",
                _money(unit),
                _money(e.billed_amount),
            ])
        rows.append(["", "", "", "", "Subtotal", _money(sum(float(e.billed_amount) for e in expenses))])
        t = Table(rows, colWidths=[22 * mm, 54 * mm, 38 * mm, 12 * mm, 24 * mm, 24 * mm], hAlign="LEFT", repeatRows=1)
        style = _table_style()
        style.add("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold")
        t.setStyle(style)
        pager.table(t)

    if not snapshot.expenses:
        pager.ensure(8 * mm)
        c.setFont("Helvetica", 9)
        c.setFillColor(GRAY)
        c.drawString(MARGIN, pager.y, f"No expenses were recorded for {period}.")
        pager.y -= 8 * mm

    pager.finish()
    os.replace(part_path, out_path)
    return out_path
