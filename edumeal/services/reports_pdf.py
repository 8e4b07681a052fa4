from __future__ import annotations

from datetime import date
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from edumeal.core.timeutil import now_utc
from edumeal.services.reports import CSV_HEADER, EligibilityRow

# row tint per eligibility status
_STATUS_TINT = {
    "valid": colors.HexColor("#dcfce7"),
    "exhausted": colors.HexColor("#fee2e2"),
    "expired": colors.HexColor("#f3f4f6"),
}


def _row_cells(r: EligibilityRow) -> list[str]:
    return [
        r.student_id,
        r.name,
        r.grade,
        r.class_name,
        r.plan_type,
        str(r.meals_remaining),
        r.status,
        "Yes" if r.used_today else "No",
        r.used_at or "",
    ]


def _roster_table(rows: list[EligibilityRow]) -> Table:
    table = Table([list(CSV_HEADER)] + [_row_cells(r) for r in rows], repeatRows=1)

    style = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#14532d")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("ALIGN", (5, 1), (5, -1), "RIGHT"),
    ]
    for i, r in enumerate(rows, start=1):
        tint = _STATUS_TINT.get(r.status)
        if tint is not None:
            style.append(("BACKGROUND", (0, i), (-1, i), tint))

    table.setStyle(TableStyle(style))
    return table


def eligibility_report_pdf(rows: list[EligibilityRow], day: date) -> bytes:
    """Printable eligibility list for the serving line, one row per student."""
    buf = BytesIO()
    title = f"Meal Eligibility - {day.isoformat()}"
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(A4),
        leftMargin=10 * mm,
        rightMargin=10 * mm,
        topMargin=10 * mm,
        bottomMargin=10 * mm,
        title=title,
    )

    styles = getSampleStyleSheet()
    eligible = sum(1 for r in rows if r.status == "valid")
    served = sum(1 for r in rows if r.used_today)
    generated = now_utc().isoformat(timespec="seconds").replace("+00:00", "Z")

    story = [
        Paragraph(title, styles["Title"]),
        Paragraph(f"{len(rows)} students, {eligible} eligible, {served} served. Generated {generated}.", styles["Normal"]),
        Spacer(1, 6 * mm),
        _roster_table(rows),
    ]
    doc.build(story)
    return buf.getvalue()
