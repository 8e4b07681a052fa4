from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.timeutil import today
from edumeal.models.eligibility_report import EligibilityReport
from edumeal.models.student import Student
from edumeal.models.subscription import Subscription
from edumeal.models.ticket import Ticket
from edumeal.services.audit_log import recent_logs
from edumeal.services.students import list_students

CSV_HEADER = [
    "Student ID",
    "Name",
    "Grade",
    "Class",
    "Plan",
    "Meals Remaining",
    "Status",
    "Used Today",
    "Used At",
]


@dataclass
class EligibilityRow:
    student_id: str
    name: str
    grade: str
    class_name: str
    plan_type: str
    meals_remaining: int
    status: str
    used_today: bool
    used_at: Optional[str] = None


def _fmt_dt(dt: Optional[datetime]) -> Optional[str]:
    if not dt:
        return None
    return dt.isoformat().replace("+00:00", "Z")


def eligibility_status(student: Student) -> str:
    # branch order kept as-is: an inactive student with meals left is "expired"
    if student.is_active and student.meals_remaining > 0:
        return "valid"
    if student.meals_remaining <= 0:
        return "exhausted"
    return "expired"


async def dashboard_stats(db: AsyncSession) -> dict:
    day = today()

    served = await db.execute(
        select(func.count(Ticket.id)).where(Ticket.date == day).where(Ticket.status == "used")
    )
    eligible = await db.execute(
        select(func.count(Student.id)).where(Student.is_active.is_(True)).where(Student.meals_remaining > 0)
    )
    active_subs = await db.execute(select(func.count(Subscription.id)).where(Subscription.status == "active"))

    return {
        "meals_served_today": int(served.scalar() or 0),
        "eligible_students": int(eligible.scalar() or 0),
        "active_subscriptions": int(active_subs.scalar() or 0),
        "recent_logs": await recent_logs(db, limit=10),
    }


async def _active_plan_map(db: AsyncSession) -> dict[int, str]:
    """
    student pk -> plan type of the newest active subscription.

    Nothing prevents several active grants per student; the most recent one wins.
    """
    res = await db.execute(
        select(Subscription.student_id, Subscription.plan_type)
        .where(Subscription.status == "active")
        .order_by(Subscription.created_at.asc(), Subscription.id.asc())
    )
    out: dict[int, str] = {}
    for student_pk, plan_type in res.all():
        out[int(student_pk)] = plan_type
    return out


async def eligibility_report(db: AsyncSession, day: date) -> list[EligibilityRow]:
    students = await list_students(db)

    res = await db.execute(select(Ticket).where(Ticket.date == day))
    tickets_by_student: dict[int, Ticket] = {}
    for t in res.scalars().all():
        tickets_by_student.setdefault(int(t.student_id), t)

    plans = await _active_plan_map(db)

    rows: list[EligibilityRow] = []
    for s in students:
        ticket = tickets_by_student.get(s.id)
        used = ticket is not None and ticket.status == "used"
        rows.append(
            EligibilityRow(
                student_id=s.student_id,
                name=s.full_name,
                grade=s.grade,
                class_name=s.class_name,
                plan_type=plans.get(s.id, "None"),
                meals_remaining=s.meals_remaining,
                status=eligibility_status(s),
                used_today=used,
                used_at=_fmt_dt(ticket.used_at) if ticket is not None else None,
            )
        )
    return rows


def export_csv(rows: list[EligibilityRow]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for r in rows:
        writer.writerow(
            [
                r.student_id,
                r.name,
                r.grade,
                r.class_name,
                r.plan_type,
                r.meals_remaining,
                r.status,
                "Yes" if r.used_today else "No",
                r.used_at or "",
            ]
        )
    return buf.getvalue()


# -------------------------
# Eligibility report markers
# -------------------------
async def list_eligibility_reports(db: AsyncSession) -> list[EligibilityReport]:
    res = await db.execute(select(EligibilityReport).order_by(EligibilityReport.date.desc()))
    return list(res.scalars().all())


async def create_eligibility_report(db: AsyncSession, *, day: date, generated_by: str | None) -> EligibilityReport:
    res = await db.execute(select(EligibilityReport.id).where(EligibilityReport.date == day))
    if res.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail="Report already exists for this date")

    report = EligibilityReport(date=day, status="published", generated_by=generated_by or "admin")
    db.add(report)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Report already exists for this date")

    await db.refresh(report)
    return report
