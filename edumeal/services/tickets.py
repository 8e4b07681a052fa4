from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date

import structlog
from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.security import ticket_security_hash
from edumeal.core.timeutil import now_utc, today
from edumeal.models.student import Student
from edumeal.models.ticket import Ticket
from edumeal.schemas.logs import OverrideDetails, ScanOutcomeDetails
from edumeal.services.audit_log import add_log, write_log

logger = structlog.get_logger(__name__)

SESSION_LUNCH = "lunch"

MSG_VALID = "Valid"
MSG_INVALID = "Invalid Ticket"
MSG_USED = "Ticket Already Used"
MSG_VOID = "Ticket Void"
MSG_WRONG_DATE = "Wrong Date"
MSG_NOT_ELIGIBLE = "Not Eligible"


@dataclass
class ScanResult:
    valid: bool
    message: str
    student: Student | None = None
    meals_remaining: int | None = None

    def to_response(self) -> dict:
        out: dict = {"valid": self.valid, "message": self.message}
        if self.student is not None:
            out["student"] = {
                "name": self.student.full_name,
                "class": self.student.class_name,
                "mealsRemaining": self.meals_remaining,
            }
        return out


def _new_ticket_id() -> str:
    # QR payload; random uuid4 so ids can't be enumerated
    return str(uuid.uuid4())


async def _ticket_exists(db: AsyncSession, *, student_pk: int, day: date) -> bool:
    res = await db.execute(
        select(Ticket.id)
        .where(Ticket.student_id == student_pk)
        .where(Ticket.date == day)
        .where(Ticket.session == SESSION_LUNCH)
        .limit(1)
    )
    return res.scalar_one_or_none() is not None


async def generate_tickets_for_date(db: AsyncSession, day: date) -> int:
    """
    Issue one lunch ticket per eligible student for `day`.

    Eligible = active with a positive aggregate meal counter. Students that
    already hold a ticket for the day are skipped, so re-running only fills in
    students who became eligible since the last run.
    """
    res = await db.execute(
        select(Student)
        .where(Student.is_active.is_(True))
        .where(Student.meals_remaining > 0)
        .order_by(Student.id)
    )
    students = list(res.scalars().all())

    created = 0
    for student in students:
        if await _ticket_exists(db, student_pk=student.id, day=day):
            continue

        ticket_id = _new_ticket_id()
        ticket = Ticket(
            ticket_id=ticket_id,
            student_id=student.id,
            date=day,
            session=SESSION_LUNCH,
            security_hash=ticket_security_hash(ticket_id, student.id, day.isoformat()),
            status="valid",
        )
        try:
            async with db.begin_nested():
                db.add(ticket)
        except IntegrityError:
            # a concurrent run ticketed this student first
            continue
        created += 1

    await db.commit()
    logger.info("tickets_generated", date=day.isoformat(), count=created, eligible=len(students))
    return created


async def list_tickets(db: AsyncSession, day: date) -> list[Ticket]:
    res = await db.execute(select(Ticket).where(Ticket.date == day).order_by(Ticket.id))
    return list(res.scalars().all())


async def _reject(
    db: AsyncSession,
    *,
    ticket_id: str,
    result: str,
    message: str,
    offline: bool,
    actor_id: str | None,
    **extra,
) -> ScanResult:
    await write_log(
        db,
        ScanOutcomeDetails(ticket_id=ticket_id, result=result, offline=offline or None, **extra),
        actor_id=actor_id,
    )
    logger.info("ticket_scan_rejected", ticket_id=ticket_id, result=result)
    return ScanResult(valid=False, message=message)


async def scan_ticket(
    db: AsyncSession,
    ticket_id: str,
    *,
    offline: bool = False,
    actor_id: str | None = None,
) -> ScanResult:
    """
    Validate and consume a ticket.

    Rejections are normal outcomes: they are logged and returned, never raised.
    Consumption is a conditional update (`status='valid'` in the WHERE clause)
    followed by the meal decrement in the same transaction, so two scans of
    one ticket cannot both succeed.
    """
    ticket_id = (ticket_id or "").strip()

    res = await db.execute(select(Ticket).where(Ticket.ticket_id == ticket_id))
    ticket = res.scalar_one_or_none()

    if ticket is None:
        return await _reject(
            db, ticket_id=ticket_id, result="invalid_ticket", message=MSG_INVALID, offline=offline, actor_id=actor_id
        )

    if ticket.status == "used":
        return await _reject(
            db, ticket_id=ticket_id, result="duplicate_used", message=MSG_USED, offline=offline, actor_id=actor_id
        )

    if ticket.status != "valid":
        return await _reject(
            db, ticket_id=ticket_id, result="invalid_status", message=MSG_VOID, offline=offline, actor_id=actor_id
        )

    current_day = today()
    if ticket.date != current_day:
        return await _reject(
            db,
            ticket_id=ticket_id,
            result="wrong_date",
            message=MSG_WRONG_DATE,
            offline=offline,
            actor_id=actor_id,
            expected=current_day.isoformat(),
            actual=ticket.date.isoformat(),
        )

    try:
        claimed = await db.execute(
            update(Ticket)
            .where(Ticket.id == ticket.id)
            .where(Ticket.status == "valid")
            .values(status="used", used_at=now_utc())
            .returning(Ticket.id)
            .execution_options(synchronize_session=False)
        )
        if claimed.scalar_one_or_none() is None:
            await db.rollback()
            return await _reject(
                db, ticket_id=ticket_id, result="duplicate_used", message=MSG_USED, offline=offline, actor_id=actor_id
            )

        dec = await db.execute(
            update(Student)
            .where(Student.id == ticket.student_id)
            .values(meals_remaining=Student.meals_remaining - 1, updated_at=now_utc())
            .returning(Student.meals_remaining)
            .execution_options(synchronize_session=False)
        )
        meals_left = dec.scalar_one_or_none()

        add_log(
            db,
            ScanOutcomeDetails(
                ticket_id=ticket_id,
                result="success",
                student_id=ticket.student_id,
                offline=offline or None,
            ),
            actor_id=actor_id,
        )
        await db.commit()

    except Exception:
        await db.rollback()
        raise

    student = await db.get(Student, ticket.student_id, populate_existing=True)
    logger.info("ticket_scanned", ticket_id=ticket_id, student_id=ticket.student_id, meals_remaining=meals_left)

    if student is None:
        return ScanResult(valid=True, message=MSG_VALID)
    return ScanResult(valid=True, message=MSG_VALID, student=student, meals_remaining=meals_left)


async def manual_override(
    db: AsyncSession,
    *,
    student_pk: int,
    reason: str,
    actor_id: str | None = None,
) -> ScanResult:
    """Serve a meal without a ticket (lost/damaged QR). Same eligibility rule as generation."""
    student = await db.get(Student, int(student_pk))
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    try:
        dec = await db.execute(
            update(Student)
            .where(Student.id == student.id)
            .where(Student.is_active.is_(True))
            .where(Student.meals_remaining > 0)
            .values(meals_remaining=Student.meals_remaining - 1, updated_at=now_utc())
            .returning(Student.meals_remaining)
            .execution_options(synchronize_session=False)
        )
        meals_left = dec.scalar_one_or_none()

        result = "success" if meals_left is not None else "not_eligible"
        add_log(
            db,
            OverrideDetails(student_id=student.id, reason=reason, result=result, meals_remaining=meals_left),
            actor_id=actor_id,
        )
        await db.commit()

    except Exception:
        await db.rollback()
        raise

    logger.info("manual_override", student_id=student.id, result=result, actor_id=actor_id)

    if meals_left is None:
        return ScanResult(valid=False, message=MSG_NOT_ELIGIBLE)

    await db.refresh(student)
    return ScanResult(valid=True, message=MSG_VALID, student=student, meals_remaining=meals_left)
