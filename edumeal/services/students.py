from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.timeutil import now_utc
from edumeal.models.student import Student
from edumeal.models.subscription import Subscription
from edumeal.models.ticket import Ticket
from edumeal.schemas.students import StudentCreate, StudentUpdate


async def list_students(db: AsyncSession) -> list[Student]:
    res = await db.execute(select(Student).order_by(Student.last_name, Student.first_name, Student.id))
    return list(res.scalars().all())


async def get_student(db: AsyncSession, student_pk: int) -> Student:
    student = await db.get(Student, int(student_pk))
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


async def get_student_by_school_id(db: AsyncSession, school_id: str) -> Student | None:
    res = await db.execute(select(Student).where(Student.student_id == school_id))
    return res.scalar_one_or_none()


async def create_student(db: AsyncSession, payload: StudentCreate) -> Student:
    student = Student(
        student_id=payload.student_id.strip(),
        first_name=payload.first_name,
        last_name=payload.last_name,
        grade=payload.grade,
        class_name=payload.class_name,
        is_active=payload.is_active,
        meals_remaining=payload.meals_remaining,
        parent_email=payload.parent_email,
        updated_at=now_utc(),
    )
    db.add(student)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Student ID already exists")

    await db.refresh(student)
    return student


async def update_student(db: AsyncSession, student_pk: int, payload: StudentUpdate) -> Student:
    student = await get_student(db, student_pk)

    changes = payload.model_dump(exclude_unset=True)
    if "student_id" in changes and changes["student_id"] is not None:
        changes["student_id"] = changes["student_id"].strip()

    for field, value in changes.items():
        # required columns cannot be nulled through a partial update
        if value is None and field != "parent_email":
            continue
        setattr(student, field, value)
    student.updated_at = now_utc()

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Student ID already exists")

    await db.refresh(student)
    return student


async def delete_student(db: AsyncSession, student_pk: int) -> None:
    student = await get_student(db, student_pk)
    try:
        await db.execute(delete(Ticket).where(Ticket.student_id == student.id))
        await db.execute(delete(Subscription).where(Subscription.student_id == student.id))
        await db.delete(student)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
