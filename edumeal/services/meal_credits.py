from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import structlog
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.timeutil import now_utc, parse_day, today
from edumeal.models.student import Student
from edumeal.models.subscription import Subscription
from edumeal.schemas.logs import WebhookErrorDetails, WebhookResultDetails
from edumeal.services.audit_log import add_log
from edumeal.services.integrations import touch_integration
from edumeal.services.students import get_student_by_school_id
from edumeal.services.webhook_parser import PLACEHOLDER_CLASS, ParsedIdentity, parse_student_identity

logger = structlog.get_logger(__name__)


class MealCreditError(Exception):
    pass


@dataclass
class MealGrant:
    student: Student
    subscription: Subscription
    meals_added: int
    auto_provisioned: bool


def meals_for_plan(plan_type: str | None) -> int:
    """Meal credits per plan. Case-insensitive substring match; anything else is a single meal."""
    p = (plan_type or "").lower()
    if "weekly" in p:
        return 5
    if "monthly" in p:
        return 20
    if "termly" in p:
        return 60
    return 1


def parse_service_date(value: str | None) -> date:
    return parse_day(value) or today()


def to_cents(amount) -> int:
    if amount is None or amount == "":
        return 0
    return int(round(float(amount) * 100))


async def _provision_student(
    db: AsyncSession,
    *,
    identity: ParsedIdentity,
    class_name: str | None,
    raw_id: str,
) -> tuple[Student, bool]:
    """Insert a placeholder student. Returns (student, created)."""
    student = Student(
        student_id=identity.school_id,
        first_name=identity.first_name,
        last_name=identity.last_name,
        grade=identity.grade,
        class_name=(class_name or "").strip() or PLACEHOLDER_CLASS,
        is_active=True,
        meals_remaining=0,
        updated_at=now_utc(),
    )

    try:
        async with db.begin_nested():
            db.add(student)
        logger.info(
            "student_auto_provisioned",
            school_id=identity.school_id,
            fallback=sorted(identity.from_fallback),
        )
        return student, True
    except IntegrityError:
        # lost a race with another request creating the same school id
        existing = await get_student_by_school_id(db, identity.school_id)
        if existing is not None:
            return existing, False

    add_log(
        db,
        WebhookErrorDetails(
            error="creation_failed",
            student_id=identity.school_id,
            message=f"Could not create student from '{raw_id}'",
        ),
    )
    await db.commit()
    logger.error("student_creation_failed", school_id=identity.school_id, raw_id=raw_id)
    raise MealCreditError(f"Could not create student {identity.school_id}")


async def grant_meals(
    db: AsyncSession,
    *,
    school_id: str,
    plan_type: str,
    amount_cents: int,
    transaction_id: str | None,
    grade: str | None = None,
    class_name: str | None = None,
    description: str | None = None,
    service_date: str | None = None,
    source: str = "quickbooks",
) -> MealGrant:
    """
    Turn a payment into meal credits.

    Creates one `active` subscription for the grant and bumps the student's
    aggregate counter by the same amount. The two counters are independent
    afterwards: scans only consume `students.meals_remaining`.
    """
    identity = parse_student_identity(school_id, grade=grade, texts=(description, plan_type))

    auto_provisioned = False
    student = await get_student_by_school_id(db, identity.school_id)
    if student is None:
        student, auto_provisioned = await _provision_student(
            db, identity=identity, class_name=class_name, raw_id=school_id
        )

    meals = meals_for_plan(plan_type)

    try:
        sub = Subscription(
            student_id=student.id,
            plan_type=plan_type,
            start_date=parse_service_date(service_date),
            amount_paid=int(amount_cents),
            total_meals=meals,
            meals_remaining=meals,
            status="active",
            qb_transaction_id=transaction_id,
        )
        db.add(sub)

        await db.execute(
            update(Student)
            .where(Student.id == student.id)
            .values(meals_remaining=Student.meals_remaining + meals, updated_at=now_utc())
        )

        add_log(
            db,
            WebhookResultDetails(
                student_id=identity.school_id,
                meals_added=meals,
                transaction_id=transaction_id,
                auto_provisioned=auto_provisioned,
            ),
        )
        await touch_integration(db, source)

        await db.commit()
        await db.refresh(student)
        await db.refresh(sub)

    except Exception:
        await db.rollback()
        raise

    logger.info(
        "meals_granted",
        school_id=identity.school_id,
        plan_type=plan_type,
        meals=meals,
        meals_remaining=student.meals_remaining,
        transaction_id=transaction_id,
    )
    return MealGrant(student=student, subscription=sub, meals_added=meals, auto_provisioned=auto_provisioned)
