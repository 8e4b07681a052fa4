from __future__ import annotations

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.security import ticket_security_hash
from edumeal.core.timeutil import now_utc, today
from edumeal.models.student import Student
from edumeal.models.ticket import Ticket

logger = structlog.get_logger(__name__)


async def seed_demo_data(db: AsyncSession) -> bool:
    """Populate an empty roster with two demo students and one ticket for today."""
    res = await db.execute(select(func.count(Student.id)))
    if int(res.scalar() or 0) > 0:
        return False

    try:
        john = Student(
            student_id="STU001",
            first_name="John",
            last_name="Doe",
            grade="5",
            class_name="5A",
            meals_remaining=10,
            is_active=True,
            updated_at=now_utc(),
        )
        jane = Student(
            student_id="STU002",
            first_name="Jane",
            last_name="Smith",
            grade="6",
            class_name="6B",
            meals_remaining=5,
            is_active=True,
            updated_at=now_utc(),
        )
        db.add_all([john, jane])
        await db.flush()

        day = today()
        db.add(
            Ticket(
                ticket_id="TICKET-001",
                student_id=john.id,
                date=day,
                session="lunch",
                security_hash=ticket_security_hash("TICKET-001", john.id, day.isoformat()),
                status="valid",
            )
        )
        await db.commit()

    except Exception:
        await db.rollback()
        raise

    logger.info("demo_data_seeded", students=2, tickets=1)
    return True
