from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from edumeal.core.db import Base


class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active','exhausted','expired')",
            name="subscriptions_status_check",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )

    plan_type: Mapped[str] = mapped_column(Text, nullable=False)  # daily/weekly/monthly/termly
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    amount_paid: Mapped[int] = mapped_column(Integer, nullable=False)  # cents
    total_meals: Mapped[int] = mapped_column(Integer, nullable=False)

    # per-grant counter, not reconciled with students.meals_remaining
    meals_remaining: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(Text, nullable=False)
    qb_transaction_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )


Index("ix_subscriptions_student_status", Subscription.student_id, Subscription.status)
