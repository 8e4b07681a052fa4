from __future__ import annotations

from datetime import date as date_type
from datetime import datetime
from typing import Optional

from pydantic import Field

from edumeal.schemas.common import CamelModel
from edumeal.schemas.logs import LogOut


class DashboardStatsOut(CamelModel):
    meals_served_today: int = 0
    eligible_students: int = 0
    active_subscriptions: int = 0
    recent_logs: list[LogOut] = Field(default_factory=list)


class EligibilityRowOut(CamelModel):
    student_id: str
    name: str
    grade: str
    class_name: str = Field(alias="class")
    plan_type: str
    meals_remaining: int
    status: str  # valid / exhausted / expired
    used_today: bool
    used_at: Optional[str] = None


class EligibilityReportCreate(CamelModel):
    date: date_type


class EligibilityReportOut(CamelModel):
    id: int
    date: date_type
    status: str
    generated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
