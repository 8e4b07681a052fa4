from __future__ import annotations

from datetime import date as date_type
from datetime import datetime
from typing import Optional

from pydantic import Field

from edumeal.schemas.common import CamelModel


class TicketGenerateRequest(CamelModel):
    date: date_type


class TicketGenerateResponse(CamelModel):
    count: int
    message: str


class TicketScanRequest(CamelModel):
    # blank ids fall through to "Invalid Ticket", like any unknown id
    ticket_id: str = ""
    offline: bool = False


class ScanStudentOut(CamelModel):
    name: str
    class_name: str = Field(alias="class")
    meals_remaining: int


class ScanResponse(CamelModel):
    valid: bool
    message: str
    student: Optional[ScanStudentOut] = None


class ManualOverrideRequest(CamelModel):
    student_id: int  # database id
    reason: str = Field(min_length=1, max_length=500)


class TicketOut(CamelModel):
    id: int
    ticket_id: str
    student_id: int
    date: date_type
    session: str
    security_hash: str
    status: str
    generated_at: Optional[datetime] = None
    used_at: Optional[datetime] = None
