from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.db import get_db
from edumeal.core.deps import AuthUser, get_current_user
from edumeal.core.timeutil import today
from edumeal.schemas.tickets import (
    ManualOverrideRequest,
    ScanResponse,
    TicketGenerateRequest,
    TicketGenerateResponse,
    TicketOut,
    TicketScanRequest,
)
from edumeal.services.tickets import (
    generate_tickets_for_date,
    list_tickets,
    manual_override,
    scan_ticket,
)

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])


@router.post("/generate", response_model=TicketGenerateResponse, status_code=status.HTTP_201_CREATED)
async def tickets_generate(
    body: TicketGenerateRequest,
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    count = await generate_tickets_for_date(db, body.date)
    return TicketGenerateResponse(count=count, message=f"Generated {count} tickets")


# Scan outcomes are always 200; "not valid" is an answer, not an error.
@router.post("/scan", response_model=ScanResponse, response_model_exclude_none=True)
async def tickets_scan(
    body: TicketScanRequest,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
):
    result = await scan_ticket(db, body.ticket_id, offline=body.offline, actor_id=current_user.id)
    return result.to_response()


@router.post("/override", response_model=ScanResponse, response_model_exclude_none=True)
async def tickets_override(
    body: ManualOverrideRequest,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
):
    result = await manual_override(db, student_pk=body.student_id, reason=body.reason, actor_id=current_user.id)
    return result.to_response()


@router.get("", response_model=list[TicketOut])
async def tickets_list(
    day: Optional[date] = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    return await list_tickets(db, day or today())
