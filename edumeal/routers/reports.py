from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from starlette.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.db import get_db
from edumeal.core.deps import AuthUser, get_current_user
from edumeal.core.timeutil import today
from edumeal.schemas.reports import (
    DashboardStatsOut,
    EligibilityReportCreate,
    EligibilityReportOut,
    EligibilityRowOut,
)
from edumeal.services.reports import (
    create_eligibility_report,
    dashboard_stats,
    eligibility_report,
    export_csv,
    list_eligibility_reports,
)
from edumeal.services.reports_pdf import eligibility_report_pdf

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.get("/dashboard", response_model=DashboardStatsOut)
async def reports_dashboard(
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
) -> DashboardStatsOut:
    data = await dashboard_stats(db)
    return DashboardStatsOut.model_validate(data)


@router.get("/eligibility", response_model=list[EligibilityRowOut])
async def reports_eligibility(
    day: Optional[date] = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    return await eligibility_report(db, day or today())


@router.get("/export")
async def reports_export_csv(
    day: Optional[date] = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    day = day or today()
    rows = await eligibility_report(db, day)
    filename = f"eligibility_report_{day.isoformat()}.csv"
    return Response(
        content=export_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export.pdf")
async def reports_export_pdf(
    day: Optional[date] = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    day = day or today()
    rows = await eligibility_report(db, day)
    filename = f"eligibility_report_{day.isoformat()}.pdf"
    return Response(
        content=eligibility_report_pdf(rows, day),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Snapshot markers (who published the list for which day)
markers_router = APIRouter(prefix="/api/eligibility-reports", tags=["Reports"])


@markers_router.get("", response_model=list[EligibilityReportOut])
async def eligibility_reports_list(
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    return await list_eligibility_reports(db)


@markers_router.post("", response_model=EligibilityReportOut, status_code=status.HTTP_201_CREATED)
async def eligibility_reports_create(
    body: EligibilityReportCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
):
    return await create_eligibility_report(db, day=body.date, generated_by=current_user.label)
