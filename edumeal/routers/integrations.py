from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.db import get_db
from edumeal.core.deps import AuthUser, get_current_user
from edumeal.schemas.integrations import IntegrationOut, IntegrationUpdate
from edumeal.schemas.logs import LogOut
from edumeal.services.integrations import integration_logs, list_integrations, upsert_integration

router = APIRouter(prefix="/api/integrations", tags=["Integrations"])


@router.get("", response_model=list[IntegrationOut])
async def integrations_list(
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    return await list_integrations(db)


@router.get("/logs", response_model=list[LogOut])
async def integrations_logs(
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    return await integration_logs(db, limit=limit)


@router.post("/{name}", response_model=IntegrationOut)
async def integrations_upsert(
    name: str,
    body: IntegrationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
):
    clean = name.strip().lower()
    if not clean:
        raise HTTPException(status_code=400, detail="Integration name is required")
    return await upsert_integration(
        db,
        name=clean,
        status=body.status,
        settings=body.settings,
        actor_id=current_user.id,
    )
