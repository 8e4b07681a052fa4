from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.timeutil import now_utc
from edumeal.models.integration import Integration
from edumeal.models.log import Log
from edumeal.schemas.logs import IntegrationUpdateDetails
from edumeal.services.audit_log import add_log, recent_logs

INTEGRATION_LOG_TYPES = ("webhook", "sync")


async def list_integrations(db: AsyncSession) -> list[Integration]:
    res = await db.execute(select(Integration).order_by(Integration.name))
    return list(res.scalars().all())


async def _get_or_stage(db: AsyncSession, name: str) -> Integration:
    res = await db.execute(select(Integration).where(Integration.name == name))
    integration = res.scalar_one_or_none()
    if integration is None:
        integration = Integration(name=name, status="inactive", settings={})
        db.add(integration)
    return integration


async def upsert_integration(
    db: AsyncSession,
    *,
    name: str,
    status: str | None,
    settings: dict[str, Any] | None,
    actor_id: str | None = None,
) -> Integration:
    try:
        integration = await _get_or_stage(db, name)
        if status is not None:
            integration.status = status
        if settings is not None:
            integration.settings = dict(settings)
        integration.updated_at = now_utc()

        add_log(
            db,
            IntegrationUpdateDetails(name=name, status=status, settings_changed=settings is not None),
            actor_id=actor_id,
        )

        await db.commit()
        await db.refresh(integration)
        return integration

    except Exception:
        await db.rollback()
        raise


async def touch_integration(db: AsyncSession, name: str) -> Integration:
    """Mark a channel as live after an inbound event. Caller commits."""
    integration = await _get_or_stage(db, name)
    now = now_utc()
    integration.status = "active"
    integration.last_sync = now
    integration.updated_at = now
    return integration


async def integration_logs(db: AsyncSession, *, limit: int = 50) -> list[Log]:
    return await recent_logs(db, limit=limit, types=INTEGRATION_LOG_TYPES)
