from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.models.log import Log
from edumeal.schemas.logs import LogDetails


def add_log(
    db: AsyncSession,
    details: LogDetails,
    *,
    actor_id: str | None = None,
    log_type: str | None = None,
) -> Log:
    """Stage an audit row on the session; the caller owns the commit."""
    entry = Log(
        type=log_type or details.log_type,
        details=details.to_json(),
        actor_id=actor_id,
    )
    db.add(entry)
    return entry


async def write_log(
    db: AsyncSession,
    details: LogDetails,
    *,
    actor_id: str | None = None,
    log_type: str | None = None,
) -> Log:
    """Persist an audit row in its own commit."""
    entry = add_log(db, details, actor_id=actor_id, log_type=log_type)
    await db.commit()
    return entry


async def recent_logs(
    db: AsyncSession,
    *,
    limit: int = 20,
    types: Iterable[str] | None = None,
) -> list[Log]:
    stmt = select(Log).order_by(Log.created_at.desc(), Log.id.desc())
    if types is not None:
        stmt = stmt.where(Log.type.in_(list(types)))
    res = await db.execute(stmt.limit(int(limit)))
    return list(res.scalars().all())
