from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from edumeal.core.db import Base, JSONType


class Log(Base):
    """Append-only audit record. Never updated or deleted."""

    __tablename__ = "logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)  # scan/webhook/webhook_attempt/sync/override/error
    details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    actor_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


Index("ix_logs_created", Log.created_at.desc())
Index("ix_logs_type", Log.type)
