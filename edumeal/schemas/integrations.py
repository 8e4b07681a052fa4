from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from edumeal.schemas.common import CamelModel


class IntegrationUpdate(CamelModel):
    status: Optional[str] = Field(default=None, pattern="^(active|inactive)$")
    settings: Optional[dict[str, Any]] = None


class IntegrationOut(CamelModel):
    id: int
    name: str
    status: str
    settings: dict[str, Any] = Field(default_factory=dict)
    last_sync: Optional[datetime] = None
    updated_at: Optional[datetime] = None
