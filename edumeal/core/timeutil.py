from __future__ import annotations

from datetime import date, datetime, timezone

from edumeal.core.config import settings

# ZoneInfo needs the IANA database; fall back to UTC when tzdata is missing.
try:
    from zoneinfo import ZoneInfo

    _TZ = ZoneInfo(settings.TIMEZONE)
except Exception:
    _TZ = timezone.utc


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    """Calendar date of the school, used for ticket dates and "served today" counts."""
    return datetime.now(_TZ).date()


def parse_day(value: str | None) -> date | None:
    """Parse YYYY-MM-DD (or a full ISO datetime). Returns None when unparseable."""
    if not value:
        return None
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None
