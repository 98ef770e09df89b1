from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from tripspend.core.config import settings


def utcnow() -> datetime:
    return datetime.now(UTC)


def local_today(tz_name: str | None = None) -> date:
    return datetime.now(ZoneInfo(tz_name or settings.default_timezone)).date()


def to_local_date(value: datetime, tz_name: str | None = None) -> date:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(ZoneInfo(tz_name or settings.default_timezone)).date()


def ensure_aware(value: datetime) -> datetime:
    # sqlite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)
