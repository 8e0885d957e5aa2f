from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Callable
from zoneinfo import ZoneInfo

from clinic_records.core.settings import settings

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(ZoneInfo(settings.clinic_timezone))


def fixed_clock(moment: datetime) -> Clock:
    frozen = ensure_aware(moment)

    def _now() -> datetime:
        return frozen

    return _now


def ensure_aware(value: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Attach ``tz`` to naive values; aware values pass through untouched.

    SQLite drops offsets on read, so everything persisted is stored as UTC and
    re-tagged here on the way out.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def to_utc(value: datetime, tz: tzinfo = timezone.utc) -> datetime:
    return ensure_aware(value, tz).astimezone(timezone.utc)
