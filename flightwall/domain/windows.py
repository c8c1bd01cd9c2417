"""Wall-clock windows used by the enrichment budget gate."""

from __future__ import annotations

from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

NIGHT_START = time(22, 0)
NIGHT_END = time(7, 0)


def _local(now: datetime, tz: str) -> datetime:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz))


def is_night_window(now: datetime, tz: str) -> bool:
    """Return True between 22:00 and 07:00 local time in ``tz``.

    Naive datetimes are interpreted as UTC.
    """

    local_time = _local(now, tz).time()
    return local_time >= NIGHT_START or local_time < NIGHT_END


def day_key(now: datetime, tz: str) -> str:
    """Budget window key for the local calendar day, e.g. ``20240503``."""

    return _local(now, tz).strftime("%Y%m%d")


def hour_key(now: datetime, tz: str) -> str:
    """Budget window key for the local hour, e.g. ``2024050319``."""

    return _local(now, tz).strftime("%Y%m%d%H")


__all__ = ["NIGHT_END", "NIGHT_START", "day_key", "hour_key", "is_night_window"]
