from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Protocol


class Clock(Protocol):
    """Source of server-assigned timestamps (createdAt, readAt, lastSeen)."""

    def now(self) -> datetime: ...


class SystemClock:
    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)
