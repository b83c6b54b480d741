from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    conversation_id: str
    sender_id: UUID
    receiver_id: UUID
    content: str
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    def mark_read(self, at: datetime) -> Message:
        """Unread -> Read. A message that is already read is returned unchanged."""
        if self.is_read:
            return self
        return replace(self, is_read=True, read_at=at)
