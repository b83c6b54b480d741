from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from dm_service.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_messages(
        self,
        conversation_id: str,
        *,
        cursor: str | None = None,
        limit: int = 100,
    ) -> list[Message]: ...

    async def get_last(self, conversation_id: str) -> Message | None: ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def mark_read(self, message_id: UUID, read_at: datetime) -> bool:
        """Set is_read/read_at only if still unread. Return True if this call made the transition."""
        ...
