from __future__ import annotations

from datetime import datetime
from uuid import UUID

from dm_service.api.v1.schemas.common import CamelModel


class MessageResponse(CamelModel):
    id: UUID
    conversation_id: str
    sender_id: UUID
    receiver_id: UUID
    content: str
    is_read: bool
    read_at: datetime | None
    created_at: datetime
