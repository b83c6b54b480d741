from __future__ import annotations

from datetime import datetime
from uuid import UUID

from dm_service.api.v1.schemas.common import CamelModel


class LastMessageResponse(CamelModel):
    content: str
    created_at: datetime
    sender_id: UUID


class ContactResponse(CamelModel):
    id: UUID
    username: str
    email: str | None
    is_online: bool
    last_seen: datetime | None
    last_message: LastMessageResponse | None = None
