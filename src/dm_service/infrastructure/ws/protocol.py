"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WsInbound(BaseModel):
    """Client → Server."""

    event: str  # message:send | message:read | typing:start | typing:stop | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    event: str  # message:new | message:sent | message:read | typing:* | user:* | error | pong
    data: dict[str, Any] = {}


class _InboundPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendMessageData(_InboundPayload):
    receiver_id: UUID | None = None
    content: str | None = None


class ReadReceiptData(_InboundPayload):
    message_id: UUID
    sender_id: UUID


class TypingData(_InboundPayload):
    receiver_id: UUID | None = None
