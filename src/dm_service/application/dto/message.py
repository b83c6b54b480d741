from __future__ import annotations

from typing import Any

from dm_service.domain.entities.message import Message


def message_payload(msg: Message) -> dict[str, Any]:
    """Wire representation of a persisted message (``message:new`` / ``message:sent``)."""
    return {
        "id": str(msg.id),
        "conversationId": msg.conversation_id,
        "senderId": str(msg.sender_id),
        "receiverId": str(msg.receiver_id),
        "content": msg.content,
        "isRead": msg.is_read,
        "readAt": msg.read_at.isoformat() if msg.read_at else None,
        "createdAt": msg.created_at.isoformat(),
    }
