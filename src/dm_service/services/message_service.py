from __future__ import annotations

import logging
import uuid

from dm_service.application.dto.message import message_payload
from dm_service.application.dto.principal import Principal
from dm_service.application.exceptions import ForbiddenError, PersistenceError, ValidationError
from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.ports.transport import ClientConnection
from dm_service.application.uow import UnitOfWork
from dm_service.domain.entities.message import Message
from dm_service.domain.value_objects import conversation_id as cid
from dm_service.domain.value_objects.enums import EventType
from dm_service.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class MessageRelay:
    """Validates, persists and delivers direct messages."""

    def __init__(self, registry: ConnectionRegistry, clock: Clock | None = None) -> None:
        self._registry = registry
        self._clock = clock or SystemClock()

    async def send(
        self,
        sender_id: uuid.UUID,
        receiver_id: uuid.UUID | None,
        content: str | None,
        uow: UnitOfWork,
        *,
        origin: ClientConnection,
    ) -> Message:
        """Persist a message, push ``message:new`` to a live receiver and ``message:sent`` to ``origin``.

        ``message:sent`` carries the canonical copy the sender's client uses to
        replace its optimistic placeholder. An offline receiver only sees the
        message through the history API.
        """
        if receiver_id is None or not content or not content.strip():
            raise ValidationError("Receiver ID and content are required")

        msg = Message(
            id=uuid.uuid4(),
            conversation_id=cid.derive(sender_id, receiver_id),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            is_read=False,
            read_at=None,
            created_at=self._clock.now(),
        )
        try:
            msg = await uow.messages_w.create(msg)
            await uow.commit()
        except Exception as exc:
            logger.exception("Failed to store message from %s to %s", sender_id, receiver_id)
            raise PersistenceError("Message could not be saved") from exc

        data = message_payload(msg)
        delivered = await self._registry.send_to(receiver_id, EventType.MESSAGE_NEW, data)
        await origin.send(EventType.MESSAGE_SENT, data)
        logger.debug("Message %s stored (receiver live=%s)", msg.id, delivered)
        return msg


async def list_history(
    conversation_id: str,
    principal: Principal,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    try:
        participants = cid.parse(conversation_id)
    except cid.MalformedIdentifierError as exc:
        raise ValidationError("Invalid conversation ID") from exc

    if str(principal.user_id) not in participants:
        raise ForbiddenError("Access denied")

    return await uow.messages.list_messages(conversation_id, cursor=cursor, limit=limit)
