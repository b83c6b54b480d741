from __future__ import annotations

import logging
import uuid

from dm_service.application.exceptions import PersistenceError
from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.uow import UnitOfWork
from dm_service.domain.entities.message import Message
from dm_service.domain.value_objects.enums import EventType
from dm_service.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class ReadReceiptPropagator:
    """Applies the Unread -> Read transition and notifies the original sender."""

    def __init__(self, registry: ConnectionRegistry, clock: Clock | None = None) -> None:
        self._registry = registry
        self._clock = clock or SystemClock()

    async def mark_read(
        self,
        message_id: uuid.UUID,
        claimed_sender_id: uuid.UUID,
        reader_id: uuid.UUID,
        uow: UnitOfWork,
    ) -> Message | None:
        """Return the message as it stands afterwards, or None when nothing was applied.

        Unknown ids and mismatched sender/receiver claims are dropped without
        telling the caller, so message ids cannot be discovered by guessing.
        """
        msg = await uow.messages.get_by_id(message_id)
        if msg is None:
            logger.debug("Read receipt for unknown message %s ignored", message_id)
            return None

        if msg.receiver_id != reader_id or msg.sender_id != claimed_sender_id:
            logger.warning(
                "Read receipt rejected: message=%s reader=%s claimed_sender=%s",
                message_id, reader_id, claimed_sender_id,
            )
            return None

        if msg.is_read:
            return msg

        read = msg.mark_read(self._clock.now())
        try:
            transitioned = await uow.messages_w.mark_read(message_id, read.read_at)
            await uow.commit()
        except Exception as exc:
            logger.exception("Failed to mark message %s read", message_id)
            raise PersistenceError("Read receipt could not be saved") from exc

        if not transitioned:
            # A concurrent receipt won the update and already notified.
            return await uow.messages.get_by_id(message_id)

        await self._registry.send_to(
            msg.sender_id,
            EventType.MESSAGE_READ,
            {
                "messageId": str(msg.id),
                "readBy": str(reader_id),
                "readAt": read.read_at.isoformat(),
            },
        )
        return read
