from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from dm_service.domain.value_objects import conversation_id as cid
from dm_service.domain.value_objects.enums import EventType
from dm_service.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class TypingTracker:
    """Ephemeral per-conversation typing sets.

    There is no server-side expiry: an entry lives until an explicit stop or
    the typer's disconnect (``clear_user``).
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry
        self._typing: dict[str, set[UUID]] = {}
        self._lock = asyncio.Lock()

    async def start(self, user_id: UUID, username: str, counterpart_id: UUID) -> None:
        conversation_id = cid.derive(user_id, counterpart_id)
        async with self._lock:
            self._typing.setdefault(conversation_id, set()).add(user_id)
        await self._registry.send_to(
            counterpart_id,
            EventType.TYPING_START,
            {"userId": str(user_id), "username": username},
        )

    async def stop(self, user_id: UUID, counterpart_id: UUID) -> None:
        conversation_id = cid.derive(user_id, counterpart_id)
        async with self._lock:
            self._discard(conversation_id, user_id)
        await self._registry.send_to(
            counterpart_id, EventType.TYPING_STOP, {"userId": str(user_id)},
        )

    async def clear_user(self, user_id: UUID) -> list[UUID]:
        """Drop every typing entry held by ``user_id`` and tell each counterpart it stopped."""
        counterparts: list[UUID] = []
        async with self._lock:
            for conversation_id, typers in list(self._typing.items()):
                if user_id not in typers:
                    continue
                self._discard(conversation_id, user_id)
                counterparts.append(UUID(cid.counterpart_of(conversation_id, user_id)))

        for counterpart_id in counterparts:
            await self._registry.send_to(
                counterpart_id, EventType.TYPING_STOP, {"userId": str(user_id)},
            )
        if counterparts:
            logger.debug("Cleared %d typing entries for %s", len(counterparts), user_id)
        return counterparts

    async def typing_in(self, conversation_id: str) -> frozenset[UUID]:
        async with self._lock:
            return frozenset(self._typing.get(conversation_id, ()))

    def _discard(self, conversation_id: str, user_id: UUID) -> None:
        typers = self._typing.get(conversation_id)
        if typers is None:
            return
        typers.discard(user_id)
        if not typers:
            del self._typing[conversation_id]
