from __future__ import annotations

import logging
from uuid import UUID

from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.uow import UnitOfWork
from dm_service.domain.value_objects.enums import EventType
from dm_service.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    """Persists online/offline transitions and announces them to every live connection."""

    def __init__(self, registry: ConnectionRegistry, clock: Clock | None = None) -> None:
        self._registry = registry
        self._clock = clock or SystemClock()

    async def announce_online(self, user_id: UUID, uow: UnitOfWork) -> int:
        await self._persist(user_id, is_online=True, uow=uow)
        return await self._registry.broadcast(EventType.USER_ONLINE, {"userId": str(user_id)})

    async def announce_offline(self, user_id: UUID, uow: UnitOfWork) -> int:
        await self._persist(user_id, is_online=False, uow=uow)
        return await self._registry.broadcast(EventType.USER_OFFLINE, {"userId": str(user_id)})

    async def _persist(self, user_id: UUID, *, is_online: bool, uow: UnitOfWork) -> None:
        # Best effort: a store outage must not cost the user their connection.
        try:
            await uow.users_w.set_presence(
                user_id, is_online=is_online, last_seen=self._clock.now(),
            )
            await uow.commit()
        except Exception:
            logger.exception("Failed to persist presence for %s (online=%s)", user_id, is_online)
