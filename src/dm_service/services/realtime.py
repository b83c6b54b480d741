from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.ports.transport import ClientConnection
from dm_service.application.uow import UoWFactory
from dm_service.services.connection_registry import ConnectionRegistry
from dm_service.services.message_service import MessageRelay
from dm_service.services.presence_service import PresenceBroadcaster
from dm_service.services.read_receipt_service import ReadReceiptPropagator
from dm_service.services.typing_service import TypingTracker

logger = logging.getLogger(__name__)

CLOSE_SUPERSEDED = 4000


@dataclass(frozen=True, slots=True)
class RealtimeServices:
    """Process-scoped realtime state, built at startup and torn down at shutdown.

    Everything here lives in one process's memory; running more than one
    instance needs an external presence / pub-sub layer.
    """

    registry: ConnectionRegistry
    presence: PresenceBroadcaster
    typing: TypingTracker
    relay: MessageRelay
    receipts: ReadReceiptPropagator

    @classmethod
    def create(cls, clock: Clock | None = None) -> RealtimeServices:
        clock = clock or SystemClock()
        registry = ConnectionRegistry()
        return cls(
            registry=registry,
            presence=PresenceBroadcaster(registry, clock),
            typing=TypingTracker(registry),
            relay=MessageRelay(registry, clock),
            receipts=ReadReceiptPropagator(registry, clock),
        )

    async def connect(
        self,
        user_id: UUID,
        conn: ClientConnection,
        uow_factory: UoWFactory,
        *,
        close_superseded: bool = True,
    ) -> None:
        """Register ``conn`` as the user's live handle and announce them online."""
        async with self.registry.user_guard(user_id):
            previous = await self.registry.register(user_id, conn)
            if previous is not None and close_superseded:
                try:
                    await previous.close(code=CLOSE_SUPERSEDED, reason="Superseded by a newer connection")
                except Exception:
                    logger.warning("Failed to close superseded connection for %s", user_id, exc_info=True)
            async with uow_factory() as uow:
                await self.presence.announce_online(user_id, uow)

    async def disconnect(self, user_id: UUID, conn: ClientConnection, uow_factory: UoWFactory) -> bool:
        """Tear down ``conn``; return False when a newer connection already owns the user."""
        async with self.registry.user_guard(user_id):
            if not await self.registry.unregister(user_id, conn):
                logger.info("Superseded connection closed: %s", user_id)
                return False
            await self._go_offline(user_id, uow_factory)
        return True

    async def shutdown(self, uow_factory: UoWFactory) -> None:
        logger.info("Closing %d live connections", len(self.registry))
        for user_id in await self.registry.close_all():
            async with self.registry.user_guard(user_id):
                try:
                    await self._go_offline(user_id, uow_factory)
                except Exception:
                    logger.exception("Failed to mark %s offline at shutdown", user_id)

    async def _go_offline(self, user_id: UUID, uow_factory: UoWFactory) -> None:
        await self.typing.clear_user(user_id)
        async with uow_factory() as uow:
            await self.presence.announce_offline(user_id, uow)
