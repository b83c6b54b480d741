"""In-process registry of live connections, one per user."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from uuid import UUID

from dm_service.application.ports.transport import ClientConnection

logger = logging.getLogger(__name__)


class _UserGuard:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0


class ConnectionRegistry:
    """Maps a user id to its single live connection.

    All mutations go through one asyncio lock; sends are issued outside it so
    a slow client never stalls registration of others.
    """

    def __init__(self) -> None:
        self._connections: dict[UUID, ClientConnection] = {}
        self._lock = asyncio.Lock()
        self._guards: dict[UUID, _UserGuard] = {}

    def __len__(self) -> int:
        return len(self._connections)

    async def register(self, user_id: UUID, conn: ClientConnection) -> ClientConnection | None:
        """Make ``conn`` the live handle for ``user_id``; return the one it replaced."""
        async with self._lock:
            previous = self._connections.get(user_id)
            self._connections[user_id] = conn
        if previous is conn:
            return None
        if previous is not None:
            logger.info("Connection for %s superseded by a newer one", user_id)
        logger.debug("Registered %s (total=%d)", user_id, len(self._connections))
        return previous

    async def unregister(self, user_id: UUID, conn: ClientConnection) -> bool:
        """Remove the mapping only if ``conn`` is still the live handle."""
        async with self._lock:
            if self._connections.get(user_id) is not conn:
                return False
            del self._connections[user_id]
        logger.debug("Unregistered %s (total=%d)", user_id, len(self._connections))
        return True

    async def lookup(self, user_id: UUID) -> ClientConnection | None:
        async with self._lock:
            return self._connections.get(user_id)

    async def snapshot(self) -> list[tuple[UUID, ClientConnection]]:
        async with self._lock:
            return list(self._connections.items())

    async def send_to(self, user_id: UUID, event: str, data: dict[str, Any]) -> bool:
        """Deliver to the user's live handle. Return False if offline or the send failed."""
        conn = await self.lookup(user_id)
        if conn is None:
            return False
        return await self._deliver(user_id, conn, event, data)

    async def broadcast(self, event: str, data: dict[str, Any]) -> int:
        delivered = 0
        for user_id, conn in await self.snapshot():
            if await self._deliver(user_id, conn, event, data):
                delivered += 1
        return delivered

    @asynccontextmanager
    async def user_guard(self, user_id: UUID) -> AsyncIterator[None]:
        """Serialise connect and disconnect transitions of one user.

        Held across register + online and unregister + offline so a stale
        disconnect cannot announce offline over a fresh registration.
        """
        guard = self._guards.get(user_id)
        if guard is None:
            guard = self._guards[user_id] = _UserGuard()
        guard.holders += 1
        try:
            async with guard.lock:
                yield
        finally:
            guard.holders -= 1
            if guard.holders == 0:
                del self._guards[user_id]

    async def close_all(self, code: int = 1001, reason: str = "Server shutting down") -> list[UUID]:
        """Close and drop every live handle; return the users that were connected."""
        async with self._lock:
            connections = list(self._connections.items())
            self._connections.clear()
        for user_id, conn in connections:
            try:
                await conn.close(code=code, reason=reason)
            except Exception:
                logger.warning("Failed to close connection for %s", user_id, exc_info=True)
        return [user_id for user_id, _ in connections]

    @staticmethod
    async def _deliver(
        user_id: UUID, conn: ClientConnection, event: str, data: dict[str, Any]
    ) -> bool:
        # A dead socket is left registered; its read loop unregisters it on disconnect.
        try:
            await conn.send(event, data)
        except Exception:
            logger.warning("Failed to deliver %s to %s", event, user_id, exc_info=True)
            return False
        return True
