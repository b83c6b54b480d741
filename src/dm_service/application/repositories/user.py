from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from dm_service.domain.entities.user import User


class UserReader(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...

    async def list_except(self, user_id: UUID) -> list[User]:
        """All users other than ``user_id``, ordered by username."""
        ...


class UserWriter(Protocol):
    async def set_presence(
        self, user_id: UUID, *, is_online: bool, last_seen: datetime
    ) -> None: ...
