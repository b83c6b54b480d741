from __future__ import annotations

from dataclasses import dataclass

from dm_service.domain.entities.message import Message
from dm_service.domain.entities.user import User


@dataclass(frozen=True, slots=True)
class ContactDTO:
    """A roster entry: another user plus the latest message exchanged with them."""

    user: User
    last_message: Message | None = None
