from __future__ import annotations

from typing import Any, Protocol


class ClientConnection(Protocol):
    """A live, authenticated channel to one user."""

    async def send(self, event: str, data: dict[str, Any]) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...
