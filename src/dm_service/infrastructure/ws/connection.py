from __future__ import annotations

import asyncio
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from dm_service.infrastructure.ws.protocol import WsOutbound


class WebSocketConnection:
    """ClientConnection over a FastAPI WebSocket.

    Sends are serialised per connection so frames from concurrent relays
    (another user's message, a presence broadcast, the heartbeat) keep the
    order in which they were issued.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket
        self._send_lock = asyncio.Lock()

    async def send(self, event: str, data: dict[str, Any]) -> None:
        raw = WsOutbound(event=event, data=data).model_dump_json()
        async with self._send_lock:
            await self._ws.send_text(raw)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._ws.application_state == WebSocketState.CONNECTED:
            await self._ws.close(code=code, reason=reason)
