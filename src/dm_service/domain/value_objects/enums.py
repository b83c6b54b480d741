from __future__ import annotations

from enum import StrEnum


class EventType(StrEnum):
    """Event names carried in the WebSocket envelope."""

    MESSAGE_SEND = "message:send"
    MESSAGE_NEW = "message:new"
    MESSAGE_SENT = "message:sent"
    MESSAGE_READ = "message:read"
    TYPING_START = "typing:start"
    TYPING_STOP = "typing:stop"
    USER_ONLINE = "user:online"
    USER_OFFLINE = "user:offline"
    ERROR = "error"
    PING = "ping"
    PONG = "pong"
