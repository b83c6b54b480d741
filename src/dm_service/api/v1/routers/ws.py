from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar
from uuid import UUID

import anyio
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dm_service.api.deps import RealtimeDep, UoWFactoryDep, VerifierDep
from dm_service.application.dto.principal import Principal
from dm_service.application.exceptions import AppError, AuthenticationError, ValidationError
from dm_service.application.uow import UoWFactory
from dm_service.config import settings
from dm_service.domain.value_objects.enums import EventType
from dm_service.infrastructure.ws.connection import WebSocketConnection
from dm_service.infrastructure.ws.protocol import (
    ReadReceiptData,
    SendMessageData,
    TypingData,
    WsInbound,
)
from dm_service.services import auth_service
from dm_service.services.realtime import RealtimeServices

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

CLOSE_AUTH_FAILED = 4001

_P = TypeVar("_P", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class _Session:
    principal: Principal
    conn: WebSocketConnection
    realtime: RealtimeServices
    uow_factory: UoWFactory


def _bearer_token(ws: WebSocket) -> str | None:
    scheme, _, credentials = ws.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    realtime: RealtimeDep,
    uow_factory: UoWFactoryDep,
    verifier: VerifierDep,
    token: str | None = Query(None),
) -> None:
    try:
        async with uow_factory() as uow:
            principal = await auth_service.authenticate(
                token or _bearer_token(websocket), verifier, uow,
            )
    except AuthenticationError as exc:
        logger.info("WS auth rejected: %s", exc.detail)
        await websocket.close(code=CLOSE_AUTH_FAILED, reason="Authentication failed")
        return
    except Exception:
        logger.exception("WS auth failed unexpectedly")
        await websocket.close(code=CLOSE_AUTH_FAILED, reason="Authentication failed")
        return

    await websocket.accept()
    session = _Session(principal, WebSocketConnection(websocket), realtime, uow_factory)
    heartbeat_task = asyncio.create_task(
        _heartbeat(session.conn), name=f"ws-heartbeat-{principal.user_id}",
    )
    try:
        await realtime.connect(
            principal.user_id, session.conn, uow_factory,
            close_superseded=settings.WS_CLOSE_SUPERSEDED,
        )
        logger.info("User connected: %s (%s)", principal.username, principal.user_id)
        await _read_loop(websocket, session)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.user_id)
    finally:
        # Cleanup must finish even when the handler itself is being cancelled.
        with anyio.CancelScope(shield=True):
            heartbeat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await heartbeat_task
            if await realtime.disconnect(principal.user_id, session.conn, uow_factory):
                logger.info("User disconnected: %s (%s)", principal.username, principal.user_id)


async def _heartbeat(conn: WebSocketConnection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await conn.send(EventType.PONG, {})
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(ws: WebSocket, session: _Session) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await _send_error(session, "Invalid payload")
            continue

        handler = _HANDLERS.get(msg.event)
        if handler is None:
            await _send_error(session, f"Unknown event: {msg.event}")
            continue

        try:
            await handler(session, msg.data)
        except AppError as exc:
            await _send_error(session, exc.detail)
        except Exception:
            logger.exception("Handler for %s failed (user=%s)", msg.event, session.principal.user_id)
            await _send_error(session, "Internal server error")


async def _send_error(session: _Session, message: str) -> None:
    await session.conn.send(EventType.ERROR, {"message": message})


def _parse(model: type[_P], data: dict[str, Any]) -> _P:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError("Invalid payload") from exc


async def _handle_ping(session: _Session, data: dict[str, Any]) -> None:
    await session.conn.send(EventType.PONG, {})


async def _handle_send(session: _Session, data: dict[str, Any]) -> None:
    payload = _parse(SendMessageData, data)
    async with session.uow_factory() as uow:
        await session.realtime.relay.send(
            session.principal.user_id,
            payload.receiver_id,
            payload.content,
            uow,
            origin=session.conn,
        )


async def _handle_mark_read(session: _Session, data: dict[str, Any]) -> None:
    payload = _parse(ReadReceiptData, data)
    async with session.uow_factory() as uow:
        await session.realtime.receipts.mark_read(
            payload.message_id,
            payload.sender_id,
            session.principal.user_id,
            uow,
        )


def _typing_counterpart(data: dict[str, Any]) -> UUID:
    payload = _parse(TypingData, data)
    if payload.receiver_id is None:
        raise ValidationError("Receiver ID is required")
    return payload.receiver_id


async def _handle_typing_start(session: _Session, data: dict[str, Any]) -> None:
    await session.realtime.typing.start(
        session.principal.user_id,
        session.principal.username,
        _typing_counterpart(data),
    )


async def _handle_typing_stop(session: _Session, data: dict[str, Any]) -> None:
    await session.realtime.typing.stop(
        session.principal.user_id, _typing_counterpart(data),
    )


_HANDLERS: dict[str, Callable[[_Session, dict[str, Any]], Awaitable[None]]] = {
    EventType.PING: _handle_ping,
    EventType.MESSAGE_SEND: _handle_send,
    EventType.MESSAGE_READ: _handle_mark_read,
    EventType.TYPING_START: _handle_typing_start,
    EventType.TYPING_STOP: _handle_typing_stop,
}
