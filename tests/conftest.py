"""Shared test fixtures."""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator
from uuid import UUID

import pytest

from dm_service.application.dto.principal import Principal
from dm_service.domain.entities.message import Message
from dm_service.domain.entities.user import User
from dm_service.domain.value_objects import conversation_id as cid
from dm_service.services.connection_registry import ConnectionRegistry

ALICE_ID = UUID("11111111-1111-4111-8111-111111111111")
BOB_ID = UUID("22222222-2222-4222-8222-222222222222")
CAROL_ID = UUID("33333333-3333-4333-8333-333333333333")

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Deterministic clock; ``advance`` moves it forward."""

    def __init__(self, now: datetime = T0) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


@dataclass
class FakeConnection:
    """Records every event delivered to it."""

    name: str = "conn"
    fail_sends: bool = False
    sent: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    closed: tuple[int, str] | None = None

    async def send(self, event: str, data: dict[str, Any]) -> None:
        if self.fail_sends:
            raise ConnectionError(f"{self.name} is gone")
        self.sent.append((str(event), data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = (code, reason)

    def events(self, name: str | None = None) -> list[tuple[str, dict[str, Any]]]:
        return [e for e in self.sent if name is None or e[0] == name]


def make_user(
    user_id: UUID | None = None,
    *,
    username: str = "alice",
    is_online: bool = False,
) -> User:
    return User(
        id=user_id or uuid.uuid4(),
        username=username,
        email=f"{username}@example.com",
        is_online=is_online,
        last_seen=None,
        created_at=T0,
    )


def make_message(
    *,
    sender_id: UUID = ALICE_ID,
    receiver_id: UUID = BOB_ID,
    content: str = "hello",
    is_read: bool = False,
    created_at: datetime = T0,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        conversation_id=cid.derive(sender_id, receiver_id),
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        is_read=is_read,
        read_at=created_at if is_read else None,
        created_at=created_at,
    )


@dataclass
class FakeUserReader:
    _users: dict[UUID, User] = field(default_factory=dict)

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._users.get(user_id)

    async def list_except(self, user_id: UUID) -> list[User]:
        return sorted(
            (u for u in self._users.values() if u.id != user_id),
            key=lambda u: u.username,
        )


@dataclass
class FakeUserWriter:
    _reader: FakeUserReader
    fail: bool = False
    presence_log: list[tuple[UUID, bool, datetime]] = field(default_factory=list)

    async def set_presence(self, user_id: UUID, *, is_online: bool, last_seen: datetime) -> None:
        if self.fail:
            raise ConnectionError("user store unreachable")
        self.presence_log.append((user_id, is_online, last_seen))
        user = self._reader._users.get(user_id)
        if user is not None:
            self._reader._users[user_id] = replace(user, is_online=is_online, last_seen=last_seen)


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return next((m for m in self._messages if m.id == message_id), None)

    async def list_messages(
        self, conversation_id: str, *, cursor: str | None = None, limit: int = 100,
    ) -> list[Message]:
        matching = [m for m in self._messages if m.conversation_id == conversation_id]
        matching.sort(key=lambda m: (m.created_at, str(m.id)))
        return matching[:limit]

    async def get_last(self, conversation_id: str) -> Message | None:
        matching = [m for m in self._messages if m.conversation_id == conversation_id]
        return max(matching, key=lambda m: m.created_at, default=None)


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    fail: bool = False
    read_writes: int = 0

    async def create(self, message: Message) -> Message:
        if self.fail:
            raise ConnectionError("message store unreachable")
        self._reader._messages.append(message)
        return message

    async def mark_read(self, message_id: UUID, read_at: datetime) -> bool:
        if self.fail:
            raise ConnectionError("message store unreachable")
        for i, m in enumerate(self._reader._messages):
            if m.id == message_id and not m.is_read:
                self._reader._messages[i] = m.mark_read(read_at)
                self.read_writes += 1
                return True
        return False


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    users: FakeUserReader = field(default_factory=FakeUserReader)
    users_w: FakeUserWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    _committed: bool = False
    commits: int = 0

    def __post_init__(self) -> None:
        if self.users_w is None:
            self.users_w = FakeUserWriter(self.users)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    def add_user(self, user: User) -> User:
        self.users._users[user.id] = user
        return user

    def add_message(self, message: Message) -> Message:
        self.messages._messages.append(message)
        return message

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self.commits += 1

    async def rollback(self) -> None:
        pass


def fake_uow_factory(uow: FakeUoW):
    """UoWFactory that hands out the same in-memory UoW for every operation."""

    @asynccontextmanager
    async def _scope() -> AsyncIterator[FakeUoW]:
        yield uow

    return _scope


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def uow() -> FakeUoW:
    uow = FakeUoW()
    uow.add_user(make_user(ALICE_ID, username="alice"))
    uow.add_user(make_user(BOB_ID, username="bob"))
    uow.add_user(make_user(CAROL_ID, username="carol"))
    return uow


@pytest.fixture
def alice_principal() -> Principal:
    return Principal(user_id=ALICE_ID, username="alice")


@pytest.fixture
def bob_principal() -> Principal:
    return Principal(user_id=BOB_ID, username="bob")
