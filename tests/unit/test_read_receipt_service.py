from __future__ import annotations

import uuid

import pytest

from dm_service.application.exceptions import PersistenceError
from dm_service.services.read_receipt_service import ReadReceiptPropagator
from tests.conftest import ALICE_ID, BOB_ID, CAROL_ID, T0, FakeConnection, make_message


@pytest.fixture
def receipts(registry, clock):
    return ReadReceiptPropagator(registry, clock)


@pytest.fixture
def alice_conn():
    return FakeConnection("alice")


@pytest.mark.asyncio
async def test_mark_read_transitions_and_notifies_sender(receipts, registry, uow, alice_conn, clock):
    await registry.register(ALICE_ID, alice_conn)
    msg = uow.add_message(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID))
    clock.advance(30)

    result = await receipts.mark_read(msg.id, ALICE_ID, BOB_ID, uow)

    stored = await uow.messages.get_by_id(msg.id)
    assert stored.is_read is True
    assert stored.read_at == clock.now()
    assert result == stored
    assert uow._committed is True
    assert alice_conn.sent == [
        (
            "message:read",
            {
                "messageId": str(msg.id),
                "readBy": str(BOB_ID),
                "readAt": clock.now().isoformat(),
            },
        )
    ]


@pytest.mark.asyncio
async def test_mark_read_is_idempotent(receipts, registry, uow, alice_conn, clock):
    await registry.register(ALICE_ID, alice_conn)
    msg = uow.add_message(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID))

    await receipts.mark_read(msg.id, ALICE_ID, BOB_ID, uow)
    first_read_at = (await uow.messages.get_by_id(msg.id)).read_at
    clock.advance(120)
    await receipts.mark_read(msg.id, ALICE_ID, BOB_ID, uow)

    assert uow.messages_w.read_writes == 1
    assert uow.commits == 1
    assert (await uow.messages.get_by_id(msg.id)).read_at == first_read_at
    assert len(alice_conn.events("message:read")) == 1


@pytest.mark.asyncio
async def test_wrong_claimed_sender_is_silently_dropped(receipts, registry, uow, alice_conn):
    await registry.register(ALICE_ID, alice_conn)
    msg = uow.add_message(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID))

    result = await receipts.mark_read(msg.id, CAROL_ID, BOB_ID, uow)

    assert result is None
    assert (await uow.messages.get_by_id(msg.id)).is_read is False
    assert uow.messages_w.read_writes == 0
    assert alice_conn.sent == []


@pytest.mark.asyncio
async def test_reader_who_is_not_receiver_is_dropped(receipts, registry, uow, alice_conn):
    await registry.register(ALICE_ID, alice_conn)
    msg = uow.add_message(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID))

    result = await receipts.mark_read(msg.id, ALICE_ID, CAROL_ID, uow)

    assert result is None
    assert (await uow.messages.get_by_id(msg.id)).is_read is False
    assert alice_conn.sent == []


@pytest.mark.asyncio
async def test_sender_cannot_mark_own_message_read(receipts, uow):
    msg = uow.add_message(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID))

    assert await receipts.mark_read(msg.id, ALICE_ID, ALICE_ID, uow) is None
    assert (await uow.messages.get_by_id(msg.id)).is_read is False


@pytest.mark.asyncio
async def test_unknown_message_is_noop(receipts, uow):
    assert await receipts.mark_read(uuid.uuid4(), ALICE_ID, BOB_ID, uow) is None
    assert uow._committed is False


@pytest.mark.asyncio
async def test_sender_offline_still_persists(receipts, uow):
    msg = uow.add_message(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID))

    await receipts.mark_read(msg.id, ALICE_ID, BOB_ID, uow)

    assert (await uow.messages.get_by_id(msg.id)).is_read is True


@pytest.mark.asyncio
async def test_store_failure_raises_persistence_error(receipts, registry, uow, alice_conn):
    await registry.register(ALICE_ID, alice_conn)
    msg = uow.add_message(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID))
    uow.messages_w.fail = True

    with pytest.raises(PersistenceError):
        await receipts.mark_read(msg.id, ALICE_ID, BOB_ID, uow)

    assert alice_conn.sent == []


@pytest.mark.asyncio
async def test_lost_race_does_not_notify_twice(receipts, registry, uow, alice_conn):
    await registry.register(ALICE_ID, alice_conn)
    msg = uow.add_message(make_message(sender_id=ALICE_ID, receiver_id=BOB_ID))

    # Another worker flips the row between our read and our conditional update.
    original_get = uow.messages.get_by_id
    calls = 0

    async def stale_get(message_id):
        nonlocal calls
        calls += 1
        current = await original_get(message_id)
        if calls == 1:
            await uow.messages_w.mark_read(message_id, T0)
            return msg
        return current

    uow.messages.get_by_id = stale_get

    result = await receipts.mark_read(msg.id, ALICE_ID, BOB_ID, uow)

    assert result.is_read is True
    assert result.read_at == T0
    assert alice_conn.sent == []
