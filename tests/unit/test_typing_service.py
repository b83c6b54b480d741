from __future__ import annotations

import pytest

from dm_service.domain.value_objects import conversation_id as cid
from dm_service.services.typing_service import TypingTracker
from tests.conftest import ALICE_ID, BOB_ID, CAROL_ID, FakeConnection


@pytest.fixture
def tracker(registry):
    return TypingTracker(registry)


@pytest.mark.asyncio
async def test_start_adds_and_notifies_counterpart(tracker, registry):
    bob = FakeConnection("bob")
    await registry.register(BOB_ID, bob)

    await tracker.start(ALICE_ID, "alice", BOB_ID)

    assert await tracker.typing_in(cid.derive(ALICE_ID, BOB_ID)) == {ALICE_ID}
    assert bob.sent == [("typing:start", {"userId": str(ALICE_ID), "username": "alice"})]


@pytest.mark.asyncio
async def test_repeated_start_is_idempotent_but_renotifies(tracker, registry):
    bob = FakeConnection("bob")
    await registry.register(BOB_ID, bob)

    await tracker.start(ALICE_ID, "alice", BOB_ID)
    await tracker.start(ALICE_ID, "alice", BOB_ID)

    assert await tracker.typing_in(cid.derive(ALICE_ID, BOB_ID)) == {ALICE_ID}
    assert len(bob.events("typing:start")) == 2


@pytest.mark.asyncio
async def test_start_with_offline_counterpart_still_tracks(tracker):
    await tracker.start(ALICE_ID, "alice", BOB_ID)

    assert await tracker.typing_in(cid.derive(ALICE_ID, BOB_ID)) == {ALICE_ID}


@pytest.mark.asyncio
async def test_stop_removes_entry_and_notifies(tracker, registry):
    bob = FakeConnection("bob")
    await registry.register(BOB_ID, bob)
    await tracker.start(ALICE_ID, "alice", BOB_ID)

    await tracker.stop(ALICE_ID, BOB_ID)

    assert await tracker.typing_in(cid.derive(ALICE_ID, BOB_ID)) == frozenset()
    assert tracker._typing == {}
    assert bob.sent[-1] == ("typing:stop", {"userId": str(ALICE_ID)})


@pytest.mark.asyncio
async def test_stop_keeps_other_typer(tracker):
    await tracker.start(ALICE_ID, "alice", BOB_ID)
    await tracker.start(BOB_ID, "bob", ALICE_ID)

    await tracker.stop(ALICE_ID, BOB_ID)

    assert await tracker.typing_in(cid.derive(ALICE_ID, BOB_ID)) == {BOB_ID}


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(tracker, registry):
    bob = FakeConnection("bob")
    await registry.register(BOB_ID, bob)

    await tracker.stop(ALICE_ID, BOB_ID)

    assert tracker._typing == {}
    assert bob.sent == [("typing:stop", {"userId": str(ALICE_ID)})]


@pytest.mark.asyncio
async def test_clear_user_removes_all_entries_and_notifies_counterparts(tracker, registry):
    bob, carol = FakeConnection("bob"), FakeConnection("carol")
    await registry.register(BOB_ID, bob)
    await registry.register(CAROL_ID, carol)
    await tracker.start(ALICE_ID, "alice", BOB_ID)
    await tracker.start(ALICE_ID, "alice", CAROL_ID)
    await tracker.start(CAROL_ID, "carol", BOB_ID)

    counterparts = await tracker.clear_user(ALICE_ID)

    assert set(counterparts) == {BOB_ID, CAROL_ID}
    assert await tracker.typing_in(cid.derive(ALICE_ID, BOB_ID)) == frozenset()
    assert await tracker.typing_in(cid.derive(ALICE_ID, CAROL_ID)) == frozenset()
    assert await tracker.typing_in(cid.derive(CAROL_ID, BOB_ID)) == {CAROL_ID}
    assert bob.events("typing:stop") == [("typing:stop", {"userId": str(ALICE_ID)})]
    assert carol.events("typing:stop") == [("typing:stop", {"userId": str(ALICE_ID)})]


@pytest.mark.asyncio
async def test_clear_user_with_nothing_typing(tracker):
    assert await tracker.clear_user(ALICE_ID) == []
