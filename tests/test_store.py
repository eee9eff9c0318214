"""Tests for the Universe Store backends."""

import asyncio
import threading
from datetime import datetime, timedelta

import pytest

from parallel_you.errors import UniverseIdCollision, UniverseNotFound
from parallel_you.models.universe import ConversationEntry, Universe
from parallel_you.universe_store.sqlite import SQLiteUniverseStore
from parallel_you.universe_store.store import InMemoryUniverseStore


def _make_universe(
    universe_id: str = "universe_1",
    owner_id: str = "user_1",
    created_at: datetime = None,
) -> Universe:
    return Universe(
        id=universe_id,
        owner_id=owner_id,
        base_profile={"name": "Alex", "career": "librarian", "tags": ["a", "b"]},
        divergence_point="Moved to Tokyo in 2012",
        generated_content={"content": "A neon-lit life", "tool_calls": []},
        created_at=created_at or datetime.utcnow(),
    )


def _entry(message: str) -> ConversationEntry:
    return ConversationEntry(
        message=message, response=f"echo: {message}", timestamp=datetime.utcnow()
    )


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        s = InMemoryUniverseStore()
    else:
        s = SQLiteUniverseStore(db_path=":memory:")
    yield s
    asyncio.run(s.close())


class TestUniverseStore:
    def test_put_and_get(self, store):
        universe = _make_universe()
        asyncio.run(store.put("universe_1", universe))

        retrieved = asyncio.run(store.get("universe_1"))
        assert retrieved is not None
        assert retrieved.owner_id == "user_1"
        assert retrieved.base_profile == universe.base_profile
        assert retrieved.divergence_point == "Moved to Tokyo in 2012"
        assert retrieved.generated_content == universe.generated_content
        assert retrieved.conversation_log == []

    def test_get_missing_returns_none(self, store):
        assert asyncio.run(store.get("nope")) is None

    def test_put_replaces_by_default(self, store):
        asyncio.run(store.put("universe_1", _make_universe(owner_id="a")))
        asyncio.run(store.put("universe_1", _make_universe(owner_id="b")))

        assert asyncio.run(store.get("universe_1")).owner_id == "b"
        assert asyncio.run(store.count()) == 1

    def test_put_without_replace_rejects_collision(self, store):
        asyncio.run(store.put("universe_1", _make_universe(owner_id="a")))

        with pytest.raises(UniverseIdCollision):
            asyncio.run(store.put("universe_1", _make_universe(owner_id="b"), replace=False))

        # Original record untouched
        assert asyncio.run(store.get("universe_1")).owner_id == "a"

    def test_append_conversation(self, store):
        asyncio.run(store.put("universe_1", _make_universe()))

        first = asyncio.run(store.append_conversation("universe_1", _entry("hi")))
        second = asyncio.run(store.append_conversation("universe_1", _entry("again")))

        assert first.sequence == 1
        assert second.sequence == 2
        log = asyncio.run(store.get("universe_1")).conversation_log
        assert [e.message for e in log] == ["hi", "again"]
        assert log[0].response == "echo: hi"

    def test_append_to_unknown_universe(self, store):
        with pytest.raises(UniverseNotFound):
            asyncio.run(store.append_conversation("ghost", _entry("hello?")))
        assert asyncio.run(store.count()) == 0

    def test_concurrent_appends_keep_total_order(self, store):
        asyncio.run(store.put("universe_1", _make_universe()))

        async def append_many():
            return await asyncio.gather(*(
                store.append_conversation("universe_1", _entry(f"msg {i}"))
                for i in range(20)
            ))

        stored = asyncio.run(append_many())
        assert sorted(e.sequence for e in stored) == list(range(1, 21))

        log = asyncio.run(store.get("universe_1")).conversation_log
        assert len(log) == 20
        assert [e.sequence for e in log] == list(range(1, 21))
        assert {e.message for e in log} == {f"msg {i}" for i in range(20)}

    def test_appends_do_not_cross_universes(self, store):
        asyncio.run(store.put("universe_a", _make_universe("universe_a")))
        asyncio.run(store.put("universe_b", _make_universe("universe_b")))

        async def append_both():
            await asyncio.gather(
                store.append_conversation("universe_a", _entry("to a")),
                store.append_conversation("universe_b", _entry("to b")),
            )

        asyncio.run(append_both())
        assert [e.message for e in asyncio.run(store.get("universe_a")).conversation_log] == ["to a"]
        assert [e.message for e in asyncio.run(store.get("universe_b")).conversation_log] == ["to b"]

    def test_returned_records_are_copies(self, store):
        asyncio.run(store.put("universe_1", _make_universe()))

        retrieved = asyncio.run(store.get("universe_1"))
        retrieved.base_profile["name"] = "Mutated"
        retrieved.conversation_log.append(_entry("sneaky"))

        fresh = asyncio.run(store.get("universe_1"))
        assert fresh.base_profile["name"] == "Alex"
        assert fresh.conversation_log == []

    def test_list_by_owner(self, store):
        now = datetime.utcnow()
        asyncio.run(store.put("u2", _make_universe("u2", "alice", now)))
        asyncio.run(store.put("u1", _make_universe("u1", "alice", now - timedelta(days=1))))
        asyncio.run(store.put("u3", _make_universe("u3", "bob", now)))

        owned = asyncio.run(store.list_by_owner("alice"))
        assert [u.id for u in owned] == ["u1", "u2"]
        assert asyncio.run(store.list_by_owner("carol")) == []


class TestSQLiteUniverseStore:
    def test_persists_across_connections(self, tmp_path):
        db_path = str(tmp_path / "universes.db")
        store = SQLiteUniverseStore(db_path=db_path)
        asyncio.run(store.put("universe_1", _make_universe()))
        asyncio.run(store.append_conversation("universe_1", _entry("remember me")))
        asyncio.run(store.close())

        reopened = SQLiteUniverseStore(db_path=db_path)
        universe = asyncio.run(reopened.get("universe_1"))
        asyncio.run(reopened.close())

        assert universe.base_profile["career"] == "librarian"
        assert [e.message for e in universe.conversation_log] == ["remember me"]

    def test_replace_resets_conversation_log(self):
        store = SQLiteUniverseStore(db_path=":memory:")
        asyncio.run(store.put("universe_1", _make_universe()))
        asyncio.run(store.append_conversation("universe_1", _entry("old")))

        asyncio.run(store.put("universe_1", _make_universe()))
        assert asyncio.run(store.get("universe_1")).conversation_log == []
        asyncio.run(store.close())

    def test_close_waits_off_the_event_loop(self):
        store = SQLiteUniverseStore(db_path=":memory:")
        ticks = []

        async def ticker():
            for _ in range(5):
                ticks.append(1)
                await asyncio.sleep(0.01)

        async def scenario():
            # A worker thread is mid-query when shutdown begins
            store._lock.acquire()
            threading.Timer(0.3, store._lock.release).start()
            closing = asyncio.create_task(store.close())
            ticking = asyncio.create_task(ticker())
            await closing
            ticks_when_closed = len(ticks)
            await ticking
            return ticks_when_closed

        # The loop kept running while close waited for the lock
        assert asyncio.run(scenario()) == 5
