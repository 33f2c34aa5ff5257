"""Tests for the transactional outbox."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from modules.events.interfaces import IOutboxStore
from modules.events.models import OutboxEvent
from modules.events.outbox import InMemoryOutboxStore, OutboxRelay, SupabaseOutboxStore
from modules.events.publisher import InMemoryEventPublisher
from shared.repository import RepositoryResult, RepositoryStatus


def make_event(event_id: str = "e-1", minutes: int = 0, attempts: int = 0) -> OutboxEvent:
    return OutboxEvent(
        id=event_id,
        topic="user.created",
        key="user-1",
        value="{}",
        attempts=attempts,
        created_at=datetime(2030, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


def mock_query(data=None) -> MagicMock:
    query = MagicMock()
    for method in ("select", "is_", "lt", "order", "limit", "update", "eq"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=MagicMock(data=data))
    return query


class TestInMemoryOutboxStore:
    @pytest.mark.asyncio
    async def test_fetch_pending_oldest_first(self):
        store = InMemoryOutboxStore()
        store.add(make_event("late", minutes=5))
        store.add(make_event("early", minutes=1))

        pending = (await store.fetch_pending(limit=10, max_attempts=3)).value

        assert [e.id for e in pending] == ["early", "late"]

    @pytest.mark.asyncio
    async def test_fetch_pending_skips_exhausted(self):
        store = InMemoryOutboxStore()
        store.add(make_event("e-1", attempts=3))

        assert (await store.fetch_pending(limit=10, max_attempts=3)).value == []

    @pytest.mark.asyncio
    async def test_mark_published(self):
        store = InMemoryOutboxStore()
        store.add(make_event())

        assert (await store.mark_published("e-1")).ok
        assert store.pending() == []
        assert (await store.mark_published("missing")).status is RepositoryStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_record_failure(self):
        store = InMemoryOutboxStore()
        store.add(make_event())

        await store.record_failure(make_event(), "broker down")

        assert store.events["e-1"].attempts == 1
        assert store.events["e-1"].last_error == "broker down"

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryOutboxStore(), IOutboxStore)


class TestSupabaseOutboxStore:
    @pytest.mark.asyncio
    async def test_fetch_pending(self):
        db = MagicMock()
        query = mock_query(data=[make_event().model_dump(mode="json")])
        db.table.return_value = query

        result = await SupabaseOutboxStore(db).fetch_pending(limit=50, max_attempts=10)

        assert [e.id for e in result.value] == ["e-1"]
        db.table.assert_called_once_with("outbox_events")
        query.is_.assert_called_once_with("published_at", "null")
        query.lt.assert_called_once_with("attempts", 10)
        query.limit.assert_called_once_with(50)

    @pytest.mark.asyncio
    async def test_mark_published(self):
        db = MagicMock()
        query = mock_query(data=[{"id": "e-1"}])
        db.table.return_value = query

        result = await SupabaseOutboxStore(db).mark_published("e-1")

        assert result.ok
        assert "published_at" in query.update.call_args.args[0]
        query.eq.assert_called_once_with("id", "e-1")

    @pytest.mark.asyncio
    async def test_record_failure_missing_row(self):
        db = MagicMock()
        db.table.return_value = mock_query(data=[])

        result = await SupabaseOutboxStore(db).record_failure(make_event(attempts=2), "down")

        assert result.status is RepositoryStatus.NOT_FOUND
        assert db.table.return_value.update.call_args.args[0] == {"attempts": 3, "last_error": "down"}


class TestOutboxRelay:
    @pytest.mark.asyncio
    async def test_deliver_success(self):
        store = InMemoryOutboxStore()
        publisher = InMemoryEventPublisher()
        store.add(make_event())

        assert await OutboxRelay(store, publisher).deliver(make_event()) is True

        assert store.pending() == []
        assert publisher.messages[0].key == b"user-1"

    @pytest.mark.asyncio
    async def test_deliver_failure_records_attempt(self):
        store = InMemoryOutboxStore()
        publisher = InMemoryEventPublisher()
        publisher.fail_with = ConnectionError("down")
        store.add(make_event())

        assert await OutboxRelay(store, publisher).deliver(make_event()) is False

        assert store.events["e-1"].attempts == 1
        assert "ConnectionError" in store.events["e-1"].last_error

    @pytest.mark.asyncio
    async def test_mark_failure_still_counts_as_delivered(self):
        """The broker confirmed; the next pass may send a duplicate."""
        store = MagicMock()
        store.mark_published = AsyncMock(return_value=RepositoryResult.unavailable())
        publisher = InMemoryEventPublisher()

        assert await OutboxRelay(store, publisher).deliver(make_event()) is True

    @pytest.mark.asyncio
    async def test_run_once(self):
        store = InMemoryOutboxStore()
        publisher = InMemoryEventPublisher()
        for i in range(3):
            store.add(make_event(f"e-{i}", minutes=i))

        delivered = await OutboxRelay(store, publisher, batch_size=2).run_once()

        assert delivered == 2
        assert [e.id for e in store.pending()] == ["e-2"]

    @pytest.mark.asyncio
    async def test_run_once_store_unavailable(self):
        store = MagicMock()
        store.fetch_pending = AsyncMock(return_value=RepositoryResult.unavailable())

        assert await OutboxRelay(store, InMemoryEventPublisher()).run_once() == 0

    @pytest.mark.asyncio
    async def test_run_until_stopped(self):
        store = InMemoryOutboxStore()
        publisher = InMemoryEventPublisher()
        store.add(make_event())
        relay = OutboxRelay(store, publisher, poll_interval=0.01)
        stop = asyncio.Event()

        task = asyncio.create_task(relay.run(stop))
        for _ in range(100):
            if not store.pending():
                break
            await asyncio.sleep(0.01)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert store.pending() == []
        assert len(publisher.messages) == 1

    @pytest.mark.asyncio
    async def test_run_survives_errors(self):
        """A failing pass is logged and the loop keeps going."""
        store = MagicMock()
        store.fetch_pending = AsyncMock(side_effect=[RuntimeError("boom"), RepositoryResult.success([])])
        relay = OutboxRelay(store, InMemoryEventPublisher(), poll_interval=0.01)
        stop = asyncio.Event()

        task = asyncio.create_task(relay.run(stop))
        for _ in range(100):
            if store.fetch_pending.await_count >= 2:
                break
            await asyncio.sleep(0.01)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert store.fetch_pending.await_count >= 2
