"""
Transactional outbox.

Events are written to ``outbox_events`` in the same database transaction as
the change that produced them. OutboxRelay publishes them afterwards:
once right after the transaction commits, and again from a background loop
for anything still pending. Delivery is at-least-once; a message can be
sent twice if marking it published fails.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from shared.repository import BaseRepository, RepositoryResult

from .exceptions import EventPublishError
from .interfaces import IEventPublisher, IOutboxStore
from .models import OutboxEvent

OUTBOX_TABLE = "outbox_events"


class SupabaseOutboxStore(BaseRepository[OutboxEvent], IOutboxStore):
    """Outbox rows in Supabase."""

    async def fetch_pending(self, limit: int, max_attempts: int) -> RepositoryResult[list[OutboxEvent]]:
        result = await self._execute(
            self._db.table(OUTBOX_TABLE)
            .select("*")
            .is_("published_at", "null")
            .lt("attempts", max_attempts)
            .order("created_at")
            .limit(limit)
        )
        if not result.ok:
            return result
        return RepositoryResult.success([OutboxEvent(**row) for row in result.value.data])

    async def mark_published(self, event_id: str) -> RepositoryResult[None]:
        result = await self._execute(
            self._db.table(OUTBOX_TABLE)
            .update({"published_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", event_id)
        )
        if not result.ok:
            return result
        if not result.value.data:
            return RepositoryResult.not_found()
        return RepositoryResult.success()

    async def record_failure(self, event: OutboxEvent, error: str) -> RepositoryResult[None]:
        result = await self._execute(
            self._db.table(OUTBOX_TABLE)
            .update({"attempts": event.attempts + 1, "last_error": error})
            .eq("id", event.id)
        )
        if not result.ok:
            return result
        if not result.value.data:
            return RepositoryResult.not_found()
        return RepositoryResult.success()


class InMemoryOutboxStore(IOutboxStore):
    """
    Outbox kept in a dict.

    For testing and development. The in-memory user repository adds events
    here as part of its atomic create.
    """

    def __init__(self) -> None:
        self.events: dict[str, OutboxEvent] = {}

    def add(self, event: OutboxEvent) -> None:
        stored = event.model_copy(
            update={"created_at": event.created_at or datetime.now(timezone.utc)}
        )
        self.events[stored.id] = stored

    def pending(self) -> list[OutboxEvent]:
        return [e for e in self.events.values() if e.published_at is None]

    async def fetch_pending(self, limit: int, max_attempts: int) -> RepositoryResult[list[OutboxEvent]]:
        pending = [e for e in self.pending() if e.attempts < max_attempts]
        pending.sort(key=lambda e: e.created_at)
        return RepositoryResult.success(pending[:limit])

    async def mark_published(self, event_id: str) -> RepositoryResult[None]:
        event = self.events.get(event_id)
        if event is None:
            return RepositoryResult.not_found()
        self.events[event_id] = event.model_copy(
            update={"published_at": datetime.now(timezone.utc)}
        )
        return RepositoryResult.success()

    async def record_failure(self, event: OutboxEvent, error: str) -> RepositoryResult[None]:
        stored = self.events.get(event.id)
        if stored is None:
            return RepositoryResult.not_found()
        self.events[event.id] = stored.model_copy(
            update={"attempts": stored.attempts + 1, "last_error": error}
        )
        return RepositoryResult.success()


class OutboxRelay:
    """
    Publishes outbox events and records the outcome.

    deliver() is called by the registration workflow right after commit;
    run() is the background loop started with the application.
    """

    def __init__(
        self,
        store: IOutboxStore,
        publisher: IEventPublisher,
        batch_size: int = 100,
        max_attempts: int = 10,
        poll_interval: float = 5.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._store = store
        self._publisher = publisher
        self._batch_size = batch_size
        self._max_attempts = max_attempts
        self._poll_interval = poll_interval
        self._logger = logger or logging.getLogger(__name__)

    async def deliver(self, event: OutboxEvent) -> bool:
        """
        Publish one event.

        Returns:
            True if the broker confirmed delivery. On failure the attempt is
            recorded and the event stays pending.
        """
        try:
            await self._publisher.publish(event.topic, event.key_bytes, event.value_bytes)
        except EventPublishError as exc:
            self._logger.warning(
                "Outbox delivery failed",
                extra={"event_id": event.id, "topic": event.topic, "attempt": event.attempts + 1},
                exc_info=exc,
            )
            recorded = await self._store.record_failure(event, _describe(exc))
            if not recorded.ok:
                self._logger.error(
                    "Could not record outbox failure",
                    extra={"event_id": event.id, "status": recorded.status.value},
                )
            return False

        marked = await self._store.mark_published(event.id)
        if not marked.ok:
            # The event will be sent again by the next relay pass
            self._logger.error(
                "Could not mark outbox event published",
                extra={"event_id": event.id, "status": marked.status.value},
            )
        return True

    async def run_once(self) -> int:
        """
        Deliver one batch of pending events.

        Returns:
            Number of events the broker confirmed.
        """
        pending = await self._store.fetch_pending(self._batch_size, self._max_attempts)
        if not pending.ok:
            self._logger.error(
                "Could not read outbox",
                extra={"status": pending.status.value},
            )
            return 0

        delivered = 0
        for event in pending.value:
            if await self.deliver(event):
                delivered += 1
        if delivered:
            self._logger.info("Outbox relay delivered events", extra={"count": delivered})
        return delivered

    async def run(self, stop: asyncio.Event) -> None:
        """Poll the outbox until ``stop`` is set."""
        self._logger.info("Outbox relay started", extra={"poll_interval": self._poll_interval})
        while not stop.is_set():
            try:
                await self.run_once()
            except Exception:
                self._logger.exception("Outbox relay pass failed")
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._poll_interval)
            except TimeoutError:
                pass
        self._logger.info("Outbox relay stopped")


def _describe(exc: EventPublishError) -> str:
    if exc.cause is not None:
        return f"{exc.message}: {exc.cause.__class__.__name__}"
    return exc.message
