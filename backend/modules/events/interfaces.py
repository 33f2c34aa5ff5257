"""
Events module interfaces.

Workflows depend on IEventPublisher and IOutboxStore only, never on a
broker client or table layout.
"""

from typing import Protocol, runtime_checkable

from shared.repository import RepositoryResult

from .models import OutboxEvent


@runtime_checkable
class IEventPublisher(Protocol):
    """
    Interface for sending keyed messages to a topic.

    publish() returns only after the broker confirmed the write. It never
    retries on its own.
    """

    async def start(self) -> None:
        """Open broker connections."""
        ...

    async def close(self) -> None:
        """Flush and close broker connections."""
        ...

    async def publish(self, topic: str, key: bytes, value: bytes) -> None:
        """
        Send one message and wait for acknowledgement.

        Raises:
            EventPublishError: If delivery is not confirmed
        """
        ...


@runtime_checkable
class IOutboxStore(Protocol):
    """Persistence for events waiting to be published."""

    async def fetch_pending(self, limit: int, max_attempts: int) -> RepositoryResult[list[OutboxEvent]]:
        """Oldest unpublished events with fewer than ``max_attempts`` failures."""
        ...

    async def mark_published(self, event_id: str) -> RepositoryResult[None]:
        """Record a confirmed delivery."""
        ...

    async def record_failure(self, event: OutboxEvent, error: str) -> RepositoryResult[None]:
        """Increment the attempt counter and keep the last error."""
        ...
