"""
Events module.

Publishes domain events (currently only ``user.created``) through a
transactional outbox.

Public API:
- IEventPublisher, IOutboxStore: Interfaces
- EventEnvelope, OutboxEvent: Models
- EventPublishError: Raised when delivery is not confirmed
"""

from .interfaces import IEventPublisher, IOutboxStore
from .models import EventEnvelope, OutboxEvent, PublishedMessage, USER_CREATED_EVENT
from .exceptions import EventPublishError

__all__ = [
    "IEventPublisher",
    "IOutboxStore",
    "EventEnvelope",
    "OutboxEvent",
    "PublishedMessage",
    "USER_CREATED_EVENT",
    "EventPublishError",
]
