"""
Event module data models.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

USER_CREATED_EVENT = "user.created"


class EventEnvelope(BaseModel):
    """
    Tagged domain event payload.

    Serialized to JSON as ``{"type": ..., "payload": {...}}`` and discarded
    once handed to the publisher or the outbox.
    """

    type: str = Field(..., description="Event type tag, e.g. user.created")
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json()


class OutboxEvent(BaseModel):
    """An event recorded in the same transaction as the change that caused it."""

    id: str = Field(..., description="Event ID (UUID)")
    topic: str = Field(..., description="Destination topic")
    key: str = Field(..., description="Message key, sent as UTF-8 bytes")
    value: str = Field(..., description="Serialized envelope JSON")
    attempts: int = Field(default=0, description="Failed delivery attempts so far")
    last_error: Optional[str] = None
    created_at: Optional[datetime] = None
    published_at: Optional[datetime] = None

    @property
    def key_bytes(self) -> bytes:
        return self.key.encode("utf-8")

    @property
    def value_bytes(self) -> bytes:
        return self.value.encode("utf-8")


class PublishedMessage(BaseModel):
    """A message accepted by the in-memory publisher."""

    topic: str
    key: bytes
    value: bytes
