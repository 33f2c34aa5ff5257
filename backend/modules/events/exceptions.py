"""
Events module exceptions.
"""

from typing import Optional

from shared.exceptions import ExternalServiceError


class EventPublishError(ExternalServiceError):
    """Raised when the broker does not confirm delivery of a message."""

    def __init__(self, topic: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to publish message to {topic}",
            service="kafka",
            code="EVENT_PUBLISH_FAILED",
            cause=cause,
        )
        self.topic = topic
