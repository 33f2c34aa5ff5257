"""
Event publisher implementations.

KafkaEventPublisher is used in production; InMemoryEventPublisher backs
tests and local development without a broker.
"""

import logging
from typing import Optional

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from .exceptions import EventPublishError
from .interfaces import IEventPublisher
from .models import PublishedMessage


class KafkaEventPublisher(IEventPublisher):
    """
    Kafka producer with synchronous delivery confirmation.

    Uses acks="all" and waits for each send, so a successful publish() means
    the message is committed on the broker.
    """

    def __init__(
        self,
        bootstrap_servers: list[str],
        client_id: str = "scs-user",
        logger: Optional[logging.Logger] = None,
    ):
        self._bootstrap_servers = bootstrap_servers
        self._client_id = client_id
        self._logger = logger or logging.getLogger(__name__)
        self._producer: Optional[AIOKafkaProducer] = None

    async def start(self) -> None:
        """
        Connect to the brokers.

        Raises:
            KafkaError: If no broker is reachable. Callers treat this as fatal.
        """
        if self._producer is not None:
            return
        producer = AIOKafkaProducer(
            bootstrap_servers=self._bootstrap_servers,
            client_id=self._client_id,
            acks="all",
            enable_idempotence=True,
        )
        await producer.start()
        self._producer = producer
        self._logger.info(
            "Kafka producer started",
            extra={"brokers": ",".join(self._bootstrap_servers)},
        )

    async def close(self) -> None:
        if self._producer is None:
            return
        await self._producer.stop()
        self._producer = None
        self._logger.info("Kafka producer stopped")

    async def publish(self, topic: str, key: bytes, value: bytes) -> None:
        if self._producer is None:
            raise EventPublishError(topic, cause=RuntimeError("Kafka producer is not started"))
        try:
            await self._producer.send_and_wait(topic, value=value, key=key)
        except KafkaError as exc:
            raise EventPublishError(topic, cause=exc) from exc


class InMemoryEventPublisher(IEventPublisher):
    """
    Publisher that keeps messages in a list.

    For testing and development. Set ``fail_with`` to make every publish()
    raise EventPublishError with that cause.
    """

    def __init__(self) -> None:
        self.messages: list[PublishedMessage] = []
        self.fail_with: Optional[BaseException] = None
        self.started = False

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.started = False

    async def publish(self, topic: str, key: bytes, value: bytes) -> None:
        if self.fail_with is not None:
            raise EventPublishError(topic, cause=self.fail_with)
        self.messages.append(PublishedMessage(topic=topic, key=key, value=value))

    def messages_for(self, topic: str) -> list[PublishedMessage]:
        return [m for m in self.messages if m.topic == topic]
