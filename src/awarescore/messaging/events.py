"""Event publishing for phishing simulation and risk scoring notifications.

The engine publishes to a topic and moves on: it does not wait for
acknowledgements and does not retry. Delivery guarantees belong to the
publisher implementation plugged in by the host application.
"""

from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from uuid_utils.compat import uuid7

from awarescore.core.logging import get_logger

logger = get_logger(__name__)


class EventTopic(str, Enum):
    """Topics published by the analytics engine."""

    SIMULATION_STARTED = "phishing.simulation.started"
    EVENT_RECORDED = "phishing.event.recorded"
    PHISHING_CLICKED = "phishing.clicked"
    PHISHING_REPORTED = "phishing.reported"
    RISK_SCORE_UPDATED = "risk.score.updated"


EventHandler = Callable[[dict[str, Any]], Awaitable[None]]


@runtime_checkable
class EventPublisher(Protocol):
    """Interface the engine uses to emit notifications.

    Example implementation:
        class RedisStreamPublisher:
            async def publish(self, topic: EventTopic, payload: dict[str, Any]) -> None:
                await self._redis.xadd(topic.value, {"data": json.dumps(payload)})
    """

    async def publish(self, topic: EventTopic, payload: dict[str, Any]) -> None:
        """Publish a payload to a topic."""
        ...


@dataclass
class PublishedEvent:
    """Record of one published event."""

    topic: EventTopic
    payload: dict[str, Any]
    event_id: UUID = field(default_factory=uuid7)
    published_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "event_id": str(self.event_id),
            "topic": self.topic.value,
            "payload": self.payload,
            "published_at": self.published_at.isoformat(),
        }


class InMemoryEventBus:
    """In-process publisher with subscriber fan-out.

    Keeps a log of everything published. Handlers run in subscription
    order; a failing handler is logged and does not stop delivery to the
    remaining handlers or fail the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventTopic, list[EventHandler]] = defaultdict(list)
        self.published: list[PublishedEvent] = []

    def subscribe(self, topic: EventTopic, handler: EventHandler) -> None:
        """Register a handler for a topic."""
        self._handlers[topic].append(handler)

    async def publish(self, topic: EventTopic, payload: dict[str, Any]) -> None:
        """Record the event and deliver it to the topic's handlers."""
        event = PublishedEvent(topic=topic, payload=payload)
        self.published.append(event)

        logger.debug("event_published", topic=topic.value, event_id=str(event.event_id))

        for handler in list(self._handlers.get(topic, [])):
            try:
                await handler(payload)
            except Exception as e:
                logger.exception(
                    "event_handler_failed",
                    topic=topic.value,
                    event_id=str(event.event_id),
                    error=str(e),
                )

    def events_for(self, topic: EventTopic) -> list[PublishedEvent]:
        """Get published events for one topic, in publish order."""
        return [event for event in self.published if event.topic == topic]

    def clear(self) -> None:
        """Forget published events (handlers stay registered)."""
        self.published.clear()
