"""Notification publishing for AwareScore."""

from awarescore.messaging.events import (
    EventHandler,
    EventPublisher,
    EventTopic,
    InMemoryEventBus,
    PublishedEvent,
)

__all__ = [
    "EventHandler",
    "EventPublisher",
    "EventTopic",
    "InMemoryEventBus",
    "PublishedEvent",
]
