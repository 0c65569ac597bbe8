"""Unit tests for the in-memory event bus."""

from structlog.testing import capture_logs

from awarescore.messaging.events import EventPublisher, EventTopic, InMemoryEventBus


class TestInMemoryEventBus:
    """Tests for InMemoryEventBus."""

    def test_satisfies_publisher_protocol(self):
        """Test the bus can be passed wherever a publisher is expected."""
        assert isinstance(InMemoryEventBus(), EventPublisher)

    async def test_records_published_events(self):
        """Test every publish is logged in order, filterable by topic."""
        bus = InMemoryEventBus()

        await bus.publish(EventTopic.PHISHING_CLICKED, {"user_id": "a"})
        await bus.publish(EventTopic.RISK_SCORE_UPDATED, {"user_id": "a"})
        await bus.publish(EventTopic.PHISHING_CLICKED, {"user_id": "b"})

        assert [e.topic for e in bus.published] == [
            EventTopic.PHISHING_CLICKED,
            EventTopic.RISK_SCORE_UPDATED,
            EventTopic.PHISHING_CLICKED,
        ]
        clicked = bus.events_for(EventTopic.PHISHING_CLICKED)
        assert [e.payload["user_id"] for e in clicked] == ["a", "b"]
        assert clicked[0].to_dict()["topic"] == "phishing.clicked"

    async def test_fan_out_in_subscription_order(self):
        """Test all handlers of a topic receive the payload."""
        bus = InMemoryEventBus()
        received = []

        async def first(payload):
            received.append(("first", payload["n"]))

        async def second(payload):
            received.append(("second", payload["n"]))

        bus.subscribe(EventTopic.PHISHING_REPORTED, first)
        bus.subscribe(EventTopic.PHISHING_REPORTED, second)

        await bus.publish(EventTopic.PHISHING_REPORTED, {"n": 1})
        await bus.publish(EventTopic.PHISHING_CLICKED, {"n": 2})

        assert received == [("first", 1), ("second", 1)]

    async def test_failing_handler_does_not_stop_delivery(self):
        """Test a raising handler is skipped and later handlers still run."""
        bus = InMemoryEventBus()
        received = []

        async def broken(payload):
            raise RuntimeError("listener crashed")

        async def healthy(payload):
            received.append(payload)

        bus.subscribe(EventTopic.RISK_SCORE_UPDATED, broken)
        bus.subscribe(EventTopic.RISK_SCORE_UPDATED, healthy)

        await bus.publish(EventTopic.RISK_SCORE_UPDATED, {"user_id": "a"})

        assert received == [{"user_id": "a"}]

    async def test_failing_handler_is_logged(self):
        """Test a handler failure goes through the structured logging pipeline."""
        bus = InMemoryEventBus()

        async def broken(payload):
            raise RuntimeError("listener crashed")

        bus.subscribe(EventTopic.PHISHING_CLICKED, broken)

        with capture_logs() as logs:
            await bus.publish(EventTopic.PHISHING_CLICKED, {"user_id": "a"})

        [failure] = [entry for entry in logs if entry["event"] == "event_handler_failed"]
        assert failure["log_level"] == "error"
        assert failure["topic"] == "phishing.clicked"
        assert failure["error"] == "listener crashed"

    async def test_clear(self):
        """Test clear forgets events but keeps handlers."""
        bus = InMemoryEventBus()
        received = []

        async def handler(payload):
            received.append(payload)

        bus.subscribe(EventTopic.EVENT_RECORDED, handler)
        await bus.publish(EventTopic.EVENT_RECORDED, {})
        bus.clear()
        await bus.publish(EventTopic.EVENT_RECORDED, {})

        assert len(bus.published) == 1
        assert len(received) == 2
