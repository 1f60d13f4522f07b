"""Unit tests for typed event channels."""

import logging

from ceo_discovery.events import DiscoveryStarted, EventChannel


def _event() -> DiscoveryStarted:
    return DiscoveryStarted(session_id="discovery-1", start_time="2025-01-15T12:00:00+00:00")


class TestEventChannel:
    def test_delivers_in_subscription_order(self):
        channel: EventChannel[DiscoveryStarted] = EventChannel("discovery.started")
        received = []
        channel.subscribe(lambda e: received.append(("first", e.session_id)))
        channel.subscribe(lambda e: received.append(("second", e.session_id)))

        assert channel.publish(_event()) == 2
        assert received == [("first", "discovery-1"), ("second", "discovery-1")]

    def test_unsubscribe(self):
        channel = EventChannel("discovery.started")
        received = []
        unsubscribe = channel.subscribe(received.append)

        unsubscribe()
        unsubscribe()

        assert channel.publish(_event()) == 0
        assert received == []
        assert len(channel) == 0

    def test_failing_listener_is_isolated(self, caplog):
        """A raising listener is logged and the rest still run."""
        channel = EventChannel("discovery.started")
        received = []

        def broken(event):
            raise ValueError("boom")

        channel.subscribe(broken)
        channel.subscribe(received.append)

        with caplog.at_level(logging.WARNING, logger="ceo_discovery.events"):
            delivered = channel.publish(_event())

        assert delivered == 1
        assert len(received) == 1
        assert "Listener failed on discovery.started: boom" in caplog.text
