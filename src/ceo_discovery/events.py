"""
Typed event channels.

Each producer owns one ``EventChannel`` per event type, so every payload has a
fixed shape. Publishing never fails the producer: a listener that raises is
logged and skipped, the same way event capture errors are handled elsewhere.

Usage:
    channel: EventChannel[DiscoveryCompleted] = EventChannel("discovery.completed")
    unsubscribe = channel.subscribe(lambda event: print(event.session_id))
    channel.publish(DiscoveryCompleted(session_id="...", proposal_count=3))
    unsubscribe()
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventChannel(Generic[T]):
    """Synchronous observer list for a single event type."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: T) -> int:
        """Deliver an event to every listener.

        Returns:
            Number of listeners that handled the event without raising.
        """
        delivered = 0
        for listener in list(self._listeners):
            try:
                listener(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"Listener failed on {self.name}: {e}")
        return delivered

    def __len__(self) -> int:
        return len(self._listeners)


@dataclass(frozen=True)
class DiscoveryStarted:
    session_id: str
    start_time: str


@dataclass(frozen=True)
class DiscoveryCompleted:
    session_id: str
    pattern_count: int
    pain_point_count: int
    proposal_count: int


@dataclass(frozen=True)
class FeedbackCollected:
    proposal_id: str
    project_id: str
    actual_overall_impact: float
    prediction_accuracy: float
    training_example_created: bool


@dataclass(frozen=True)
class ImprovementExecuted:
    action_id: str
    action_type: str
    succeeded: bool
    actual_improvement: float | None
