"""Session event broadcasting package."""

from haven.infrastructure.events.broadcaster import (
    EventBroadcaster,
    InMemoryEventBroadcaster,
    NullEventBroadcaster,
    SessionEvent,
    SessionEventType,
)

__all__ = [
    "EventBroadcaster",
    "InMemoryEventBroadcaster",
    "NullEventBroadcaster",
    "SessionEvent",
    "SessionEventType",
]
