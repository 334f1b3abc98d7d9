"""
Event Broadcasting

Fire-and-forget emission of session_update and safety_alert
events to whatever transport the host application attaches.

ARCHITECTURE: Events are a non-authoritative side channel.
Delivery failures are logged and never reach the caller.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID, uuid4

from haven.config.logging_config import get_logger
from haven.domain.clock import utc_now

logger = get_logger(__name__)


class SessionEventType(StrEnum):
    """Kinds of events emitted by the session core."""
    
    SESSION_UPDATE = "session_update"
    """Committed lifecycle, phase or set change."""
    
    SAFETY_ALERT = "safety_alert"
    """Assessment not recommending continue, or an emergency stop."""


@dataclass
class SessionEvent:
    """
    Event emitted after a committed change.
    
    PRIVACY: Payloads carry identifiers, states and scores only.
    """
    
    event_type: SessionEventType
    session_id: UUID
    user_id: Optional[UUID]
    payload: dict[str, Any] = field(default_factory=dict)
    event_id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=utc_now)
    
    def to_dict(self) -> dict:
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type.value,
            "session_id": str(self.session_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


EventHandler = Callable[[SessionEvent], Awaitable[None]]


class EventBroadcaster(ABC):
    """
    Abstract event broadcaster.
    
    publish() never raises; implementations deliver in _dispatch().
    """
    
    async def publish(self, event: SessionEvent) -> None:
        try:
            await self._dispatch(event)
        except Exception as e:
            logger.warning(
                "Event broadcast failed",
                event_type=event.event_type.value,
                session_id=str(event.session_id),
                error=str(e),
            )
    
    @abstractmethod
    async def _dispatch(self, event: SessionEvent) -> None:
        pass


class NullEventBroadcaster(EventBroadcaster):
    """Discards all events."""
    
    async def _dispatch(self, event: SessionEvent) -> None:
        return None


class InMemoryEventBroadcaster(EventBroadcaster):
    """
    In-process broadcaster with async subscribers and bounded history.
    
    A failing subscriber is logged and does not stop delivery to
    the others.
    
    Usage:
        broadcaster = InMemoryEventBroadcaster()
        broadcaster.subscribe(handler)
        await broadcaster.publish(event)
    """
    
    def __init__(self, history_size: int = 500) -> None:
        self._subscribers: list[EventHandler] = []
        self._history: deque[SessionEvent] = deque(maxlen=history_size)
    
    def subscribe(self, handler: EventHandler) -> None:
        self._subscribers.append(handler)
    
    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)
    
    async def _dispatch(self, event: SessionEvent) -> None:
        self._history.append(event)
        for handler in list(self._subscribers):
            try:
                await handler(event)
            except Exception as e:
                logger.warning(
                    "Event subscriber failed",
                    event_type=event.event_type.value,
                    session_id=str(event.session_id),
                    error=str(e),
                )
    
    def get_events(
        self,
        session_id: Optional[UUID] = None,
        event_type: Optional[SessionEventType] = None,
    ) -> list[SessionEvent]:
        """
        Get events from history.
        
        Args:
            session_id: Filter by session
            event_type: Filter by type
            
        Returns:
            Matching events, oldest first
        """
        events = list(self._history)
        
        if session_id:
            events = [e for e in events if e.session_id == session_id]
        
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        
        return events
