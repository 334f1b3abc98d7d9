"""
Unit Tests for Event Broadcasting and Metrics
"""

from uuid import uuid4

from haven.infrastructure.events.broadcaster import (
    InMemoryEventBroadcaster,
    SessionEvent,
    SessionEventType,
)
from haven.infrastructure.metrics.prometheus_metrics import (
    render_metrics,
    track_assessment,
    track_transition,
)


def event(session_id, event_type=SessionEventType.SESSION_UPDATE):
    return SessionEvent(event_type=event_type, session_id=session_id, user_id=None, payload={})


class TestInMemoryEventBroadcaster:
    
    async def test_subscribers_receive_events(self):
        broadcaster = InMemoryEventBroadcaster()
        received = []
        
        async def handler(e):
            received.append(e)
        
        broadcaster.subscribe(handler)
        await broadcaster.publish(event(uuid4()))
        
        assert len(received) == 1
    
    async def test_failing_subscriber_is_isolated(self):
        """A broken subscriber never breaks the publisher or other subscribers."""
        broadcaster = InMemoryEventBroadcaster()
        received = []
        
        async def broken(e):
            raise RuntimeError("socket gone")
        
        async def healthy(e):
            received.append(e)
        
        broadcaster.subscribe(broken)
        broadcaster.subscribe(healthy)
        await broadcaster.publish(event(uuid4()))
        
        assert len(received) == 1
    
    async def test_history_filters(self):
        broadcaster = InMemoryEventBroadcaster(history_size=10)
        first, second = uuid4(), uuid4()
        await broadcaster.publish(event(first))
        await broadcaster.publish(event(first, SessionEventType.SAFETY_ALERT))
        await broadcaster.publish(event(second))
        
        assert len(broadcaster.get_events(first)) == 2
        assert len(broadcaster.get_events(event_type=SessionEventType.SAFETY_ALERT)) == 1
    
    async def test_history_is_bounded(self):
        broadcaster = InMemoryEventBroadcaster(history_size=2)
        for _ in range(5):
            await broadcaster.publish(event(uuid4()))
        
        assert len(broadcaster.get_events()) == 2


class TestMetrics:
    
    def test_render_includes_session_metrics(self):
        track_transition("preparing", "in_progress")
        track_assessment("LOW", "continue", "automatic")
        
        payload, content_type = render_metrics()
        
        assert b"haven_lifecycle_transitions_total" in payload
        assert b"haven_safety_assessments_total" in payload
        assert content_type.startswith("text/plain")
