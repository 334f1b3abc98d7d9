"""
Session Component Base

Shared collaborators and helpers for components that mutate
sessions under the per-session lock.
"""

from datetime import datetime
from typing import Any, Callable, Optional
from uuid import UUID

from haven.config.logging_config import get_logger
from haven.domain.clock import utc_now
from haven.domain.exceptions import NotFoundError, SafetyBlockedError
from haven.domain.models.safety_models import SafetyAssessment
from haven.domain.models.session import TherapySession
from haven.infrastructure.events.broadcaster import (
    EventBroadcaster,
    NullEventBroadcaster,
    SessionEvent,
    SessionEventType,
)
from haven.infrastructure.metrics.prometheus_metrics import track_safety_block
from haven.infrastructure.persistence.store import PersistenceStore
from haven.services.safety.assessment_service import SafetyAssessmentService
from haven.services.session.locks import SessionLockManager
from haven.services.session.trend_cache import SessionTrendCache

logger = get_logger(__name__)


class SessionComponent:
    """Base for SessionStateMachine and SetTracker."""
    
    def __init__(
        self,
        store: PersistenceStore,
        assessment: SafetyAssessmentService,
        locks: SessionLockManager,
        trend_cache: SessionTrendCache,
        broadcaster: Optional[EventBroadcaster] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.assessment = assessment
        self.locks = locks
        self.trend_cache = trend_cache
        self.broadcaster = broadcaster or NullEventBroadcaster()
        self._clock = clock
    
    def now(self) -> datetime:
        return self._clock()
    
    async def load(self, session_id: UUID) -> TherapySession:
        """
        Raises:
            NotFoundError: If the session does not exist
        """
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found", session_id=session_id)
        return session
    
    def block(self, assessment: SafetyAssessment, operation: str) -> SafetyBlockedError:
        """Build the error for an operation refused by the safety engine."""
        track_safety_block(operation)
        logger.warning(
            "Operation blocked by safety assessment",
            session_id=str(assessment.session_id),
            operation=operation,
            risk_level=assessment.risk_level.name,
            action=assessment.recommended_action.value,
        )
        return SafetyBlockedError(
            f"Cannot {operation}: safety assessment recommends "
            f"{assessment.recommended_action.value}",
            assessment=assessment,
            operation=operation,
        )
    
    async def publish_update(self, session: TherapySession, change: str, **payload: Any) -> None:
        await self.broadcaster.publish(SessionEvent(
            event_type=SessionEventType.SESSION_UPDATE,
            session_id=session.id,
            user_id=session.user_id,
            payload={
                "change": change,
                "lifecycle_state": session.lifecycle_state.value,
                "phase": session.phase.value,
                "current_sud": session.current_sud,
                "current_voc": session.current_voc,
                **payload,
            },
            timestamp=self.now(),
        ))
