"""
Safety Assessment Service

Assembles a session snapshot, runs the risk evaluator, attaches
intervention content and records the result.

SAFETY-CRITICAL: This service never raises to its caller and never
fails open. Any error inside the pipeline yields a conservative
HIGH / PAUSE result carrying a pause intervention.

Pipeline:
1. Load snapshot (session, profile, recent sets and checks, trend)
2. Evaluate risk (pure)
3. Select intervention and guidance message
4. Record safety check (best-effort: logged and swallowed)
5. Emit safety_alert for anything but CONTINUE
"""

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional
from uuid import UUID

from haven.config.logging_config import get_logger
from haven.domain.clock import utc_now
from haven.domain.enums.safety_enums import RiskLevel, SafetyAction, SafetyCheckType
from haven.domain.exceptions import NotFoundError
from haven.domain.models.safety_models import (
    SafetyAssessment,
    SafetyCheck,
    SessionSnapshot,
)
from haven.domain.models.session import TherapySession
from haven.infrastructure.events.broadcaster import (
    EventBroadcaster,
    NullEventBroadcaster,
    SessionEvent,
    SessionEventType,
)
from haven.infrastructure.llm.provider import GuidanceContext, GuidanceTextProvider
from haven.infrastructure.llm.static_provider import StaticGuidanceProvider
from haven.infrastructure.metrics.prometheus_metrics import (
    track_assessment,
    track_record_failure,
)
from haven.infrastructure.persistence.store import PersistenceStore
from haven.services.safety.intervention_selector import InterventionSelector
from haven.services.safety.risk_engine import RiskEvaluator

if TYPE_CHECKING:
    from haven.services.session.trend_cache import SessionTrendCache

logger = get_logger(__name__)


class SafetyAssessmentService:
    """
    Safety assessment pipeline with fail-safe behaviour.

    Does not take the session lock, so lifecycle operations can
    call it while they hold the lock.

    Usage:
        service = SafetyAssessmentService(store, evaluator, selector, trend_cache)
        assessment = await service.assess(session_id)
        if not assessment.allows_continue:
            ...
    """

    def __init__(
        self,
        store: PersistenceStore,
        evaluator: RiskEvaluator,
        selector: InterventionSelector,
        trend_cache: "SessionTrendCache",
        guidance: Optional[GuidanceTextProvider] = None,
        broadcaster: Optional[EventBroadcaster] = None,
        recent_set_window: int = 5,
        recent_check_window: int = 3,
        guidance_timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.evaluator = evaluator
        self.selector = selector
        self.trend_cache = trend_cache
        self.guidance = guidance or StaticGuidanceProvider()
        self.broadcaster = broadcaster or NullEventBroadcaster()
        self.recent_set_window = recent_set_window
        self.recent_check_window = recent_check_window
        self.guidance_timeout_seconds = guidance_timeout_seconds
        self._clock = clock
        self._fallback = StaticGuidanceProvider()

    async def assess(
        self,
        session_id: UUID,
        check_type: SafetyCheckType = SafetyCheckType.AUTOMATIC,
        session: Optional[TherapySession] = None,
        notes: Optional[str] = None,
        interrupt: Optional[asyncio.Event] = None,
    ) -> SafetyAssessment:
        """
        Assess the current state of a session.

        Args:
            session_id: Session to assess
            check_type: automatic or manual
            session: Already-loaded session, to skip a reload
            notes: Reason recorded with the check (never logged)
            interrupt: Event that abandons guidance generation when set
                (the session lock's emergency preemption signal)

        Returns:
            SafetyAssessment; the fail-safe result on any error
        """
        user_id: Optional[UUID] = session.user_id if session else None

        try:
            snapshot = await self.build_snapshot(session_id, session)
            user_id = snapshot.user_id
            assessment = await self._evaluate(snapshot, check_type, interrupt)
        except Exception as e:
            logger.error(
                "Safety assessment failed, fail-safe engaged",
                session_id=str(session_id),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            assessment = self.fail_safe(session_id, check_type)

        await self._record(assessment, notes)

        track_assessment(
            risk_level=assessment.risk_level.name,
            action=assessment.recommended_action.value,
            check_type=assessment.check_type.value,
            fail_safe=assessment.is_fail_safe,
        )

        log = logger.warning if not assessment.allows_continue else logger.info
        log(
            "Safety assessment completed",
            session_id=str(session_id),
            risk_level=assessment.risk_level.name,
            action=assessment.recommended_action.value,
            check_type=assessment.check_type.value,
            indicators=[i.type.value for i in assessment.indicators],
            is_fail_safe=assessment.is_fail_safe,
        )

        if not assessment.allows_continue:
            await self.broadcaster.publish(SessionEvent(
                event_type=SessionEventType.SAFETY_ALERT,
                session_id=session_id,
                user_id=user_id,
                payload=assessment.to_dict(),
            ))

        return assessment

    async def build_snapshot(
        self,
        session_id: UUID,
        session: Optional[TherapySession] = None,
    ) -> SessionSnapshot:
        """
        Assemble the assessment input from the store.

        Raises:
            NotFoundError: If the session does not exist
        """
        if session is None:
            session = await self.store.get_session(session_id)
            if session is None:
                raise NotFoundError("Session not found", session_id=session_id)

        profile = await self.store.get_user_safety_profile(session.user_id)
        recent_sets = await self.store.get_recent_sets(session.id, self.recent_set_window)
        recent_checks = await self.store.get_recent_safety_checks(
            session.id, self.recent_check_window
        )
        trend = await self.trend_cache.get_trend(session)

        return SessionSnapshot(
            session_id=session.id,
            user_id=session.user_id,
            phase=session.phase,
            initial_sud=session.initial_sud,
            current_sud=session.current_sud,
            current_voc=session.current_voc,
            elapsed_minutes=session.elapsed_minutes(self._clock()),
            recent_sets=recent_sets,
            recent_checks=recent_checks,
            profile=profile,
            sud_trend=trend,
        )

    async def _evaluate(
        self,
        snapshot: SessionSnapshot,
        check_type: SafetyCheckType,
        interrupt: Optional[asyncio.Event] = None,
    ) -> SafetyAssessment:
        evaluation = self.evaluator.evaluate(snapshot)
        intervention = self.selector.select(evaluation.recommended_action, evaluation.indicators)

        if intervention is not None:
            intervention.guidance_message = await self._guidance_message(
                GuidanceContext(
                    action=evaluation.recommended_action,
                    risk_level=evaluation.risk_level,
                    phase=snapshot.phase,
                    current_sud=snapshot.current_sud,
                    indicator_types=[i.type.value for i in evaluation.indicators],
                    technique_name=intervention.technique_id,
                ),
                interrupt,
            )

        return SafetyAssessment(
            session_id=snapshot.session_id,
            risk_level=evaluation.risk_level,
            recommended_action=evaluation.recommended_action,
            indicators=evaluation.indicators,
            intervention=intervention,
            check_type=check_type,
            measurements=snapshot.measurements(),
            assessed_at=self._clock(),
        )

    async def _guidance_message(
        self,
        context: GuidanceContext,
        interrupt: Optional[asyncio.Event] = None,
    ) -> str:
        try:
            message = await self._generate(context, interrupt)
            if message:
                return message
        except Exception as e:
            logger.warning(
                "Guidance provider failed, using static text",
                provider=self.guidance.provider_name,
                error=str(e),
            )
        return self._fallback.message_for(context.action)

    async def _generate(
        self,
        context: GuidanceContext,
        interrupt: Optional[asyncio.Event],
    ) -> Optional[str]:
        """
        Run the provider, bounded by the guidance timeout and the
        interrupt event. Returns None when either fires first.
        """
        generate = asyncio.ensure_future(self.guidance.generate(context))
        waiters = {generate}
        stop = None
        if interrupt is not None:
            stop = asyncio.ensure_future(interrupt.wait())
            waiters.add(stop)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=self.guidance_timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in waiters:
                if not task.done():
                    task.cancel()

        if generate in done:
            return generate.result()
        if stop is not None and stop in done:
            logger.warning(
                "Guidance generation abandoned for emergency stop",
                provider=self.guidance.provider_name,
            )
        else:
            logger.warning(
                "Guidance provider timed out, using static text",
                provider=self.guidance.provider_name,
                timeout_seconds=self.guidance_timeout_seconds,
            )
        return None

    def fail_safe(
        self,
        session_id: UUID,
        check_type: SafetyCheckType = SafetyCheckType.AUTOMATIC,
    ) -> SafetyAssessment:
        """
        Conservative synthetic result used when the pipeline fails.

        SAFETY_CRITICAL: Never CONTINUE.
        """
        intervention = self.selector.fail_safe()
        intervention.guidance_message = self._fallback.message_for(SafetyAction.PAUSE)
        return SafetyAssessment(
            session_id=session_id,
            risk_level=RiskLevel.HIGH,
            recommended_action=SafetyAction.PAUSE,
            intervention=intervention,
            check_type=check_type,
            is_fail_safe=True,
            assessed_at=self._clock(),
        )

    def emergency_check(self, session: TherapySession, reason: str) -> SafetyCheck:
        """
        Build the mandatory check recorded with an emergency stop.

        Uses only the loaded session so it cannot fail on a store read.
        """
        intervention = self.selector.emergency()
        intervention.guidance_message = self._fallback.message_for(SafetyAction.EMERGENCY_STOP)
        return SafetyCheck(
            session_id=session.id,
            check_type=SafetyCheckType.EMERGENCY,
            risk_level=RiskLevel.CRITICAL,
            action=SafetyAction.EMERGENCY_STOP,
            measurements_snapshot={
                "initial_sud": session.initial_sud,
                "current_sud": session.current_sud,
                "current_voc": session.current_voc,
                "phase": session.phase.value,
                "set_number": session.last_set_number,
            },
            intervention=intervention,
            notes=reason,
            timestamp=self._clock(),
        )

    async def _record(self, assessment: SafetyAssessment, notes: Optional[str]) -> None:
        """Persist the assessment; failures are logged and swallowed."""
        try:
            await self.store.record_safety_check(SafetyCheck.from_assessment(assessment, notes))
        except Exception as e:
            track_record_failure()
            logger.error(
                "Failed to record safety check",
                session_id=str(assessment.session_id),
                risk_level=assessment.risk_level.name,
                error=str(e),
            )

