"""
Session State Machine

Owns the session lifecycle and phase progression.

States: PREPARING -> IN_PROGRESS <-> PAUSED -> COMPLETED | EMERGENCY_STOPPED
Phases: strictly ordered, advancing only to the immediate successor.

SAFETY-CRITICAL:
- start is refused unless the assessment recommends CONTINUE
- resume is refused when the assessment recommends EMERGENCY_STOP
- emergency_stop is always allowed from a non-terminal state and
  preempts any other in-flight operation on the session
- a refused or failed operation leaves stored state untouched
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from haven.config.logging_config import get_logger
from haven.domain.enums.safety_enums import SafetyCheckType
from haven.domain.enums.session_enums import LifecycleState, TherapyPhase
from haven.domain.exceptions import ConflictError, NotFoundError
from haven.domain.models.measurements import validate_sud, validate_voc
from haven.domain.models.safety_models import Intervention, SafetyAssessment, SafetyCheck
from haven.domain.models.session import PhaseRecord, TherapySession
from haven.infrastructure.events.broadcaster import SessionEvent, SessionEventType
from haven.infrastructure.metrics.prometheus_metrics import (
    track_emergency_stop,
    track_phase_advance,
    track_session_created,
    track_session_finished,
    track_set_closed,
    track_transition,
)
from haven.services.session.base import SessionComponent
from haven.services.session.transitions import (
    check_phase_gate,
    check_phase_target,
    ensure_state,
    ensure_transition,
    parse_phase,
)

logger = get_logger(__name__)


# CLINICAL_VALIDATION_REQUIRED: Resolution criteria for a target memory
RESOLVED_MAX_SUD = 2
RESOLVED_MIN_VOC = 6

DEFAULT_EMERGENCY_REASON = "Emergency stop requested"


@dataclass
class TransitionResult:
    """Session after a transition gated by a safety assessment."""

    session: TherapySession
    safety_assessment: SafetyAssessment


@dataclass
class CompletionResult:
    """Completed session and whether its target memory was resolved."""

    session: TherapySession
    target_memory_resolved: bool


@dataclass
class EmergencyStopResult:
    """
    Emergency-stopped session with its recorded check.

    SAFETY_NOTE: intervention always carries crisis resources.
    """

    session: TherapySession
    safety_check: SafetyCheck
    intervention: Intervention


class SessionStateMachine(SessionComponent):
    """
    Lifecycle operations for therapy sessions.

    Every mutating operation runs under the per-session lock and
    commits through a single store call.

    Usage:
        machine = SessionStateMachine(store, assessment, locks, trend_cache)
        session = await machine.create(user_id, memory_id, initial_sud=7, initial_voc=3)
        result = await machine.start(session.id)
    """

    async def create(
        self,
        user_id: UUID,
        target_memory_id: UUID,
        initial_sud: int,
        initial_voc: int,
        preparation_notes: Optional[str] = None,
    ) -> TherapySession:
        """
        Create a session in PREPARING.

        Raises:
            ValidationError: If SUD or VOC is out of range
            NotFoundError: If the memory is missing, not the user's, or inactive
            ConflictError: If the user already has a non-terminal session
        """
        validate_sud(initial_sud, "initial_sud")
        validate_voc(initial_voc, "initial_voc")

        memory = await self.store.get_target_memory(target_memory_id)
        if memory is None or memory.user_id != user_id or not memory.is_active:
            raise NotFoundError("Target memory not found", memory_id=target_memory_id)

        now = self.now()
        session = TherapySession(
            user_id=user_id,
            target_memory_id=target_memory_id,
            initial_sud=initial_sud,
            initial_voc=initial_voc,
            preparation_notes=preparation_notes,
            created_at=now,
            updated_at=now,
        )

        # Uniqueness of the active session is enforced by the store
        session = await self.store.create_session(session)

        track_session_created()
        logger.info(
            "Session created",
            session_id=str(session.id),
            initial_sud=initial_sud,
            initial_voc=initial_voc,
        )
        await self.publish_update(session, "created")
        return session

    async def start(self, session_id: UUID) -> TransitionResult:
        """
        PREPARING -> IN_PROGRESS, gated on a CONTINUE recommendation.

        Raises:
            SafetyBlockedError: If the assessment is not CONTINUE
            StateTransitionError: If the session is not PREPARING
        """
        async with self.locks.operation(session_id, "start") as guard:
            session = await self.load(session_id)
            ensure_transition(
                session, LifecycleState.IN_PROGRESS, "start", source=LifecycleState.PREPARING
            )

            assessment = await self.assessment.assess(
                session.id, session=session, interrupt=guard.preemption
            )
            if not assessment.allows_continue:
                raise self.block(assessment, "start")

            guard.ensure_not_preempted()
            now = self.now()
            previous = session.lifecycle_state
            session.lifecycle_state = LifecycleState.IN_PROGRESS
            session.start_time = now
            session.phase_started_at = now
            session.updated_at = now
            session = await self.store.update_session(session)

        self.trend_cache.seed(session)
        track_transition(previous.value, session.lifecycle_state.value)
        logger.info("Session started", session_id=str(session.id))
        await self.publish_update(session, "started")
        return TransitionResult(session=session, safety_assessment=assessment)

    async def pause(self, session_id: UUID, reason: Optional[str] = None) -> TherapySession:
        """
        IN_PROGRESS -> PAUSED, unconditionally.

        Raises:
            StateTransitionError: If the session is not IN_PROGRESS
        """
        async with self.locks.operation(session_id, "pause") as guard:
            session = await self.load(session_id)
            ensure_transition(
                session, LifecycleState.PAUSED, "pause", source=LifecycleState.IN_PROGRESS
            )

            guard.ensure_not_preempted()
            session.lifecycle_state = LifecycleState.PAUSED
            session.pause_reason = reason
            session.updated_at = self.now()
            session = await self.store.update_session(session)

        track_transition(LifecycleState.IN_PROGRESS.value, LifecycleState.PAUSED.value)
        logger.info("Session paused", session_id=str(session.id), explained=reason is not None)
        await self.publish_update(session, "paused")
        return session

    async def resume(self, session_id: UUID) -> TransitionResult:
        """
        PAUSED -> IN_PROGRESS unless the assessment recommends EMERGENCY_STOP.

        Raises:
            SafetyBlockedError: If the assessment is EMERGENCY_STOP
            StateTransitionError: If the session is not PAUSED
        """
        async with self.locks.operation(session_id, "resume") as guard:
            session = await self.load(session_id)
            ensure_transition(
                session, LifecycleState.IN_PROGRESS, "resume", source=LifecycleState.PAUSED
            )

            assessment = await self.assessment.assess(
                session.id, session=session, interrupt=guard.preemption
            )
            if assessment.requires_emergency_stop:
                raise self.block(assessment, "resume")

            guard.ensure_not_preempted()
            session.lifecycle_state = LifecycleState.IN_PROGRESS
            session.updated_at = self.now()
            session = await self.store.update_session(session)

        track_transition(LifecycleState.PAUSED.value, LifecycleState.IN_PROGRESS.value)
        logger.info(
            "Session resumed",
            session_id=str(session.id),
            action=assessment.recommended_action.value,
        )
        await self.publish_update(session, "resumed")
        return TransitionResult(session=session, safety_assessment=assessment)

    async def advance_to_phase(
        self,
        session_id: UUID,
        next_phase: Union[TherapyPhase, str],
        notes: Optional[str] = None,
    ) -> TherapySession:
        """
        Advance to the immediate successor phase.

        The outgoing phase is archived with its start and end time,
        notes and set count; the per-phase set counter restarts at 0.

        Raises:
            ValidationError: If the target is not the immediate successor
            PhaseGateError: If the target's entry predicate is unmet
            ConflictError: If a set is still open
            StateTransitionError: If the session is not IN_PROGRESS
        """
        target = parse_phase(next_phase)

        async with self.locks.operation(session_id, "advance phase") as guard:
            session = await self.load(session_id)
            ensure_state(session, LifecycleState.IN_PROGRESS, "advance phase")
            check_phase_target(session, target)

            if await self.store.get_open_set(session.id) is not None:
                raise ConflictError(
                    "Cannot advance phase while a set is open",
                    session_id=session.id,
                )

            check_phase_gate(session, target)

            guard.ensure_not_preempted()
            now = self.now()
            outgoing = session.phase
            session.phase_history.append(PhaseRecord(
                phase=outgoing,
                started_at=session.phase_started_at,
                completed_at=now,
                notes=notes,
                set_count=session.current_set_number,
            ))
            session.phase = target
            session.current_set_number = 0
            session.phase_started_at = now
            session.updated_at = now
            session = await self.store.update_session(session)

        track_phase_advance(target.value)
        logger.info(
            "Phase advanced",
            session_id=str(session.id),
            from_phase=outgoing.value,
            to_phase=target.value,
        )
        await self.publish_update(session, "phase_advanced", previous_phase=outgoing.value)
        return session

    async def complete(self, session_id: UUID, notes: Optional[str] = None) -> CompletionResult:
        """
        Any non-terminal state -> COMPLETED.

        Final SUD/VOC are taken from the current values. The target
        memory is marked resolved when final SUD <= 2 and final VOC >= 6.

        Raises:
            StateTransitionError: If the session is already terminal
        """
        async with self.locks.operation(session_id, "complete") as guard:
            session = await self.load(session_id)
            ensure_transition(session, LifecycleState.COMPLETED, "complete")

            guard.ensure_not_preempted()
            now = self.now()
            previous = session.lifecycle_state
            self._finish(session, LifecycleState.COMPLETED, now)
            session.final_sud = session.current_sud
            session.final_voc = session.current_voc
            session.completion_notes = notes

            resolved = (
                session.final_sud <= RESOLVED_MAX_SUD
                and session.final_voc >= RESOLVED_MIN_VOC
            )
            interrupted = await self.store.commit_completion(session, resolve_target_memory=resolved)

        self.trend_cache.discard(session.id)
        track_transition(previous.value, session.lifecycle_state.value)
        track_session_finished("completed", session.total_duration_seconds)
        if interrupted is not None:
            track_set_closed(interrupted.duration_seconds or 0, interrupted=True)
        logger.info(
            "Session completed",
            session_id=str(session.id),
            final_sud=session.final_sud,
            final_voc=session.final_voc,
            target_memory_resolved=resolved,
            duration_seconds=session.total_duration_seconds,
        )
        await self.publish_update(session, "completed", target_memory_resolved=resolved)
        return CompletionResult(session=session, target_memory_resolved=resolved)

    async def emergency_stop(
        self,
        session_id: UUID,
        reason: Optional[str] = None,
    ) -> EmergencyStopResult:
        """
        Any non-terminal state -> EMERGENCY_STOPPED, unconditionally.

        Always records an emergency safety check in the same commit.

        SAFETY-CRITICAL: Preempts queued and in-flight operations on
        the session; they fail instead of committing.

        Raises:
            StateTransitionError: If the session is already terminal
            PersistenceError: If the stop could not be committed
        """
        reason = (reason or "").strip() or DEFAULT_EMERGENCY_REASON

        async with self.locks.emergency(session_id):
            session = await self.load(session_id)
            ensure_transition(session, LifecycleState.EMERGENCY_STOPPED, "emergency stop")

            now = self.now()
            previous = session.lifecycle_state
            self._finish(session, LifecycleState.EMERGENCY_STOPPED, now)
            session.emergency_reason = reason

            check = self.assessment.emergency_check(session, reason)
            interrupted = await self.store.commit_emergency_stop(session, check)

        self.trend_cache.discard(session.id)
        track_emergency_stop()
        track_transition(previous.value, session.lifecycle_state.value)
        track_session_finished("emergency_stopped", session.total_duration_seconds)
        if interrupted is not None:
            track_set_closed(interrupted.duration_seconds or 0, interrupted=True)
        logger.warning(
            "Session emergency stopped",
            session_id=str(session.id),
            previous_state=previous.value,
            phase=session.phase.value,
            current_sud=session.current_sud,
        )
        await self.publish_update(session, "emergency_stopped")
        await self.broadcaster.publish(SessionEvent(
            event_type=SessionEventType.SAFETY_ALERT,
            session_id=session.id,
            user_id=session.user_id,
            payload=check.to_dict(),
            timestamp=self.now(),
        ))
        return EmergencyStopResult(
            session=session,
            safety_check=check,
            intervention=check.intervention,
        )

    async def trigger_manual_check(
        self,
        session_id: UUID,
        reason: Optional[str] = None,
    ) -> SafetyAssessment:
        """
        Run an out-of-band manual safety check.

        Does not change lifecycle state.

        Raises:
            NotFoundError: If the session does not exist
        """
        session = await self.load(session_id)
        logger.warning("Manual safety check triggered", session_id=str(session.id))
        return await self.assessment.assess(
            session.id,
            check_type=SafetyCheckType.MANUAL,
            session=session,
            notes=reason,
        )

    @staticmethod
    def _finish(session: TherapySession, state: LifecycleState, now: datetime) -> None:
        session.lifecycle_state = state
        session.end_time = now
        if session.start_time is not None:
            session.total_duration_seconds = max(0, int((now - session.start_time).total_seconds()))
        else:
            session.total_duration_seconds = 0
        session.updated_at = now

