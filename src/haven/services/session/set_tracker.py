"""
Measurement / Set Tracker

Starts and closes stimulation sets and records the SUD/VOC
feedback that drives the escalation trend.

Set numbers are session-wide: they start at 1 and grow by exactly
one per started set, with no gaps. The per-phase position of a set
is kept separately and restarts on each phase advance.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union
from uuid import UUID

from haven.config.logging_config import get_logger
from haven.domain.enums.safety_enums import SafetyCheckType
from haven.domain.enums.session_enums import LifecycleState
from haven.domain.exceptions import ConflictError, NotFoundError, ValidationError
from haven.domain.models.measurements import SetFeedback
from haven.domain.models.safety_models import SafetyAssessment
from haven.domain.models.stimulation_set import StimulationSet
from haven.infrastructure.metrics.prometheus_metrics import track_set_closed
from haven.services.session.base import SessionComponent
from haven.services.session.transitions import ensure_mutable, ensure_state

logger = get_logger(__name__)


@dataclass
class StartSetResult:
    """Started set with the assessment that allowed it."""

    stimulation_set: StimulationSet
    safety_assessment: SafetyAssessment


@dataclass
class EndSetResult:
    """
    Closed set, plus the manual safety check when the feedback
    reported overwhelm or dissociation.
    """

    stimulation_set: StimulationSet
    safety_assessment: Optional[SafetyAssessment] = None


def coerce_feedback(feedback: Union[SetFeedback, dict[str, Any]]) -> SetFeedback:
    """
    Raises:
        ValidationError: If the feedback is malformed or out of range
    """
    if isinstance(feedback, SetFeedback):
        return feedback
    if isinstance(feedback, dict):
        return SetFeedback.from_dict(feedback)
    raise ValidationError("Feedback must be a SetFeedback or a mapping", field="feedback")


class SetTracker(SessionComponent):
    """
    Set lifecycle and measurement recording.

    Usage:
        tracker = SetTracker(store, assessment, locks, trend_cache)
        started = await tracker.start_set(session_id, {"speed": 1.2})
        ended = await tracker.end_set(session_id, SetFeedback(sud=4, voc=5))
    """

    async def start_set(
        self,
        session_id: UUID,
        stimulation_settings: Optional[dict[str, Any]] = None,
    ) -> StartSetResult:
        """
        Start the next set after a fresh safety assessment.

        Raises:
            StateTransitionError: If the session is not IN_PROGRESS
            ConflictError: If the previous set is still open
            SafetyBlockedError: If the assessment is EMERGENCY_STOP
        """
        async with self.locks.operation(session_id, "start set") as guard:
            session = await self.load(session_id)
            ensure_state(session, LifecycleState.IN_PROGRESS, "start set")

            last = await self.store.get_last_set(session.id)
            if last is not None and last.is_open:
                raise ConflictError(
                    "Previous set is still open",
                    session_id=session.id,
                    set_number=last.set_number,
                )

            assessment = await self.assessment.assess(
                session.id, session=session, interrupt=guard.preemption
            )
            if assessment.requires_emergency_stop:
                raise self.block(assessment, "start set")

            guard.ensure_not_preempted()
            now = self.now()
            set_number = (last.set_number if last else 0) + 1
            session.last_set_number = set_number
            session.current_set_number += 1
            session.updated_at = now

            stimulation_set = StimulationSet(
                session_id=session.id,
                set_number=set_number,
                phase=session.phase,
                phase_set_number=session.current_set_number,
                start_time=now,
                stimulation_settings=dict(stimulation_settings or {}),
            )
            stimulation_set = await self.store.begin_set(session, stimulation_set)

        logger.info(
            "Set started",
            session_id=str(session.id),
            set_number=set_number,
            phase=session.phase.value,
            action=assessment.recommended_action.value,
        )
        await self.publish_update(session, "set_started", set_number=set_number)
        return StartSetResult(stimulation_set=stimulation_set, safety_assessment=assessment)

    async def end_set(
        self,
        session_id: UUID,
        feedback: Union[SetFeedback, dict[str, Any]],
        agent_observations: Optional[dict[str, Any]] = None,
    ) -> EndSetResult:
        """
        Close the open set and record its feedback.

        Updates the session's current SUD/VOC and the escalation
        trend. Overwhelm or dissociation triggers a manual safety
        check; the lifecycle state is left unchanged.

        Raises:
            ValidationError: If SUD or VOC is out of range
            StateTransitionError: If the session is terminal or not started
            NotFoundError: If the session has no sets
            ConflictError: If the last set is already closed
        """
        feedback = coerce_feedback(feedback)

        async with self.locks.operation(session_id, "end set") as guard:
            session = await self.load(session_id)
            ensure_mutable(session, "end set")
            if session.lifecycle_state == LifecycleState.PREPARING:
                ensure_state(session, LifecycleState.IN_PROGRESS, "end set")

            open_set = await self.store.get_open_set(session.id)
            if open_set is None:
                if await self.store.get_last_set(session.id) is None:
                    raise NotFoundError("Session has no sets", session_id=session.id)
                raise ConflictError("Set already closed", session_id=session.id)

            guard.ensure_not_preempted()
            now = self.now()
            open_set.close(now, feedback, agent_observations)
            session.current_sud = feedback.sud
            if feedback.voc is not None:
                session.current_voc = feedback.voc
            session.updated_at = now
            closed = await self.store.close_set(session, open_set)

        self.trend_cache.record(session.id, feedback.sud)
        track_set_closed(closed.duration_seconds or 0, interrupted=False)
        logger.info(
            "Set ended",
            session_id=str(session.id),
            set_number=closed.set_number,
            sud=feedback.sud,
            voc=feedback.voc,
            duration_seconds=closed.duration_seconds,
        )
        await self.publish_update(session, "set_ended", set_number=closed.set_number)

        assessment = None
        if feedback.requires_safety_check:
            logger.warning(
                "Set feedback reported concern, manual safety check triggered",
                session_id=str(session.id),
                concern=feedback.describe_concern(),
            )
            assessment = await self.assessment.assess(
                session.id,
                check_type=SafetyCheckType.MANUAL,
                notes=f"Set {closed.set_number} feedback reported {feedback.describe_concern()}",
            )

        return EndSetResult(stimulation_set=closed, safety_assessment=assessment)
