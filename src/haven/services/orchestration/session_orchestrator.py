"""
Session Orchestrator

Single entry point used by the API/controller layer. Coordinates
the state machine, set tracker and safety services and binds
session context to every log line emitted during a call.

ARCHITECTURE: All session operations flow through this orchestrator:
Controller -> Orchestrator -> StateMachine / SetTracker -> Assessment -> Store

Each operation returns the updated entity (or a result wrapping it)
or raises a typed HavenError.
"""

from dataclasses import dataclass, field
from functools import wraps
from math import ceil
from typing import Any, Callable, Optional, Union
from uuid import UUID

from haven.config.logging_config import get_logger, operation_context
from haven.domain.enums.safety_enums import CrisisResourceType
from haven.domain.enums.session_enums import LifecycleState, TherapyPhase
from haven.domain.exceptions import NotFoundError, ValidationError
from haven.domain.models.measurements import SetFeedback
from haven.domain.models.safety_models import (
    CrisisResource,
    GroundingTechnique,
    SafetyAssessment,
    SafetyCheck,
)
from haven.domain.models.session import TherapySession
from haven.domain.models.session_metrics import SessionMetrics
from haven.domain.models.stimulation_set import StimulationSet
from haven.infrastructure.persistence.store import PersistenceStore
from haven.services.safety.crisis_resources import CrisisResourceDirectory
from haven.services.safety.intervention_selector import GroundingLibrary
from haven.services.session.set_tracker import EndSetResult, SetTracker, StartSetResult
from haven.services.session.state_machine import (
    CompletionResult,
    EmergencyStopResult,
    SessionStateMachine,
    TransitionResult,
)

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class SessionPage:
    """One page of a user's sessions."""

    items: list[TherapySession] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def pages(self) -> int:
        return ceil(self.total / self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    def to_dict(self) -> dict:
        return {
            "items": [s.to_dict() for s in self.items],
            "pagination": {
                "total": self.total,
                "page": self.page,
                "limit": self.limit,
                "pages": self.pages,
                "has_next": self.has_next,
            },
        }


def session_operation(name: str) -> Callable:
    """Bind session_id, operation name and an operation id to the log context for the call."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(self, session_id: UUID, *args, **kwargs):
            with operation_context(session_id, name):
                return await func(self, session_id, *args, **kwargs)
        return wrapper
    return decorator


class SessionOrchestrator:
    """
    Exposed surface of the session core.

    Usage:
        orchestrator = SessionOrchestrator(store, state_machine, set_tracker, library, directory)
        session = await orchestrator.create_session(user_id, memory_id, 7, 3)
        await orchestrator.start_session(session.id)
        started = await orchestrator.start_set(session.id, {"speed": 1.0})
        ended = await orchestrator.end_set(session.id, {"sud": 5, "voc": 4})
    """

    def __init__(
        self,
        store: PersistenceStore,
        state_machine: SessionStateMachine,
        set_tracker: SetTracker,
        grounding_library: GroundingLibrary,
        crisis_directory: CrisisResourceDirectory,
    ) -> None:
        self.store = store
        self.state_machine = state_machine
        self.set_tracker = set_tracker
        self.grounding_library = grounding_library
        self.crisis_directory = crisis_directory

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def create_session(
        self,
        user_id: UUID,
        target_memory_id: UUID,
        initial_sud: int,
        initial_voc: int,
        preparation_notes: Optional[str] = None,
    ) -> TherapySession:
        return await self.state_machine.create(
            user_id=user_id,
            target_memory_id=target_memory_id,
            initial_sud=initial_sud,
            initial_voc=initial_voc,
            preparation_notes=preparation_notes,
        )

    @session_operation("start")
    async def start_session(self, session_id: UUID) -> TransitionResult:
        return await self.state_machine.start(session_id)

    @session_operation("pause")
    async def pause_session(self, session_id: UUID, reason: Optional[str] = None) -> TherapySession:
        return await self.state_machine.pause(session_id, reason)

    @session_operation("resume")
    async def resume_session(self, session_id: UUID) -> TransitionResult:
        return await self.state_machine.resume(session_id)

    @session_operation("complete")
    async def complete_session(self, session_id: UUID, notes: Optional[str] = None) -> CompletionResult:
        return await self.state_machine.complete(session_id, notes)

    @session_operation("emergency_stop")
    async def emergency_stop(self, session_id: UUID, reason: Optional[str] = None) -> EmergencyStopResult:
        return await self.state_machine.emergency_stop(session_id, reason)

    @session_operation("advance_phase")
    async def advance_to_phase(
        self,
        session_id: UUID,
        next_phase: Union[TherapyPhase, str],
        notes: Optional[str] = None,
    ) -> TherapySession:
        return await self.state_machine.advance_to_phase(session_id, next_phase, notes)

    # =========================================================================
    # Sets
    # =========================================================================

    @session_operation("start_set")
    async def start_set(
        self,
        session_id: UUID,
        stimulation_settings: Optional[dict[str, Any]] = None,
    ) -> StartSetResult:
        return await self.set_tracker.start_set(session_id, stimulation_settings)

    @session_operation("end_set")
    async def end_set(
        self,
        session_id: UUID,
        feedback: Union[SetFeedback, dict[str, Any]],
        agent_observations: Optional[dict[str, Any]] = None,
    ) -> EndSetResult:
        return await self.set_tracker.end_set(session_id, feedback, agent_observations)

    # =========================================================================
    # Safety
    # =========================================================================

    @session_operation("assess")
    async def assess_current_state(self, session_id: UUID) -> SafetyAssessment:
        """
        Run an automatic assessment of the session as it stands.

        Raises:
            NotFoundError: If the session does not exist
        """
        session = await self._require_session(session_id)
        return await self.state_machine.assessment.assess(session.id, session=session)

    @session_operation("manual_check")
    async def trigger_manual_check(
        self,
        session_id: UUID,
        reason: Optional[str] = None,
    ) -> SafetyAssessment:
        return await self.state_machine.trigger_manual_check(session_id, reason)

    @session_operation("safety_history")
    async def get_safety_history(self, session_id: UUID) -> list[SafetyCheck]:
        """All recorded safety checks, newest first."""
        await self._require_session(session_id)
        return await self.store.list_safety_checks(session_id)

    def get_crisis_resources(
        self,
        resource_type: Optional[Union[CrisisResourceType, str]] = None,
    ) -> list[CrisisResource]:
        if resource_type is not None and not isinstance(resource_type, CrisisResourceType):
            try:
                resource_type = CrisisResourceType(resource_type)
            except ValueError:
                raise ValidationError(
                    "Unknown resource type", field="resource_type", value=resource_type
                ) from None
        return self.crisis_directory.list_resources(resource_type)

    def list_grounding_techniques(self, category: Optional[str] = None) -> list[GroundingTechnique]:
        return self.grounding_library.list_techniques(category)

    def report_grounding_effectiveness(self, technique_id: str, score: float) -> GroundingTechnique:
        return self.grounding_library.report_effectiveness(technique_id, score)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_session(self, session_id: UUID) -> TherapySession:
        return await self._require_session(session_id)

    async def list_user_sessions(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int = 20,
        state: Optional[Union[LifecycleState, str]] = None,
    ) -> SessionPage:
        """
        List a user's sessions, newest first.

        Raises:
            ValidationError: If page/limit are out of range or state is unknown
        """
        if page < 1:
            raise ValidationError("page must be 1 or greater", field="page", value=page)
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit", value=limit
            )
        if state is not None and not isinstance(state, LifecycleState):
            try:
                state = LifecycleState(state)
            except ValueError:
                raise ValidationError("Unknown lifecycle state", field="state", value=state) from None

        items, total = await self.store.list_user_sessions(
            user_id, offset=(page - 1) * limit, limit=limit, state=state
        )
        return SessionPage(items=items, total=total, page=page, limit=limit)

    async def list_sets(self, session_id: UUID) -> list[StimulationSet]:
        await self._require_session(session_id)
        return await self.store.list_sets(session_id)

    @session_operation("metrics")
    async def get_session_metrics(self, session_id: UUID) -> SessionMetrics:
        session = await self._require_session(session_id)
        sets = await self.store.list_sets(session_id)
        checks = await self.store.list_safety_checks(session_id)
        return SessionMetrics.build(session, sets, checks, now=self.state_machine.now())

    async def _require_session(self, session_id: UUID) -> TherapySession:
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found", session_id=session_id)
        return session
