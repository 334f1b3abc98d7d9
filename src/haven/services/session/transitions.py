"""
Lifecycle and Phase Transition Tables

Allowed lifecycle edges and phase-entry predicates.

CLINICAL_VALIDATION_REQUIRED: Phase gate thresholds follow the
standard protocol and need clinical sign-off.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Union

from haven.domain.enums.session_enums import LifecycleState, TherapyPhase
from haven.domain.exceptions import PhaseGateError, StateTransitionError, ValidationError
from haven.domain.models.session import TherapySession


ALLOWED_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.PREPARING: frozenset({
        LifecycleState.IN_PROGRESS,
        LifecycleState.COMPLETED,
        LifecycleState.EMERGENCY_STOPPED,
    }),
    LifecycleState.IN_PROGRESS: frozenset({
        LifecycleState.PAUSED,
        LifecycleState.COMPLETED,
        LifecycleState.EMERGENCY_STOPPED,
    }),
    LifecycleState.PAUSED: frozenset({
        LifecycleState.IN_PROGRESS,
        LifecycleState.COMPLETED,
        LifecycleState.EMERGENCY_STOPPED,
    }),
    LifecycleState.COMPLETED: frozenset(),
    LifecycleState.EMERGENCY_STOPPED: frozenset(),
}


def ensure_mutable(session: TherapySession, operation: str) -> None:
    """Refuse any mutation of a terminal session."""
    if session.is_terminal:
        raise StateTransitionError(
            f"Cannot {operation}: session is {session.lifecycle_state.value}",
            session_id=session.id,
            state=session.lifecycle_state.value,
            operation=operation,
        )


def ensure_transition(
    session: TherapySession,
    target: LifecycleState,
    operation: str,
    source: Optional[LifecycleState] = None,
) -> None:
    """
    Check a lifecycle edge.
    
    Args:
        session: Session to transition
        target: Desired state
        operation: Operation name for the error
        source: Required current state, when the operation has one
    
    Raises:
        StateTransitionError: If the edge is not allowed
    """
    ensure_mutable(session, operation)
    current = session.lifecycle_state
    if (source is not None and current != source) or target not in ALLOWED_TRANSITIONS[current]:
        raise StateTransitionError(
            f"Cannot {operation}: {current.value} -> {target.value} is not allowed",
            session_id=session.id,
            state=current.value,
            target=target.value,
            operation=operation,
        )


@dataclass(frozen=True)
class PhaseGate:
    """Entry predicate for a phase."""
    
    predicate: Callable[[TherapySession], bool]
    requirement: str


PHASE_GATES: dict[TherapyPhase, PhaseGate] = {
    TherapyPhase.DESENSITIZATION: PhaseGate(
        predicate=lambda s: s.current_sud > 0,
        requirement="current SUD must be above 0",
    ),
    TherapyPhase.INSTALLATION: PhaseGate(
        predicate=lambda s: s.current_sud <= 2,
        requirement="current SUD must be 2 or lower",
    ),
    TherapyPhase.BODY_SCAN: PhaseGate(
        predicate=lambda s: s.current_voc is not None and s.current_voc >= 6,
        requirement="current VOC must be 6 or higher",
    ),
}


def parse_phase(value: Union[TherapyPhase, str]) -> TherapyPhase:
    """
    Coerce a phase name.
    
    Raises:
        ValidationError: If the value names no phase
    """
    if isinstance(value, TherapyPhase):
        return value
    try:
        return TherapyPhase(str(value).lower())
    except ValueError:
        raise ValidationError("Unknown phase", field="phase", value=value) from None


def check_phase_target(session: TherapySession, target: TherapyPhase) -> None:
    """
    Check that target is the immediate successor of the current phase.
    
    Raises:
        ValidationError: If target would skip, repeat or go backwards
    """
    successor = session.phase.successor()
    if target != successor:
        raise ValidationError(
            "Phase can only advance to its immediate successor",
            field="phase",
            current=session.phase.value,
            target=target.value,
            expected=successor.value if successor else "none",
        )


def check_phase_gate(session: TherapySession, target: TherapyPhase) -> None:
    """
    Evaluate the entry predicate for a phase.
    
    Raises:
        PhaseGateError: If the predicate is not met
    """
    gate = PHASE_GATES.get(target)
    if gate is not None and not gate.predicate(session):
        raise PhaseGateError(
            f"Cannot enter {target.value}: {gate.requirement}",
            session_id=session.id,
            target=target.value,
            current_sud=session.current_sud,
            current_voc=session.current_voc,
        )


def ensure_state(session: TherapySession, expected: LifecycleState, operation: str) -> None:
    """
    Require a specific lifecycle state for a non-transition operation.
    
    Raises:
        StateTransitionError: If the session is terminal or in another state
    """
    ensure_mutable(session, operation)
    if session.lifecycle_state != expected:
        raise StateTransitionError(
            f"Cannot {operation}: session is {session.lifecycle_state.value}, "
            f"expected {expected.value}",
            session_id=session.id,
            state=session.lifecycle_state.value,
            operation=operation,
        )
