"""Session services package - lifecycle state machine and set tracking."""

from haven.services.session.locks import SessionLockManager
from haven.services.session.trend_cache import SessionTrendCache
from haven.services.session.transitions import ALLOWED_TRANSITIONS, PHASE_GATES
from haven.services.session.state_machine import (
    CompletionResult,
    EmergencyStopResult,
    SessionStateMachine,
    TransitionResult,
)
from haven.services.session.set_tracker import (
    EndSetResult,
    SetTracker,
    StartSetResult,
)

__all__ = [
    "SessionLockManager",
    "SessionTrendCache",
    "ALLOWED_TRANSITIONS",
    "PHASE_GATES",
    "CompletionResult",
    "EmergencyStopResult",
    "SessionStateMachine",
    "TransitionResult",
    "EndSetResult",
    "SetTracker",
    "StartSetResult",
]
