"""
Session Lifecycle and Phase Enumerations

Defines the lifecycle states of a session and the seven ordered
phases of the reprocessing protocol.
"""

from enum import StrEnum
from typing import Optional


class LifecycleState(StrEnum):
    """
    Session lifecycle states.
    
    PREPARING -> IN_PROGRESS <-> PAUSED -> COMPLETED | EMERGENCY_STOPPED.
    COMPLETED and EMERGENCY_STOPPED are terminal and irreversible.
    """
    
    PREPARING = "preparing"
    """Session created, not yet started."""
    
    IN_PROGRESS = "in_progress"
    """Session running; sets may be started."""
    
    PAUSED = "paused"
    """Session temporarily halted."""
    
    COMPLETED = "completed"
    """Session ended normally."""
    
    EMERGENCY_STOPPED = "emergency_stopped"
    """
    Session halted for safety.
    
    SAFETY_NOTE: Always accompanied by an emergency safety check
    record and crisis resources presented to the user.
    """
    
    @property
    def is_terminal(self) -> bool:
        return self in (LifecycleState.COMPLETED, LifecycleState.EMERGENCY_STOPPED)


NON_TERMINAL_STATES: frozenset[LifecycleState] = frozenset({
    LifecycleState.PREPARING,
    LifecycleState.IN_PROGRESS,
    LifecycleState.PAUSED,
})


class TherapyPhase(StrEnum):
    """
    Protocol phases, strictly ordered.
    
    Progression only moves to the immediate successor.
    """
    
    PREPARATION = "preparation"
    ASSESSMENT = "assessment"
    DESENSITIZATION = "desensitization"
    INSTALLATION = "installation"
    BODY_SCAN = "body_scan"
    CLOSURE = "closure"
    REEVALUATION = "reevaluation"
    
    @property
    def order(self) -> int:
        return PHASE_ORDER.index(self)
    
    def successor(self) -> Optional["TherapyPhase"]:
        """Get the next phase, or None for the final phase."""
        index = self.order
        if index + 1 < len(PHASE_ORDER):
            return PHASE_ORDER[index + 1]
        return None


PHASE_ORDER: tuple[TherapyPhase, ...] = (
    TherapyPhase.PREPARATION,
    TherapyPhase.ASSESSMENT,
    TherapyPhase.DESENSITIZATION,
    TherapyPhase.INSTALLATION,
    TherapyPhase.BODY_SCAN,
    TherapyPhase.CLOSURE,
    TherapyPhase.REEVALUATION,
)
