"""
Domain Error Taxonomy

Typed errors surfaced by the session core. Validation, not-found,
conflict, safety-blocked, phase-gate and state-transition errors
reach the caller untouched. Persistence errors during authoritative
mutations are surfaced; during assessment recording they are logged
and swallowed by the assessment service.
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from haven.domain.models.safety_models import SafetyAssessment


class HavenError(Exception):
    """Base exception for all session core errors."""
    
    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
    
    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": {k: str(v) for k, v in self.details.items()},
        }


class ValidationError(HavenError):
    """Out-of-range SUD/VOC, malformed feedback or invalid phase target."""


class NotFoundError(HavenError):
    """Session, set or target memory missing."""


class ConflictError(HavenError):
    """Duplicate active session, set already closed, set still open."""


class StateTransitionError(HavenError):
    """Illegal lifecycle edge, including any mutation of a terminal session."""


class PhaseGateError(HavenError):
    """Phase-entry predicate not met."""


class PersistenceError(HavenError):
    """Underlying store failure."""


class SafetyBlockedError(HavenError):
    """
    Operation refused by the safety assessment engine.
    
    SAFETY_NOTE: Always carries the assessment, whose intervention
    holds actionable content (grounding steps or crisis resources).
    """
    
    def __init__(
        self,
        message: str,
        assessment: "SafetyAssessment",
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            risk_level=assessment.risk_level.name,
            action=assessment.recommended_action.value,
            operation=operation or "",
        )
        self.assessment = assessment
        self.operation = operation
    
    @property
    def intervention(self):
        return self.assessment.intervention
    
    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.assessment.intervention is not None:
            data["intervention"] = self.assessment.intervention.to_dict()
        return data
