"""
HAVEN Domain Layer

Core entities, value objects and the error taxonomy.
These models represent the domain logic independent of infrastructure.
"""

from haven.domain.enums import (
    LifecycleState,
    RiskLevel,
    SafetyAction,
    TherapyPhase,
)
from haven.domain.models import (
    SafetyAssessment,
    SafetyCheck,
    SetFeedback,
    StimulationSet,
    TherapySession,
)

__all__ = [
    "LifecycleState",
    "RiskLevel",
    "SafetyAction",
    "TherapyPhase",
    "SafetyAssessment",
    "SafetyCheck",
    "SetFeedback",
    "StimulationSet",
    "TherapySession",
]
