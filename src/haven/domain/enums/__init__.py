"""Domain enumerations package."""

from haven.domain.enums.session_enums import (
    NON_TERMINAL_STATES,
    PHASE_ORDER,
    LifecycleState,
    TherapyPhase,
)
from haven.domain.enums.safety_enums import (
    CrisisResourceType,
    IndicatorSeverity,
    IndicatorType,
    InterventionType,
    ProfileRiskLevel,
    RiskLevel,
    SafetyAction,
    SafetyCheckType,
)

__all__ = [
    "NON_TERMINAL_STATES",
    "PHASE_ORDER",
    "LifecycleState",
    "TherapyPhase",
    "CrisisResourceType",
    "IndicatorSeverity",
    "IndicatorType",
    "InterventionType",
    "ProfileRiskLevel",
    "RiskLevel",
    "SafetyAction",
    "SafetyCheckType",
]
