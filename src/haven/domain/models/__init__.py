"""Domain models package."""

from haven.domain.models.measurements import (
    SUD_MAX,
    SUD_MIN,
    VOC_MAX,
    VOC_MIN,
    SetFeedback,
    validate_sud,
    validate_voc,
)
from haven.domain.models.session import PhaseRecord, TargetMemory, TherapySession
from haven.domain.models.stimulation_set import StimulationSet
from haven.domain.models.safety_models import (
    CrisisResource,
    GroundingTechnique,
    Intervention,
    SafetyAssessment,
    SafetyCheck,
    SafetyIndicator,
    SessionSnapshot,
    UserSafetyProfile,
)
from haven.domain.models.session_metrics import MeasurementPoint, SessionMetrics

__all__ = [
    # Measurements
    "SUD_MAX",
    "SUD_MIN",
    "VOC_MAX",
    "VOC_MIN",
    "SetFeedback",
    "validate_sud",
    "validate_voc",
    # Session models
    "PhaseRecord",
    "TargetMemory",
    "TherapySession",
    "StimulationSet",
    # Safety models
    "CrisisResource",
    "GroundingTechnique",
    "Intervention",
    "SafetyAssessment",
    "SafetyCheck",
    "SafetyIndicator",
    "SessionSnapshot",
    "UserSafetyProfile",
    # Metrics
    "MeasurementPoint",
    "SessionMetrics",
]
