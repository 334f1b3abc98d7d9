"""Safety services package - risk evaluation, interventions and assessment."""

from haven.services.safety.risk_engine import (
    RiskEvaluation,
    RiskEvaluator,
    SafetyThresholds,
)
from haven.services.safety.crisis_resources import CrisisResourceDirectory
from haven.services.safety.intervention_selector import (
    GroundingLibrary,
    InterventionSelector,
)
from haven.services.safety.assessment_service import SafetyAssessmentService

__all__ = [
    # Risk engine
    "RiskEvaluation",
    "RiskEvaluator",
    "SafetyThresholds",
    # Resources and interventions
    "CrisisResourceDirectory",
    "GroundingLibrary",
    "InterventionSelector",
    # Assessment pipeline
    "SafetyAssessmentService",
]
