"""
Safety Enumerations

Risk levels, recommended actions and indicator classification
used by the safety assessment engine.

CLINICAL_REVIEW_REQUIRED: Severity definitions and the actions
they map to need validation by mental health professionals.
"""

from enum import IntEnum, StrEnum


class RiskLevel(IntEnum):
    """
    Aggregated risk classification.
    
    Higher values indicate higher risk requiring more
    immediate intervention.
    """
    
    LOW = 1
    """No concerning indicators. Session may continue."""
    
    MEDIUM = 2
    """One high indicator or several medium ones. Grounding offered."""
    
    HIGH = 3
    """Two or more high indicators. Pause or grounding."""
    
    CRITICAL = 4
    """
    Any critical indicator.
    
    SAFETY_NOTE: Always maps to an emergency stop with
    crisis resources attached.
    """


class SafetyAction(StrEnum):
    """Recommended action produced by an assessment."""
    
    CONTINUE = "continue"
    GROUNDING = "grounding"
    PAUSE = "pause"
    EMERGENCY_STOP = "emergency_stop"
    PROFESSIONAL_REFERRAL = "professional_referral"


class IndicatorType(StrEnum):
    """Kinds of risk indicators derived from a session snapshot."""
    
    DISTRESS = "distress"
    ESCALATION = "escalation"
    OVERWHELM = "overwhelm"
    PROFILE_RISK = "profile_risk"
    RECENT_EMERGENCY = "recent_emergency"


class IndicatorSeverity(IntEnum):
    """Severity of a single indicator. Ordered for dominance checks."""
    
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


class SafetyCheckType(StrEnum):
    """How a safety check was initiated."""
    
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    EMERGENCY = "emergency"


class InterventionType(StrEnum):
    """Concrete intervention content kinds."""
    
    GROUNDING = "grounding"
    PAUSE = "pause"
    EMERGENCY_STOP = "emergency_stop"
    PROFESSIONAL_REFERRAL = "professional_referral"


class ProfileRiskLevel(StrEnum):
    """Baseline risk recorded on a user's safety profile."""
    
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CrisisResourceType(StrEnum):
    """Contact channel of a crisis resource."""
    
    HOTLINE = "hotline"
    TEXT = "text"
    EMERGENCY = "emergency"
    PROFESSIONAL = "professional"
