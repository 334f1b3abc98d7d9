"""
Safety Domain Models

Value objects consumed and produced by the safety assessment
engine: indicators, interventions, assessments and the persisted
safety check record.

SAFETY-CRITICAL: Every assessment that does not recommend
CONTINUE must carry an intervention with actionable content.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from haven.domain.clock import utc_now
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
from haven.domain.enums.session_enums import TherapyPhase
from haven.domain.models.stimulation_set import StimulationSet


@dataclass(frozen=True)
class SafetyIndicator:
    """
    A single risk indicator derived from a session snapshot.
    
    Attributes:
        type: Indicator kind
        severity: Indicator severity
        value: Observed value (SUD, delta, minutes, count)
        threshold: Threshold that was crossed
    """
    
    type: IndicatorType
    severity: IndicatorSeverity
    value: float
    threshold: float
    
    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity.name.lower(),
            "value": self.value,
            "threshold": self.threshold,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "SafetyIndicator":
        return cls(
            type=IndicatorType(data["type"]),
            severity=IndicatorSeverity[data["severity"].upper()],
            value=data["value"],
            threshold=data["threshold"],
        )


@dataclass
class UserSafetyProfile:
    """Read-only baseline risk for a user, owned externally."""
    
    user_id: UUID
    risk_level: ProfileRiskLevel = ProfileRiskLevel.LOW
    updated_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class CrisisResource:
    """
    A crisis support contact.
    
    Attributes:
        name: Display name
        type: Contact channel
        contact: Number, short code or URL
        description: What the resource offers
        availability: When it can be reached
    """
    
    name: str
    type: CrisisResourceType
    contact: str
    description: str
    availability: str = "24/7"
    
    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type.value,
            "contact": self.contact,
            "description": self.description,
            "availability": self.availability,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "CrisisResource":
        return cls(
            name=data["name"],
            type=CrisisResourceType(data["type"]),
            contact=data["contact"],
            description=data.get("description", ""),
            availability=data.get("availability", "24/7"),
        )


@dataclass
class GroundingTechnique:
    """
    A guided stabilization technique.
    
    effectiveness is a running mean of reported scores in [0, 1],
    seeded with a clinical prior and weighted by rating_count.
    """
    
    id: str
    name: str
    category: str
    instructions: list[str]
    effectiveness: float
    duration_minutes: int
    rating_count: int = 1
    
    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "instructions": list(self.instructions),
            "effectiveness": round(self.effectiveness, 4),
            "duration_minutes": self.duration_minutes,
            "rating_count": self.rating_count,
        }


@dataclass
class Intervention:
    """
    Concrete content presented to the user for a recommended action.
    
    Attributes:
        type: Intervention kind
        instructions: Ordered user-facing instructions
        resources: Crisis resources (emergency and referral)
        follow_up_required: Whether a clinician/agent must follow up
        estimated_duration_minutes: Expected time to complete
        technique_id: Grounding technique used, if any
        guidance_message: Optional generated supportive sentence
    """
    
    type: InterventionType
    instructions: list[str]
    resources: list[CrisisResource] = field(default_factory=list)
    follow_up_required: bool = False
    estimated_duration_minutes: int = 0
    technique_id: Optional[str] = None
    guidance_message: Optional[str] = None
    
    @property
    def is_actionable(self) -> bool:
        return bool(self.instructions or self.resources)
    
    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "instructions": list(self.instructions),
            "resources": [r.to_dict() for r in self.resources],
            "follow_up_required": self.follow_up_required,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "technique_id": self.technique_id,
            "guidance_message": self.guidance_message,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "Intervention":
        return cls(
            type=InterventionType(data["type"]),
            instructions=list(data.get("instructions", [])),
            resources=[CrisisResource.from_dict(r) for r in data.get("resources", [])],
            follow_up_required=bool(data.get("follow_up_required", False)),
            estimated_duration_minutes=int(data.get("estimated_duration_minutes", 0)),
            technique_id=data.get("technique_id"),
            guidance_message=data.get("guidance_message"),
        )


@dataclass
class SessionSnapshot:
    """
    Assessment input assembled from the store.
    
    Distinct from LifecycleState: this is a point-in-time view of
    the measurements, never a state enum.
    """
    
    session_id: UUID
    user_id: UUID
    initial_sud: int
    current_sud: int
    current_voc: Optional[int]
    elapsed_minutes: float
    phase: Optional[TherapyPhase] = None
    recent_sets: list[StimulationSet] = field(default_factory=list)
    recent_checks: list["SafetyCheck"] = field(default_factory=list)
    profile: Optional[UserSafetyProfile] = None
    sud_trend: list[int] = field(default_factory=list)
    
    def measurements(self) -> dict[str, Any]:
        """Measurements recorded alongside a safety check."""
        return {
            "initial_sud": self.initial_sud,
            "current_sud": self.current_sud,
            "current_voc": self.current_voc,
            "elapsed_minutes": round(self.elapsed_minutes, 2),
            "sud_trend": list(self.sud_trend),
            "recent_set_count": len(self.recent_sets),
            "profile_risk": self.profile.risk_level.value if self.profile else None,
        }


@dataclass
class SafetyAssessment:
    """
    Result of a safety assessment.
    
    SAFETY-CRITICAL: is_fail_safe marks synthetic results produced
    when the pipeline failed. Those never recommend CONTINUE.
    """
    
    session_id: UUID
    risk_level: RiskLevel
    recommended_action: SafetyAction
    indicators: list[SafetyIndicator] = field(default_factory=list)
    intervention: Optional[Intervention] = None
    check_type: SafetyCheckType = SafetyCheckType.AUTOMATIC
    measurements: dict[str, Any] = field(default_factory=dict)
    is_fail_safe: bool = False
    assessed_at: datetime = field(default_factory=utc_now)
    
    @property
    def allows_continue(self) -> bool:
        return self.recommended_action == SafetyAction.CONTINUE
    
    @property
    def requires_emergency_stop(self) -> bool:
        return self.recommended_action == SafetyAction.EMERGENCY_STOP
    
    def to_dict(self) -> dict:
        return {
            "session_id": str(self.session_id),
            "risk_level": self.risk_level.name,
            "recommended_action": self.recommended_action.value,
            "indicators": [i.to_dict() for i in self.indicators],
            "intervention": self.intervention.to_dict() if self.intervention else None,
            "check_type": self.check_type.value,
            "is_fail_safe": self.is_fail_safe,
            "assessed_at": self.assessed_at.isoformat(),
        }


@dataclass
class SafetyCheck:
    """
    Persisted record of an assessment or emergency stop.
    
    Attributes:
        session_id: Session assessed
        check_type: automatic, manual or emergency
        measurements_snapshot: Measurements at assessment time
        risk_level: Aggregated risk
        action: Recommended action
        intervention: Intervention presented, if any
        indicators: Indicators that fired
        notes: Reason text (emergency stops, manual triggers)
    """
    
    session_id: UUID
    check_type: SafetyCheckType
    risk_level: RiskLevel
    action: SafetyAction
    measurements_snapshot: dict[str, Any] = field(default_factory=dict)
    intervention: Optional[Intervention] = None
    indicators: list[SafetyIndicator] = field(default_factory=list)
    notes: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=utc_now)
    
    @classmethod
    def from_assessment(
        cls,
        assessment: SafetyAssessment,
        notes: Optional[str] = None,
    ) -> "SafetyCheck":
        return cls(
            session_id=assessment.session_id,
            check_type=assessment.check_type,
            risk_level=assessment.risk_level,
            action=assessment.recommended_action,
            measurements_snapshot=dict(assessment.measurements),
            intervention=assessment.intervention,
            indicators=list(assessment.indicators),
            notes=notes,
            timestamp=assessment.assessed_at,
        )
    
    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "session_id": str(self.session_id),
            "check_type": self.check_type.value,
            "risk_level": self.risk_level.name,
            "action": self.action.value,
            "measurements_snapshot": self.measurements_snapshot,
            "intervention": self.intervention.to_dict() if self.intervention else None,
            "indicators": [i.to_dict() for i in self.indicators],
            "timestamp": self.timestamp.isoformat(),
        }
