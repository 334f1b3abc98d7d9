"""
Risk Evaluation Engine

Derives risk indicators from a session snapshot, aggregates them
into a risk level and maps the level to a recommended action.

SAFETY-CRITICAL: This engine decides whether a session may start,
resume or run another set. All thresholds require clinical
validation.

ARCHITECTURE: The evaluator is a pure function of the snapshot.
It has no side effects; recording, intervention content and
fail-safe handling live in SafetyAssessmentService.
"""

from dataclasses import dataclass, field
from typing import Optional

from haven.config.logging_config import get_logger
from haven.domain.enums.safety_enums import (
    IndicatorSeverity,
    IndicatorType,
    ProfileRiskLevel,
    RiskLevel,
    SafetyAction,
)
from haven.domain.models.safety_models import SafetyIndicator, SessionSnapshot

logger = get_logger(__name__)


# Actions on a recent check that mark the session as having had an emergency
EMERGENCY_ACTIONS = frozenset({
    SafetyAction.EMERGENCY_STOP,
    SafetyAction.PROFESSIONAL_REFERRAL,
})

_PROFILE_SCALE = {
    ProfileRiskLevel.LOW: 1,
    ProfileRiskLevel.MEDIUM: 2,
    ProfileRiskLevel.HIGH: 3,
    ProfileRiskLevel.CRITICAL: 4,
}


@dataclass
class SafetyThresholds:
    """
    Indicator thresholds.

    CLINICAL_VALIDATION_REQUIRED: All threshold values
    require clinical validation before production use.
    """

    # distress: current SUD
    distress_high: int = 8
    distress_critical: int = 9

    # escalation: rise in SUD since session start
    escalation_high: int = 3
    escalation_critical: int = 5

    # overwhelm: elapsed minutes (monitoring signal, not a cutoff)
    duration_medium_minutes: float = 120.0
    duration_high_minutes: float = 180.0

    # Distress below this value alone at HIGH risk is met with grounding
    grounding_distress_ceiling: int = 9


@dataclass
class RiskEvaluation:
    """Outcome of a pure risk evaluation."""

    risk_level: RiskLevel
    recommended_action: SafetyAction
    indicators: list[SafetyIndicator] = field(default_factory=list)


class RiskEvaluator:
    """
    Deterministic indicator-based risk evaluator.

    Aggregation is severity-dominant, not a count:
    1. Any critical indicator -> CRITICAL
    2. Two or more high indicators -> HIGH
    3. Exactly one high, or two or more medium -> MEDIUM
    4. Otherwise -> LOW

    SAFETY_CRITICAL: A single critical indicator outweighs any
    number of lower indicators.

    Usage:
        evaluator = RiskEvaluator()
        evaluation = evaluator.evaluate(snapshot)
    """

    def __init__(self, thresholds: Optional[SafetyThresholds] = None) -> None:
        self.thresholds = thresholds or SafetyThresholds()

    def evaluate(self, snapshot: SessionSnapshot) -> RiskEvaluation:
        """
        Evaluate a session snapshot.

        Args:
            snapshot: Measurements, recent history and profile

        Returns:
            RiskEvaluation with level, action and indicators
        """
        indicators = self.derive_indicators(snapshot)
        risk_level = self.aggregate(indicators)
        action = self.select_action(risk_level, indicators)

        logger.debug(
            "Risk evaluated",
            session_id=str(snapshot.session_id),
            risk_level=risk_level.name,
            action=action.value,
            indicator_count=len(indicators),
        )

        return RiskEvaluation(
            risk_level=risk_level,
            recommended_action=action,
            indicators=indicators,
        )

    def derive_indicators(self, snapshot: SessionSnapshot) -> list[SafetyIndicator]:
        """Derive every indicator whose condition holds."""
        indicators: list[SafetyIndicator] = []

        for indicator in (
            self._distress(snapshot),
            self._escalation(snapshot),
            self._overwhelm(snapshot),
            self._profile_risk(snapshot),
            self._recent_emergency(snapshot),
        ):
            if indicator is not None:
                indicators.append(indicator)

        return indicators

    def _distress(self, snapshot: SessionSnapshot) -> Optional[SafetyIndicator]:
        t = self.thresholds
        sud = snapshot.current_sud
        if sud >= t.distress_critical:
            severity = IndicatorSeverity.CRITICAL
        elif sud >= t.distress_high:
            severity = IndicatorSeverity.HIGH
        else:
            return None
        return SafetyIndicator(
            type=IndicatorType.DISTRESS,
            severity=severity,
            value=sud,
            threshold=t.distress_high,
        )

    def _escalation(self, snapshot: SessionSnapshot) -> Optional[SafetyIndicator]:
        t = self.thresholds
        delta = self.escalation_delta(snapshot)
        if delta >= t.escalation_critical:
            severity = IndicatorSeverity.CRITICAL
        elif delta >= t.escalation_high:
            severity = IndicatorSeverity.HIGH
        else:
            return None
        return SafetyIndicator(
            type=IndicatorType.ESCALATION,
            severity=severity,
            value=delta,
            threshold=t.escalation_high,
        )

    @staticmethod
    def escalation_delta(snapshot: SessionSnapshot) -> int:
        """
        Rise in SUD since the session started.

        Uses the larger of the authoritative current-minus-initial
        difference and the trend series span, so a stale trend can
        never hide escalation.
        """
        delta = snapshot.current_sud - snapshot.initial_sud
        trend = snapshot.sud_trend
        if len(trend) >= 2:
            delta = max(delta, trend[-1] - trend[0])
        return delta

    def _overwhelm(self, snapshot: SessionSnapshot) -> Optional[SafetyIndicator]:
        t = self.thresholds
        minutes = snapshot.elapsed_minutes
        if minutes > t.duration_high_minutes:
            severity = IndicatorSeverity.HIGH
        elif minutes > t.duration_medium_minutes:
            severity = IndicatorSeverity.MEDIUM
        else:
            return None
        return SafetyIndicator(
            type=IndicatorType.OVERWHELM,
            severity=severity,
            value=round(minutes, 2),
            threshold=t.duration_medium_minutes,
        )

    def _profile_risk(self, snapshot: SessionSnapshot) -> Optional[SafetyIndicator]:
        if snapshot.profile is None:
            return None
        level = snapshot.profile.risk_level
        if level == ProfileRiskLevel.CRITICAL:
            severity = IndicatorSeverity.CRITICAL
        elif level == ProfileRiskLevel.HIGH:
            severity = IndicatorSeverity.HIGH
        else:
            return None
        return SafetyIndicator(
            type=IndicatorType.PROFILE_RISK,
            severity=severity,
            value=_PROFILE_SCALE[level],
            threshold=_PROFILE_SCALE[ProfileRiskLevel.HIGH],
        )

    def _recent_emergency(self, snapshot: SessionSnapshot) -> Optional[SafetyIndicator]:
        count = sum(1 for check in snapshot.recent_checks if check.action in EMERGENCY_ACTIONS)
        if count < 1:
            return None
        return SafetyIndicator(
            type=IndicatorType.RECENT_EMERGENCY,
            severity=IndicatorSeverity.CRITICAL,
            value=count,
            threshold=1,
        )

    @staticmethod
    def aggregate(indicators: list[SafetyIndicator]) -> RiskLevel:
        """Aggregate indicators to a risk level by severity dominance."""
        if any(i.severity == IndicatorSeverity.CRITICAL for i in indicators):
            return RiskLevel.CRITICAL

        high = sum(1 for i in indicators if i.severity == IndicatorSeverity.HIGH)
        medium = sum(1 for i in indicators if i.severity == IndicatorSeverity.MEDIUM)

        if high >= 2:
            return RiskLevel.HIGH
        if high == 1 or medium >= 2:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def select_action(
        self,
        risk_level: RiskLevel,
        indicators: list[SafetyIndicator],
    ) -> SafetyAction:
        """
        Map a risk level to a recommended action.

        HIGH is met with grounding only when distress is the sole
        SUD-driven indicator and is below the grounding ceiling;
        any escalation, or distress at the ceiling, means pause.
        """
        if risk_level == RiskLevel.CRITICAL:
            return SafetyAction.EMERGENCY_STOP
        if risk_level == RiskLevel.HIGH:
            sud_driven = [
                i for i in indicators
                if i.type in (IndicatorType.DISTRESS, IndicatorType.ESCALATION)
            ]
            if (
                len(sud_driven) == 1
                and sud_driven[0].type == IndicatorType.DISTRESS
                and sud_driven[0].value < self.thresholds.grounding_distress_ceiling
            ):
                return SafetyAction.GROUNDING
            return SafetyAction.PAUSE
        if risk_level == RiskLevel.MEDIUM:
            return SafetyAction.GROUNDING
        return SafetyAction.CONTINUE
