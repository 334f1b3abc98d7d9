"""
Unit Tests for Risk Evaluator

Tests indicator derivation, severity-dominant aggregation and
action selection.
"""

import pytest
from uuid import uuid4

from haven.domain.enums.safety_enums import (
    IndicatorSeverity,
    IndicatorType,
    ProfileRiskLevel,
    RiskLevel,
    SafetyAction,
    SafetyCheckType,
)
from haven.domain.models.safety_models import (
    SafetyCheck,
    SafetyIndicator,
    SessionSnapshot,
    UserSafetyProfile,
)
from haven.services.safety.risk_engine import RiskEvaluator


@pytest.fixture
def evaluator():
    return RiskEvaluator()


def make_snapshot(**overrides) -> SessionSnapshot:
    values = dict(
        session_id=uuid4(),
        user_id=uuid4(),
        initial_sud=5,
        current_sud=5,
        current_voc=4,
        elapsed_minutes=10.0,
    )
    values.update(overrides)
    return SessionSnapshot(**values)


def indicator(severity: IndicatorSeverity, kind: IndicatorType = IndicatorType.OVERWHELM):
    return SafetyIndicator(type=kind, severity=severity, value=1, threshold=1)


def types_of(evaluation) -> dict:
    return {i.type: i.severity for i in evaluation.indicators}


class TestIndicatorDerivation:
    """Tests for each indicator rule."""
    
    def test_calm_session_has_no_indicators(self, evaluator):
        """A calm, short session should derive nothing and continue."""
        evaluation = evaluator.evaluate(make_snapshot(initial_sud=7, current_sud=7))
        
        assert evaluation.indicators == []
        assert evaluation.risk_level == RiskLevel.LOW
        assert evaluation.recommended_action == SafetyAction.CONTINUE
    
    @pytest.mark.parametrize("sud,severity", [
        (7, None),
        (8, IndicatorSeverity.HIGH),
        (9, IndicatorSeverity.CRITICAL),
        (10, IndicatorSeverity.CRITICAL),
    ])
    def test_distress_thresholds(self, evaluator, sud, severity):
        """Distress is high at 8 and critical from 9."""
        evaluation = evaluator.evaluate(make_snapshot(initial_sud=sud, current_sud=sud))
        
        assert types_of(evaluation).get(IndicatorType.DISTRESS) == severity
    
    @pytest.mark.parametrize("current,severity", [
        (6, None),
        (7, None),
        (8, IndicatorSeverity.HIGH),
        (9, IndicatorSeverity.HIGH),
        (10, IndicatorSeverity.CRITICAL),
    ])
    def test_escalation_thresholds(self, evaluator, current, severity):
        """Escalation from initial SUD 5 is high at +3 and critical at +5."""
        evaluation = evaluator.evaluate(make_snapshot(initial_sud=5, current_sud=current))
        
        assert types_of(evaluation).get(IndicatorType.ESCALATION) == severity
    
    def test_decrease_is_not_escalation(self, evaluator):
        """Falling SUD never produces an escalation indicator."""
        evaluation = evaluator.evaluate(make_snapshot(initial_sud=7, current_sud=2))
        
        assert IndicatorType.ESCALATION not in types_of(evaluation)
    
    def test_trend_span_counts_toward_escalation(self, evaluator):
        """The trend series span is used when it exceeds current minus initial."""
        snapshot = make_snapshot(initial_sud=4, current_sud=6, sud_trend=[3, 5, 6])
        
        assert evaluator.escalation_delta(snapshot) == 3
    
    @pytest.mark.parametrize("minutes,severity", [
        (120.0, None),
        (121.0, IndicatorSeverity.MEDIUM),
        (180.0, IndicatorSeverity.MEDIUM),
        (181.0, IndicatorSeverity.HIGH),
    ])
    def test_overwhelm_duration(self, evaluator, minutes, severity):
        """Long sessions raise a duration-based overwhelm indicator."""
        evaluation = evaluator.evaluate(make_snapshot(elapsed_minutes=minutes))
        
        assert types_of(evaluation).get(IndicatorType.OVERWHELM) == severity
    
    @pytest.mark.parametrize("level,severity", [
        (ProfileRiskLevel.LOW, None),
        (ProfileRiskLevel.MEDIUM, None),
        (ProfileRiskLevel.HIGH, IndicatorSeverity.HIGH),
        (ProfileRiskLevel.CRITICAL, IndicatorSeverity.CRITICAL),
    ])
    def test_profile_risk(self, evaluator, level, severity):
        profile = UserSafetyProfile(user_id=uuid4(), risk_level=level)
        evaluation = evaluator.evaluate(make_snapshot(profile=profile))
        
        assert types_of(evaluation).get(IndicatorType.PROFILE_RISK) == severity
    
    @pytest.mark.parametrize("action,expected", [
        (SafetyAction.EMERGENCY_STOP, True),
        (SafetyAction.PROFESSIONAL_REFERRAL, True),
        (SafetyAction.PAUSE, False),
        (SafetyAction.GROUNDING, False),
    ])
    def test_recent_emergency(self, evaluator, action, expected):
        """Recent emergency or referral checks raise a critical indicator."""
        check = SafetyCheck(
            session_id=uuid4(),
            check_type=SafetyCheckType.AUTOMATIC,
            risk_level=RiskLevel.HIGH,
            action=action,
        )
        evaluation = evaluator.evaluate(make_snapshot(recent_checks=[check]))
        
        found = types_of(evaluation).get(IndicatorType.RECENT_EMERGENCY)
        assert (found == IndicatorSeverity.CRITICAL) is expected


class TestAggregation:
    """Tests for severity-dominant aggregation."""
    
    def test_single_critical_dominates(self):
        """One critical indicator outweighs any number of lower ones."""
        indicators = [indicator(IndicatorSeverity.MEDIUM)] * 5 + [indicator(IndicatorSeverity.CRITICAL)]
        
        assert RiskEvaluator.aggregate(indicators) == RiskLevel.CRITICAL
    
    def test_two_high_is_high(self):
        indicators = [indicator(IndicatorSeverity.HIGH), indicator(IndicatorSeverity.HIGH)]
        
        assert RiskEvaluator.aggregate(indicators) == RiskLevel.HIGH
    
    def test_one_high_is_medium(self):
        assert RiskEvaluator.aggregate([indicator(IndicatorSeverity.HIGH)]) == RiskLevel.MEDIUM
    
    def test_two_medium_is_medium(self):
        indicators = [indicator(IndicatorSeverity.MEDIUM), indicator(IndicatorSeverity.MEDIUM)]
        
        assert RiskEvaluator.aggregate(indicators) == RiskLevel.MEDIUM
    
    def test_many_medium_never_exceed_medium(self):
        """Counting lower indicators never escalates past MEDIUM."""
        indicators = [indicator(IndicatorSeverity.MEDIUM)] * 10
        
        assert RiskEvaluator.aggregate(indicators) == RiskLevel.MEDIUM
    
    def test_single_medium_is_low(self):
        assert RiskEvaluator.aggregate([indicator(IndicatorSeverity.MEDIUM)]) == RiskLevel.LOW
    
    def test_empty_is_low(self):
        assert RiskEvaluator.aggregate([]) == RiskLevel.LOW


class TestActionSelection:
    """Tests for risk level to action mapping."""
    
    def test_distress_and_escalation_high_is_high_not_critical(self, evaluator):
        """SUD 5 -> 8 yields two high indicators: HIGH risk, pause."""
        evaluation = evaluator.evaluate(make_snapshot(initial_sud=5, current_sud=8))
        
        assert types_of(evaluation) == {
            IndicatorType.DISTRESS: IndicatorSeverity.HIGH,
            IndicatorType.ESCALATION: IndicatorSeverity.HIGH,
        }
        assert evaluation.risk_level == RiskLevel.HIGH
        assert evaluation.recommended_action == SafetyAction.PAUSE
    
    def test_critical_distress_requires_emergency_stop(self, evaluator):
        """Current SUD 9 is critical and recommends an emergency stop."""
        evaluation = evaluator.evaluate(make_snapshot(initial_sud=9, current_sud=9))
        
        assert evaluation.risk_level == RiskLevel.CRITICAL
        assert evaluation.recommended_action == SafetyAction.EMERGENCY_STOP
    
    def test_high_with_distress_only_grounds(self, evaluator):
        """HIGH from distress plus a non-SUD indicator is met with grounding."""
        profile = UserSafetyProfile(user_id=uuid4(), risk_level=ProfileRiskLevel.HIGH)
        evaluation = evaluator.evaluate(
            make_snapshot(initial_sud=8, current_sud=8, profile=profile)
        )
        
        assert evaluation.risk_level == RiskLevel.HIGH
        assert evaluation.recommended_action == SafetyAction.GROUNDING
    
    def test_medium_grounds(self, evaluator):
        """A single high indicator means MEDIUM risk and grounding."""
        evaluation = evaluator.evaluate(make_snapshot(initial_sud=8, current_sud=8))
        
        assert evaluation.risk_level == RiskLevel.MEDIUM
        assert evaluation.recommended_action == SafetyAction.GROUNDING
    
    def test_evaluation_is_deterministic(self, evaluator):
        snapshot = make_snapshot(initial_sud=5, current_sud=8, elapsed_minutes=150.0)
        
        first = evaluator.evaluate(snapshot)
        second = evaluator.evaluate(snapshot)
        
        assert first == second
