"""
Unit Tests for Session Domain Models
"""

import pytest
from datetime import datetime, timedelta
from uuid import uuid4

from haven.domain.enums.safety_enums import RiskLevel, SafetyAction, SafetyCheckType
from haven.domain.enums.session_enums import LifecycleState, TherapyPhase
from haven.domain.exceptions import ValidationError
from haven.domain.models.measurements import SetFeedback
from haven.domain.models.safety_models import SafetyCheck
from haven.domain.models.session import PhaseRecord, TherapySession
from haven.domain.models.session_metrics import SessionMetrics
from haven.domain.models.stimulation_set import StimulationSet

T0 = datetime(2026, 1, 1, 9, 0, 0)


class TestSetFeedback:
    
    @pytest.mark.parametrize("sud", [0, 10])
    def test_boundaries_valid(self, sud):
        assert SetFeedback(sud=sud).sud == sud
    
    @pytest.mark.parametrize("kwargs", [
        {"sud": 11},
        {"sud": -1},
        {"sud": 5, "voc": 0},
        {"sud": 5, "voc": 8},
        {"sud": True},
        {"sud": 5.5},
    ])
    def test_out_of_range(self, kwargs):
        with pytest.raises(ValidationError):
            SetFeedback(**kwargs)
    
    def test_concern_description(self):
        feedback = SetFeedback(sud=5, overwhelm=True, dissociation=True)
        
        assert feedback.requires_safety_check
        assert feedback.describe_concern() == "overwhelm and dissociation"
    
    def test_from_dict_requires_sud(self):
        with pytest.raises(ValidationError):
            SetFeedback.from_dict({"voc": 4})


class TestTherapySession:
    
    def test_current_scores_default_to_initial(self):
        session = TherapySession(user_id=uuid4(), target_memory_id=uuid4(), initial_sud=6, initial_voc=2)
        
        assert session.current_sud == 6
        assert session.current_voc == 2
        assert session.lifecycle_state == LifecycleState.PREPARING
        assert session.phase_started_at == session.created_at
    
    def test_elapsed_minutes(self):
        session = TherapySession(user_id=uuid4(), target_memory_id=uuid4(), initial_sud=6, initial_voc=2)
        assert session.elapsed_minutes(T0) == 0.0
        
        session.start_time = T0
        
        assert session.elapsed_minutes(T0 + timedelta(minutes=90)) == 90.0
    
    def test_notes_not_serialized(self):
        session = TherapySession(
            user_id=uuid4(),
            target_memory_id=uuid4(),
            initial_sud=6,
            initial_voc=2,
            preparation_notes="private",
        )
        
        assert "private" not in str(session.to_dict())


class TestPhaseRecord:
    
    def test_completion_before_start_rejected(self):
        with pytest.raises(ValidationError):
            PhaseRecord(
                phase=TherapyPhase.ASSESSMENT,
                started_at=T0,
                completed_at=T0 - timedelta(seconds=1),
            )
    
    def test_dict_restores_record(self):
        record = PhaseRecord(
            phase=TherapyPhase.DESENSITIZATION,
            started_at=T0,
            completed_at=T0 + timedelta(minutes=20),
            notes="steady",
            set_count=6,
        )
        
        assert PhaseRecord.from_dict(record.to_dict()) == record


class TestPhaseOrder:
    
    def test_successors(self):
        assert TherapyPhase.PREPARATION.successor() == TherapyPhase.ASSESSMENT
        assert TherapyPhase.BODY_SCAN.successor() == TherapyPhase.CLOSURE
        assert TherapyPhase.REEVALUATION.successor() is None
    
    @pytest.mark.parametrize("state,terminal", [
        (LifecycleState.PREPARING, False),
        (LifecycleState.PAUSED, False),
        (LifecycleState.COMPLETED, True),
        (LifecycleState.EMERGENCY_STOPPED, True),
    ])
    def test_terminal_states(self, state, terminal):
        assert state.is_terminal is terminal


class TestSessionMetrics:
    
    def test_build_summarizes_sets_and_checks(self):
        session = TherapySession(
            user_id=uuid4(),
            target_memory_id=uuid4(),
            initial_sud=7,
            initial_voc=3,
            current_sud=3,
            current_voc=5,
            start_time=T0,
        )
        closed = StimulationSet(
            session_id=session.id,
            set_number=1,
            phase=TherapyPhase.DESENSITIZATION,
            phase_set_number=1,
            start_time=T0,
        )
        closed.close(T0 + timedelta(seconds=30), SetFeedback(sud=8, voc=3))
        second = StimulationSet(
            session_id=session.id,
            set_number=2,
            phase=TherapyPhase.DESENSITIZATION,
            phase_set_number=2,
            start_time=T0 + timedelta(minutes=1),
        )
        second.close(T0 + timedelta(minutes=2), SetFeedback(sud=3, voc=5))
        interrupted = StimulationSet(
            session_id=session.id,
            set_number=3,
            phase=TherapyPhase.DESENSITIZATION,
            phase_set_number=3,
            start_time=T0 + timedelta(minutes=3),
        )
        interrupted.close(T0 + timedelta(minutes=4))
        checks = [
            SafetyCheck(session.id, SafetyCheckType.AUTOMATIC, RiskLevel.LOW, SafetyAction.CONTINUE),
            SafetyCheck(session.id, SafetyCheckType.AUTOMATIC, RiskLevel.MEDIUM, SafetyAction.GROUNDING),
        ]
        
        metrics = SessionMetrics.build(
            session, [interrupted, second, closed], checks, now=T0 + timedelta(minutes=10)
        )
        
        assert metrics.sud_series == [7, 8, 3]
        assert metrics.voc_series == [3, 3, 5]
        assert metrics.peak_sud == 8
        assert metrics.sud_change == -4
        assert metrics.voc_change == 2
        assert metrics.set_count == 3
        assert metrics.interrupted_sets == 1
        assert metrics.safety_event_count == 1
        assert metrics.duration_seconds == 600
