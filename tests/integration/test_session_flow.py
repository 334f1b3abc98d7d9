"""
Integration Tests - Session Flow

Runs complete sessions through the orchestrator against both the
in-memory store and the SQL store (SQLite via aiosqlite).
"""

import pytest
from uuid import uuid4

from haven.config import Settings
from haven.config.settings import DatabaseSettings
from haven.domain.enums.safety_enums import SafetyAction, SafetyCheckType
from haven.domain.enums.session_enums import PHASE_ORDER, LifecycleState, TherapyPhase
from haven.domain.exceptions import ConflictError, SafetyBlockedError
from haven.domain.models.session import TargetMemory
from haven.infrastructure.events.broadcaster import InMemoryEventBroadcaster, SessionEventType
from haven.infrastructure.llm.static_provider import StaticGuidanceProvider
from haven.main import create_core, create_store


@pytest.fixture(params=["memory", "sql"])
async def core(request, tmp_path, clock):
    settings = Settings(
        env="development",
        persistence_backend=request.param,
        guidance_provider="static",
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'haven.db'}"),
    )
    store = await create_store(settings)
    core = create_core(
        settings,
        store,
        broadcaster=InMemoryEventBroadcaster(),
        guidance=StaticGuidanceProvider(),
        clock=clock,
    )
    yield core
    await core.shutdown()


@pytest.fixture
async def memory(core, user_id):
    return await core.store.save_target_memory(TargetMemory(user_id=user_id, description="memory"))


class TestSessionFlowIntegration:
    """Integration tests for complete sessions."""
    
    async def test_full_protocol_resolves_memory(self, core, memory, user_id, clock):
        """Walk every phase with falling distress and complete with resolution."""
        orchestrator = core.orchestrator
        session = await orchestrator.create_session(user_id, memory.id, 7, 3)
        started = await orchestrator.start_session(session.id)
        assert started.safety_assessment.recommended_action == SafetyAction.CONTINUE
        
        feedback_by_phase = {
            TherapyPhase.PREPARATION: [{"sud": 6, "voc": 3}],
            TherapyPhase.ASSESSMENT: [{"sud": 6, "voc": 3}],
            TherapyPhase.DESENSITIZATION: [{"sud": 4, "voc": 4}, {"sud": 2, "voc": 5}],
            TherapyPhase.INSTALLATION: [{"sud": 1, "voc": 6}],
            TherapyPhase.BODY_SCAN: [{"sud": 1, "voc": 7}],
            TherapyPhase.CLOSURE: [],
            TherapyPhase.REEVALUATION: [],
        }
        
        for phase in PHASE_ORDER:
            for feedback in feedback_by_phase[phase]:
                clock.advance(minutes=2)
                await orchestrator.start_set(session.id)
                clock.advance(seconds=45)
                await orchestrator.end_set(session.id, feedback)
            successor = phase.successor()
            if successor is not None:
                clock.advance(minutes=1)
                await orchestrator.advance_to_phase(session.id, successor, f"{phase.value} done")
        
        result = await orchestrator.complete_session(session.id, "resolved")
        
        assert result.target_memory_resolved
        completed = result.session
        assert completed.lifecycle_state == LifecycleState.COMPLETED
        assert completed.phase == TherapyPhase.REEVALUATION
        assert [r.phase for r in completed.phase_history] == list(PHASE_ORDER[:-1])
        assert completed.get_phase_record(TherapyPhase.DESENSITIZATION).set_count == 2
        
        sets = await orchestrator.list_sets(session.id)
        assert [s.set_number for s in sets] == [1, 2, 3, 4, 5, 6]
        assert all(s.duration_seconds == 45 for s in sets)
        
        stored_memory = await core.store.get_target_memory(memory.id)
        assert stored_memory.is_resolved
        
        metrics = await orchestrator.get_session_metrics(session.id)
        assert metrics.sud_series == [7, 6, 6, 4, 2, 1, 1]
        assert metrics.safety_event_count == 0
        
        page = await orchestrator.list_user_sessions(user_id, state=LifecycleState.COMPLETED)
        assert page.total == 1
    
    async def test_emergency_stop_mid_set(self, core, memory, user_id, clock):
        orchestrator = core.orchestrator
        session = await orchestrator.create_session(user_id, memory.id, 5, 3)
        await orchestrator.start_session(session.id)
        clock.advance(minutes=1)
        await orchestrator.start_set(session.id)
        clock.advance(seconds=20)
        
        result = await orchestrator.emergency_stop(session.id, "user distressed")
        
        assert result.session.lifecycle_state == LifecycleState.EMERGENCY_STOPPED
        assert result.intervention.resources
        sets = await orchestrator.list_sets(session.id)
        assert sets[0].interrupted
        assert sets[0].duration_seconds == 20
        history = await orchestrator.get_safety_history(session.id)
        assert history[0].check_type == SafetyCheckType.EMERGENCY
        assert history[0].notes == "user distressed"
        
        alerts = core.broadcaster.get_events(session.id, SessionEventType.SAFETY_ALERT)
        assert alerts
        
        # A new session is allowed once the previous one is terminal
        replacement = await orchestrator.create_session(user_id, memory.id, 5, 3)
        assert replacement.lifecycle_state == LifecycleState.PREPARING
    
    async def test_escalation_blocks_and_recovers(self, core, memory, user_id, clock):
        """Critical distress blocks sets; the user can still pause and emergency stop."""
        orchestrator = core.orchestrator
        session = await orchestrator.create_session(user_id, memory.id, 7, 3)
        await orchestrator.start_session(session.id)
        await orchestrator.start_set(session.id)
        clock.advance(seconds=30)
        await orchestrator.end_set(session.id, {"sud": 10})
        
        with pytest.raises(SafetyBlockedError):
            await orchestrator.start_set(session.id)
        
        await orchestrator.pause_session(session.id, "too much")
        with pytest.raises(SafetyBlockedError):
            await orchestrator.resume_session(session.id)
        
        clock.advance(minutes=1)
        result = await orchestrator.emergency_stop(session.id)
        assert result.session.lifecycle_state == LifecycleState.EMERGENCY_STOPPED
    
    async def test_second_active_session_rejected(self, core, memory, user_id):
        await core.orchestrator.create_session(user_id, memory.id, 5, 3)
        
        with pytest.raises(ConflictError):
            await core.orchestrator.create_session(user_id, memory.id, 5, 3)
    
    async def test_sessions_are_isolated_per_user(self, core, memory, user_id):
        other_user = uuid4()
        other_memory = await core.store.save_target_memory(TargetMemory(user_id=other_user))
        
        await core.orchestrator.create_session(user_id, memory.id, 5, 3)
        await core.orchestrator.create_session(other_user, other_memory.id, 5, 3)
        
        page = await core.orchestrator.list_user_sessions(other_user)
        assert page.total == 1
