"""
Integration Tests - SQL Store

Exercises SqlAlchemyPersistenceStore against a file-backed SQLite
database: storage-level uniqueness, composite commits and JSON
round trips.
"""

import pytest
from datetime import datetime, timedelta
from uuid import uuid4

from haven.config.settings import DatabaseSettings
from haven.domain.enums.safety_enums import (
    ProfileRiskLevel,
    RiskLevel,
    SafetyAction,
    SafetyCheckType,
)
from haven.domain.enums.session_enums import LifecycleState, TherapyPhase
from haven.domain.exceptions import ConflictError, NotFoundError
from haven.domain.models.measurements import SetFeedback
from haven.domain.models.safety_models import SafetyCheck, UserSafetyProfile
from haven.domain.models.session import PhaseRecord, TargetMemory, TherapySession
from haven.domain.models.stimulation_set import StimulationSet
from haven.infrastructure.database import DatabaseManager, SqlAlchemyPersistenceStore

T0 = datetime(2026, 1, 1, 9, 0, 0)


@pytest.fixture
async def sql_store(tmp_path):
    db = DatabaseManager(DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"))
    await db.initialize()
    await db.create_schema()
    store = SqlAlchemyPersistenceStore(db)
    yield store
    await store.close()


@pytest.fixture
async def memory(sql_store):
    return await sql_store.save_target_memory(TargetMemory(user_id=uuid4(), description="m"))


def make_session(memory: TargetMemory, **overrides) -> TherapySession:
    fields = dict(
        user_id=memory.user_id,
        target_memory_id=memory.id,
        initial_sud=7,
        initial_voc=3,
        created_at=T0,
        updated_at=T0,
    )
    fields.update(overrides)
    return TherapySession(**fields)


async def start(store, session: TherapySession) -> TherapySession:
    session.lifecycle_state = LifecycleState.IN_PROGRESS
    session.start_time = T0
    session.phase_started_at = T0
    return await store.update_session(session)


class TestSessionRows:
    """Session persistence and uniqueness."""
    
    async def test_round_trip_with_phase_history(self, sql_store, memory):
        session = await start(sql_store, await sql_store.create_session(make_session(memory)))
        session.phase_history.append(PhaseRecord(
            phase=TherapyPhase.PREPARATION,
            started_at=T0,
            completed_at=T0 + timedelta(minutes=5),
            notes="ready",
            set_count=2,
        ))
        session.phase = TherapyPhase.ASSESSMENT
        session.current_sud = 6
        await sql_store.update_session(session)
        
        loaded = await sql_store.get_session(session.id)
        
        assert loaded.phase == TherapyPhase.ASSESSMENT
        assert loaded.lifecycle_state == LifecycleState.IN_PROGRESS
        assert loaded.current_sud == 6
        record = loaded.get_phase_record(TherapyPhase.PREPARATION)
        assert record.notes == "ready"
        assert record.set_count == 2
        assert record.completed_at == T0 + timedelta(minutes=5)
    
    async def test_second_active_session_conflicts(self, sql_store, memory):
        await sql_store.create_session(make_session(memory))
        
        with pytest.raises(ConflictError):
            await sql_store.create_session(make_session(memory))
    
    async def test_terminal_session_frees_the_slot(self, sql_store, memory):
        session = await sql_store.create_session(make_session(memory))
        session.lifecycle_state = LifecycleState.COMPLETED
        session.end_time = T0
        await sql_store.commit_completion(session, resolve_target_memory=False)
        
        replacement = await sql_store.create_session(make_session(memory))
        
        assert replacement.lifecycle_state == LifecycleState.PREPARING
    
    async def test_get_missing_session_returns_none(self, sql_store):
        assert await sql_store.get_session(uuid4()) is None
    
    async def test_update_missing_session_raises(self, sql_store, memory):
        with pytest.raises(NotFoundError):
            await sql_store.update_session(make_session(memory))
    
    async def test_list_user_sessions_newest_first(self, sql_store, memory):
        first = make_session(memory, created_at=T0)
        first.lifecycle_state = LifecycleState.COMPLETED
        await sql_store.create_session(first)
        second = await sql_store.create_session(
            make_session(memory, created_at=T0 + timedelta(hours=1))
        )
        
        items, total = await sql_store.list_user_sessions(memory.user_id, offset=0, limit=10)
        assert total == 2
        assert [s.id for s in items] == [second.id, first.id]
        
        items, total = await sql_store.list_user_sessions(
            memory.user_id, offset=0, limit=10, state=LifecycleState.COMPLETED
        )
        assert total == 1
        assert items[0].id == first.id


class TestSetRows:
    """Set persistence and uniqueness."""
    
    async def test_begin_and_close_round_trip(self, sql_store, memory):
        session = await start(sql_store, await sql_store.create_session(make_session(memory)))
        session.last_set_number = 1
        session.current_set_number = 1
        opened = await sql_store.begin_set(session, StimulationSet(
            session_id=session.id,
            set_number=1,
            phase=session.phase,
            phase_set_number=1,
            start_time=T0,
            stimulation_settings={"speed": 1.2},
        ))
        assert (await sql_store.get_open_set(session.id)).id == opened.id
        
        opened.close(T0 + timedelta(seconds=40), SetFeedback(sud=5, voc=4, overwhelm=True))
        session.current_sud = 5
        await sql_store.close_set(session, opened)
        
        assert await sql_store.get_open_set(session.id) is None
        last = await sql_store.get_last_set(session.id)
        assert last.duration_seconds == 40
        assert last.user_feedback.sud == 5
        assert last.user_feedback.overwhelm
        assert last.stimulation_settings == {"speed": 1.2}
        assert (await sql_store.get_session(session.id)).last_set_number == 1
    
    async def test_duplicate_set_number_conflicts(self, sql_store, memory):
        session = await start(sql_store, await sql_store.create_session(make_session(memory)))
        first = StimulationSet(
            session_id=session.id, set_number=1, phase=session.phase, phase_set_number=1,
            start_time=T0,
        )
        await sql_store.begin_set(session, first)
        first.close(T0 + timedelta(seconds=30), SetFeedback(sud=6))
        await sql_store.close_set(session, first)
        
        with pytest.raises(ConflictError):
            await sql_store.begin_set(session, StimulationSet(
                session_id=session.id, set_number=1, phase=session.phase, phase_set_number=2,
                start_time=T0 + timedelta(minutes=1),
            ))
    
    async def test_second_open_set_conflicts(self, sql_store, memory):
        session = await start(sql_store, await sql_store.create_session(make_session(memory)))
        await sql_store.begin_set(session, StimulationSet(
            session_id=session.id, set_number=1, phase=session.phase, phase_set_number=1,
            start_time=T0,
        ))
        
        with pytest.raises(ConflictError):
            await sql_store.begin_set(session, StimulationSet(
                session_id=session.id, set_number=2, phase=session.phase, phase_set_number=2,
                start_time=T0,
            ))
    
    async def test_recent_sets_limit(self, sql_store, memory):
        session = await start(sql_store, await sql_store.create_session(make_session(memory)))
        for number in range(1, 5):
            stimulation_set = StimulationSet(
                session_id=session.id, set_number=number, phase=session.phase,
                phase_set_number=number, start_time=T0 + timedelta(minutes=number),
            )
            await sql_store.begin_set(session, stimulation_set)
            stimulation_set.close(T0 + timedelta(minutes=number, seconds=30), SetFeedback(sud=5))
            await sql_store.close_set(session, stimulation_set)
        
        recent = await sql_store.get_recent_sets(session.id, 2)
        
        assert sorted(s.set_number for s in recent) == [3, 4]
        assert [s.set_number for s in await sql_store.list_sets(session.id)] == [1, 2, 3, 4]


class TestCompositeCommits:
    """Completion and emergency stop write all rows in one transaction."""
    
    async def _session_with_open_set(self, store, memory):
        session = await start(store, await store.create_session(make_session(memory)))
        await store.begin_set(session, StimulationSet(
            session_id=session.id, set_number=1, phase=session.phase, phase_set_number=1,
            start_time=T0,
        ))
        return session
    
    async def test_completion_resolves_memory_and_interrupts_set(self, sql_store, memory):
        session = await self._session_with_open_set(sql_store, memory)
        session.lifecycle_state = LifecycleState.COMPLETED
        session.end_time = T0 + timedelta(seconds=25)
        
        interrupted = await sql_store.commit_completion(session, resolve_target_memory=True)
        
        assert interrupted.interrupted
        assert interrupted.duration_seconds == 25
        assert (await sql_store.get_target_memory(memory.id)).is_resolved
        assert await sql_store.get_open_set(session.id) is None
        assert (await sql_store.get_session(session.id)).is_terminal
    
    async def test_completion_with_missing_memory_rolls_back(self, sql_store, memory):
        session = await sql_store.create_session(make_session(memory, target_memory_id=uuid4()))
        session.lifecycle_state = LifecycleState.COMPLETED
        session.end_time = T0
        
        with pytest.raises(NotFoundError):
            await sql_store.commit_completion(session, resolve_target_memory=True)
        
        loaded = await sql_store.get_session(session.id)
        assert loaded.lifecycle_state == LifecycleState.PREPARING
    
    async def test_emergency_stop_records_check(self, sql_store, memory):
        session = await self._session_with_open_set(sql_store, memory)
        session.lifecycle_state = LifecycleState.EMERGENCY_STOPPED
        session.end_time = T0 + timedelta(seconds=10)
        check = SafetyCheck(
            session_id=session.id,
            check_type=SafetyCheckType.EMERGENCY,
            risk_level=RiskLevel.CRITICAL,
            action=SafetyAction.EMERGENCY_STOP,
            notes="stop",
            timestamp=session.end_time,
        )
        
        interrupted = await sql_store.commit_emergency_stop(session, check)
        
        assert interrupted.set_number == 1
        checks = await sql_store.list_safety_checks(session.id)
        assert len(checks) == 1
        assert checks[0].risk_level == RiskLevel.CRITICAL
        assert checks[0].notes == "stop"


class TestSafetyRows:
    """Safety checks and profiles."""
    
    async def test_checks_newest_first(self, sql_store, memory):
        session = await sql_store.create_session(make_session(memory))
        for minutes, action in ((0, SafetyAction.CONTINUE), (5, SafetyAction.PAUSE)):
            await sql_store.record_safety_check(SafetyCheck(
                session_id=session.id,
                check_type=SafetyCheckType.AUTOMATIC,
                risk_level=RiskLevel.LOW,
                action=action,
                measurements_snapshot={"current_sud": 7},
                timestamp=T0 + timedelta(minutes=minutes),
            ))
        
        checks = await sql_store.list_safety_checks(session.id)
        recent = await sql_store.get_recent_safety_checks(session.id, 1)
        
        assert [c.action for c in checks] == [SafetyAction.PAUSE, SafetyAction.CONTINUE]
        assert checks[1].measurements_snapshot == {"current_sud": 7}
        assert [c.action for c in recent] == [SafetyAction.PAUSE]
    
    async def test_profile_round_trip(self, sql_store):
        user_id = uuid4()
        assert await sql_store.get_user_safety_profile(user_id) is None
        
        await sql_store.save_user_safety_profile(
            UserSafetyProfile(user_id=user_id, risk_level=ProfileRiskLevel.HIGH, updated_at=T0)
        )
        
        profile = await sql_store.get_user_safety_profile(user_id)
        assert profile.risk_level == ProfileRiskLevel.HIGH
