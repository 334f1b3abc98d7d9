"""
Unit Tests for Session Locks and Trend Cache
"""

import asyncio

import pytest
from uuid import uuid4

from haven.domain.exceptions import StateTransitionError
from haven.domain.models.measurements import SetFeedback
from haven.domain.models.session import TherapySession
from haven.domain.models.stimulation_set import StimulationSet
from haven.domain.enums.session_enums import LifecycleState, TherapyPhase
from haven.infrastructure.persistence import InMemoryPersistenceStore
from haven.services.session import SessionLockManager, SessionTrendCache


class FakeMonotonic:
    def __init__(self):
        self.now = 0.0
    
    def __call__(self):
        return self.now


class TestSessionLockManager:
    
    async def test_operations_are_serialized(self):
        locks = SessionLockManager()
        session_id = uuid4()
        order = []
        
        async def operation(name):
            async with locks.operation(session_id, name):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")
        
        await asyncio.gather(operation("a"), operation("b"))
        
        assert order == ["a-in", "a-out", "b-in", "b-out"]
    
    async def test_pending_emergency_preempts_holder(self):
        locks = SessionLockManager()
        session_id = uuid4()
        
        async def stop():
            async with locks.emergency(session_id):
                pass
        
        async with locks.operation(session_id, "start") as guard:
            task = asyncio.create_task(stop())
            await asyncio.sleep(0)
            assert guard.preempted
            with pytest.raises(StateTransitionError):
                guard.ensure_not_preempted()
        await task
        
        assert not locks.is_emergency_pending(session_id)
    
    async def test_queued_operation_abandoned_when_emergency_pending(self):
        """An operation queued ahead of an emergency stop gives up on acquire."""
        locks = SessionLockManager()
        session_id = uuid4()
        acquired = []
        
        async def queued():
            async with locks.operation(session_id, "pause"):
                acquired.append("pause")
        
        async def stop():
            async with locks.emergency(session_id):
                acquired.append("emergency")
        
        async with locks.operation(session_id, "start"):
            pause_task = asyncio.create_task(queued())
            await asyncio.sleep(0)
            stop_task = asyncio.create_task(stop())
            await asyncio.sleep(0)
        
        with pytest.raises(StateTransitionError):
            await pause_task
        await stop_task
        
        assert acquired == ["emergency"]
    
    async def test_entry_removed_when_last_user_leaves(self):
        """The entry outlives its holder while another operation is queued."""
        locks = SessionLockManager()
        session_id = uuid4()
        
        async def stop():
            async with locks.emergency(session_id):
                assert len(locks) == 1
        
        async with locks.operation(session_id, "start"):
            task = asyncio.create_task(stop())
            await asyncio.sleep(0)
            assert len(locks) == 1
        
        assert len(locks) == 1
        await task
        
        assert len(locks) == 0
        assert not locks.is_emergency_pending(session_id)
    
    async def test_entry_removed_after_failed_operation(self):
        locks = SessionLockManager()
        
        with pytest.raises(RuntimeError):
            async with locks.operation(uuid4(), "pause"):
                raise RuntimeError("store unavailable")
        
        assert len(locks) == 0


def make_session(initial_sud=5) -> TherapySession:
    return TherapySession(user_id=uuid4(), target_memory_id=uuid4(), initial_sud=initial_sud, initial_voc=3)


class TestSessionTrendCache:
    
    async def test_rebuild_from_store(self):
        store = InMemoryPersistenceStore()
        session = await store.create_session(make_session())
        for number, sud in ((1, 6), (2, 7)):
            stimulation_set = StimulationSet(
                session_id=session.id,
                set_number=number,
                phase=TherapyPhase.PREPARATION,
                phase_set_number=number,
            )
            stimulation_set.close(stimulation_set.start_time, SetFeedback(sud=sud))
            await store.begin_set(session, stimulation_set)
        cache = SessionTrendCache(store)
        
        assert await cache.get_trend(session) == [5, 6, 7]
        assert session.id in cache
    
    async def test_record_appends_to_cached_series(self):
        cache = SessionTrendCache(InMemoryPersistenceStore())
        session = make_session()
        cache.seed(session)
        
        cache.record(session.id, 8)
        
        assert await cache.get_trend(session) == [5, 8]
    
    async def test_record_ignored_without_entry(self):
        cache = SessionTrendCache(InMemoryPersistenceStore())
        
        cache.record(uuid4(), 8)
        
        assert len(cache) == 0
    
    async def test_terminal_sessions_not_cached(self):
        store = InMemoryPersistenceStore()
        session = make_session()
        session.lifecycle_state = LifecycleState.COMPLETED
        cache = SessionTrendCache(store)
        
        assert await cache.get_trend(session) == [5]
        assert len(cache) == 0
    
    async def test_ttl_expiry(self):
        clock = FakeMonotonic()
        cache = SessionTrendCache(InMemoryPersistenceStore(), ttl_seconds=60, clock=clock)
        session = make_session()
        cache.seed(session)
        
        clock.now = 61
        
        assert cache.evict_expired() == 1
        assert session.id not in cache
    
    async def test_lru_bound(self):
        cache = SessionTrendCache(InMemoryPersistenceStore(), max_sessions=2)
        sessions = [make_session() for _ in range(3)]
        for session in sessions:
            cache.seed(session)
        
        assert len(cache) == 2
        assert sessions[0].id not in cache
    
    async def test_seed_prunes_expired_entries(self):
        clock = FakeMonotonic()
        cache = SessionTrendCache(InMemoryPersistenceStore(), ttl_seconds=60, clock=clock)
        stale, fresh = make_session(), make_session()
        cache.seed(stale)
        
        clock.now = 61
        cache.seed(fresh)
        
        assert stale.id not in cache
        assert fresh.id in cache
        assert len(cache) == 1
