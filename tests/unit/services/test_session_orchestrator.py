"""
Unit Tests for Session Orchestrator

Tests read operations, pagination and input coercion at the
exposed surface.
"""

import pytest
from uuid import uuid4

from haven.domain.enums.safety_enums import CrisisResourceType
from haven.domain.enums.session_enums import LifecycleState
from haven.domain.exceptions import NotFoundError, ValidationError


async def create_completed(orchestrator, user_id, memory_id, clock, count):
    for _ in range(count):
        session = await orchestrator.create_session(user_id, memory_id, 5, 3)
        await orchestrator.complete_session(session.id)
        clock.advance(minutes=1)


class TestListUserSessions:
    
    async def test_pagination(self, orchestrator, memory, user_id, clock):
        await create_completed(orchestrator, user_id, memory.id, clock, 3)
        active = await orchestrator.create_session(user_id, memory.id, 5, 3)
        
        first = await orchestrator.list_user_sessions(user_id, page=1, limit=3)
        second = await orchestrator.list_user_sessions(user_id, page=2, limit=3)
        
        assert first.total == 4
        assert first.pages == 2
        assert first.has_next
        assert first.items[0].id == active.id
        assert len(second.items) == 1
        assert not second.has_next
    
    async def test_filter_by_state(self, orchestrator, memory, user_id, clock):
        await create_completed(orchestrator, user_id, memory.id, clock, 2)
        await orchestrator.create_session(user_id, memory.id, 5, 3)
        
        page = await orchestrator.list_user_sessions(user_id, state="completed")
        
        assert page.total == 2
        assert all(s.lifecycle_state == LifecycleState.COMPLETED for s in page.items)
    
    @pytest.mark.parametrize("kwargs", [
        {"page": 0},
        {"limit": 0},
        {"limit": 101},
        {"state": "sleeping"},
    ])
    async def test_invalid_arguments(self, orchestrator, user_id, kwargs):
        with pytest.raises(ValidationError):
            await orchestrator.list_user_sessions(user_id, **kwargs)
    
    async def test_empty(self, orchestrator):
        page = await orchestrator.list_user_sessions(uuid4())
        
        assert page.to_dict()["pagination"] == {
            "total": 0,
            "page": 1,
            "limit": 20,
            "pages": 0,
            "has_next": False,
        }


class TestReads:
    
    async def test_unknown_session(self, orchestrator):
        with pytest.raises(NotFoundError):
            await orchestrator.get_session(uuid4())
        with pytest.raises(NotFoundError):
            await orchestrator.assess_current_state(uuid4())
        with pytest.raises(NotFoundError):
            await orchestrator.get_safety_history(uuid4())
    
    async def test_session_metrics(self, orchestrator, started_session, clock):
        await orchestrator.start_set(started_session.id)
        await orchestrator.end_set(started_session.id, {"sud": 4, "voc": 5})
        clock.advance(minutes=3)
        
        metrics = await orchestrator.get_session_metrics(started_session.id)
        
        assert metrics.sud_series == [7, 4]
        assert metrics.set_count == 1
        assert metrics.duration_seconds == 180


class TestResourcesAndTechniques:
    
    def test_crisis_resources_by_type_name(self, orchestrator):
        resources = orchestrator.get_crisis_resources("emergency")
        
        assert [r.contact for r in resources] == ["911"]
    
    def test_crisis_resources_all(self, orchestrator):
        resources = orchestrator.get_crisis_resources()
        
        assert {r.type for r in resources} == set(CrisisResourceType)
    
    def test_unknown_resource_type(self, orchestrator):
        with pytest.raises(ValidationError):
            orchestrator.get_crisis_resources("pigeon")
    
    def test_grounding_feedback(self, orchestrator):
        technique = orchestrator.report_grounding_effectiveness("box-breathing", 1.0)
        
        assert technique.rating_count == 2
        assert orchestrator.list_grounding_techniques()[0].id == "box-breathing"
