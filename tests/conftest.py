"""Tests configuration and fixtures."""

import pytest
from datetime import datetime, timedelta
from uuid import uuid4

from haven.config import Settings
from haven.domain.models.session import TargetMemory
from haven.infrastructure.events.broadcaster import InMemoryEventBroadcaster
from haven.infrastructure.llm.static_provider import StaticGuidanceProvider
from haven.infrastructure.persistence import InMemoryPersistenceStore
from haven.main import create_core


class FakeClock:
    """Controllable wall clock returning naive UTC datetimes."""
    
    def __init__(self, start: datetime = datetime(2026, 1, 1, 9, 0, 0)) -> None:
        self.current = start
    
    def __call__(self) -> datetime:
        return self.current
    
    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with in-memory persistence and static guidance."""
    return Settings(
        env="development",
        debug=True,
        persistence_backend="memory",
        guidance_provider="static",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryPersistenceStore:
    return InMemoryPersistenceStore()


@pytest.fixture
def broadcaster() -> InMemoryEventBroadcaster:
    return InMemoryEventBroadcaster()


@pytest.fixture
def core(test_settings, store, broadcaster, clock):
    """Fully wired session core around the in-memory store."""
    return create_core(
        test_settings,
        store,
        broadcaster=broadcaster,
        guidance=StaticGuidanceProvider(),
        clock=clock,
    )


@pytest.fixture
def orchestrator(core):
    return core.orchestrator


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
async def memory(store, user_id) -> TargetMemory:
    """Active target memory owned by user_id."""
    return await store.save_target_memory(
        TargetMemory(user_id=user_id, description="test memory")
    )


@pytest.fixture
async def started_session(orchestrator, memory, user_id):
    """Session created with SUD 7 / VOC 3 and started."""
    session = await orchestrator.create_session(user_id, memory.id, 7, 3)
    result = await orchestrator.start_session(session.id)
    return result.session
