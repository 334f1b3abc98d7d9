"""
HAVEN Session Core Entry Point

Composition root with:
- Settings-driven store selection (in-memory or SQL)
- Guidance provider selection (static or OpenAI)
- Lifespan management (startup/shutdown)

The core is embedded by a host process; it exposes no HTTP
surface of its own.

Usage:
    async with core_lifespan() as core:
        session = await core.orchestrator.create_session(user_id, memory_id, 7, 3)
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncGenerator, Callable, Optional

from haven import __version__
from haven.config import get_settings
from haven.config.logging_config import configure_logging, get_logger
from haven.config.settings import Settings
from haven.domain.clock import utc_now
from haven.infrastructure.database import DatabaseManager, SqlAlchemyPersistenceStore
from haven.infrastructure.events.broadcaster import EventBroadcaster, InMemoryEventBroadcaster
from haven.infrastructure.llm.provider import GuidanceTextProvider
from haven.infrastructure.llm.provider_factory import create_guidance_provider
from haven.infrastructure.metrics.prometheus_metrics import update_system_info
from haven.infrastructure.persistence import InMemoryPersistenceStore, PersistenceStore
from haven.services.orchestration.session_orchestrator import SessionOrchestrator
from haven.services.safety import (
    CrisisResourceDirectory,
    GroundingLibrary,
    InterventionSelector,
    RiskEvaluator,
    SafetyAssessmentService,
)
from haven.services.session import (
    SessionLockManager,
    SessionStateMachine,
    SessionTrendCache,
    SetTracker,
)

logger = get_logger(__name__)


@dataclass
class HavenCore:
    """Wired session core components."""
    
    settings: Settings
    store: PersistenceStore
    broadcaster: EventBroadcaster
    guidance: GuidanceTextProvider
    assessment: SafetyAssessmentService
    trend_cache: SessionTrendCache
    locks: SessionLockManager
    orchestrator: SessionOrchestrator
    
    async def shutdown(self) -> None:
        """Release provider and store resources."""
        await self.guidance.close()
        await self.store.close()


async def create_store(settings: Settings) -> PersistenceStore:
    """
    Build the persistence store selected by settings.
    
    SQLite databases get their schema created on startup;
    PostgreSQL schemas are managed by Alembic migrations.
    """
    if settings.persistence_backend == "memory":
        logger.info("Using in-memory persistence")
        return InMemoryPersistenceStore()
    
    db = DatabaseManager(settings.database, echo=settings.debug)
    await db.initialize()
    if settings.database.is_sqlite:
        await db.create_schema()
    return SqlAlchemyPersistenceStore(db)


def create_core(
    settings: Settings,
    store: PersistenceStore,
    broadcaster: Optional[EventBroadcaster] = None,
    guidance: Optional[GuidanceTextProvider] = None,
    clock: Callable[[], datetime] = utc_now,
) -> HavenCore:
    """
    Wire the session core around an existing store.
    
    Args:
        settings: Application settings
        store: Persistence store
        broadcaster: Event sink (in-memory broadcaster by default)
        guidance: Guidance text provider (chosen from settings by default)
        clock: Wall clock for timestamps
        
    Returns:
        HavenCore with every component wired
    """
    safety = settings.safety
    broadcaster = broadcaster or InMemoryEventBroadcaster()
    guidance = guidance or create_guidance_provider(settings)
    
    directory = CrisisResourceDirectory(
        country_code=safety.country_code,
        config_path=safety.crisis_resources_path,
    )
    library = GroundingLibrary()
    trend_cache = SessionTrendCache(
        store,
        ttl_seconds=safety.trend_cache_ttl_seconds,
        max_sessions=safety.trend_cache_max_sessions,
    )
    locks = SessionLockManager()
    
    assessment = SafetyAssessmentService(
        store,
        RiskEvaluator(),
        InterventionSelector(library, directory),
        trend_cache,
        guidance=guidance,
        broadcaster=broadcaster,
        recent_set_window=safety.recent_set_window,
        recent_check_window=safety.recent_check_window,
        guidance_timeout_seconds=safety.guidance_timeout_seconds,
        clock=clock,
    )
    components = dict(
        store=store,
        assessment=assessment,
        locks=locks,
        trend_cache=trend_cache,
        broadcaster=broadcaster,
        clock=clock,
    )
    orchestrator = SessionOrchestrator(
        store,
        SessionStateMachine(**components),
        SetTracker(**components),
        library,
        directory,
    )
    
    return HavenCore(
        settings=settings,
        store=store,
        broadcaster=broadcaster,
        guidance=guidance,
        assessment=assessment,
        trend_cache=trend_cache,
        locks=locks,
        orchestrator=orchestrator,
    )


@asynccontextmanager
async def core_lifespan(settings: Optional[Settings] = None) -> AsyncGenerator[HavenCore, None]:
    """
    Session core lifespan manager.
    
    Handles startup and shutdown of all components.
    """
    settings = settings or get_settings()
    configure_logging(settings, __version__)
    update_system_info(settings.env, __version__)
    
    logger.info(
        "Starting HAVEN session core",
        env=settings.env,
        version=__version__,
        persistence=settings.persistence_backend,
        guidance=settings.guidance_provider,
    )
    
    store = await create_store(settings)
    core = create_core(settings, store)
    try:
        yield core
    finally:
        logger.info("Shutting down HAVEN session core")
        await core.shutdown()
        logger.info("HAVEN session core shutdown complete")
