"""
SQLAlchemy Persistence Store

PersistenceStore backed by the async SQLAlchemy engine. Every
store call runs in its own transaction; composite commits
(completion, emergency stop, set begin/close) write all their
rows in that single transaction.

Error mapping:
- IntegrityError on a guarded insert -> ConflictError
- Any other SQLAlchemyError -> PersistenceError
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from haven.config.logging_config import get_logger
from haven.domain.enums.session_enums import LifecycleState
from haven.domain.exceptions import ConflictError, NotFoundError, PersistenceError
from haven.domain.models.safety_models import SafetyCheck, UserSafetyProfile
from haven.domain.models.session import TargetMemory, TherapySession
from haven.domain.models.stimulation_set import StimulationSet
from haven.infrastructure.database.connection import DatabaseManager
from haven.infrastructure.database.models import (
    SafetyCheckModel,
    StimulationSetModel,
    TargetMemoryModel,
    TherapySessionModel,
    UserSafetyProfileModel,
)
from haven.infrastructure.database.repositories import (
    BaseRepository,
    SafetyCheckRepository,
    StimulationSetRepository,
    TherapySessionRepository,
)
from haven.infrastructure.persistence.store import PersistenceStore

logger = get_logger(__name__)


class SqlAlchemyPersistenceStore(PersistenceStore):
    """
    Relational persistence for the session core.
    
    Usage:
        db = DatabaseManager(settings.database)
        await db.initialize()
        store = SqlAlchemyPersistenceStore(db)
    """
    
    def __init__(self, db: DatabaseManager) -> None:
        self._db = db
    
    @asynccontextmanager
    async def _transaction(
        self,
        operation: str,
        conflict_message: Optional[str] = None,
        **conflict_details,
    ) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._db.session() as session:
                yield session
        except IntegrityError as e:
            if conflict_message is None:
                logger.error("Integrity violation", operation=operation, error=str(e.orig))
                raise PersistenceError(f"Integrity violation during {operation}") from e
            raise ConflictError(conflict_message, **conflict_details) from e
        except SQLAlchemyError as e:
            logger.error(
                "Database operation failed",
                operation=operation,
                error_type=type(e).__name__,
            )
            raise PersistenceError(f"Database error during {operation}") from e
    
    @staticmethod
    async def _require_session_row(
        repo: TherapySessionRepository,
        session_id: UUID,
    ) -> TherapySessionModel:
        row = await repo.get_for_update(session_id)
        if row is None:
            raise NotFoundError("Session not found", session_id=session_id)
        return row
    
    # =========================================================================
    # Sessions
    # =========================================================================
    
    async def create_session(self, session: TherapySession) -> TherapySession:
        async with self._transaction(
            "create_session",
            "User already has an active session",
            user_id=session.user_id,
        ) as db:
            row = await TherapySessionRepository(db).add(TherapySessionModel.from_domain(session))
            return row.to_domain()
    
    async def get_session(self, session_id: UUID) -> Optional[TherapySession]:
        async with self._transaction("get_session") as db:
            row = await TherapySessionRepository(db).get_by_id(session_id)
            return row.to_domain() if row else None
    
    async def update_session(self, session: TherapySession) -> TherapySession:
        async with self._transaction("update_session") as db:
            row = await self._require_session_row(TherapySessionRepository(db), session.id)
            row.apply(session)
            await db.flush()
            return row.to_domain()
    
    async def list_user_sessions(
        self,
        user_id: UUID,
        offset: int = 0,
        limit: int = 20,
        state: Optional[LifecycleState] = None,
    ) -> tuple[list[TherapySession], int]:
        async with self._transaction("list_user_sessions") as db:
            rows, total = await TherapySessionRepository(db).list_for_user(
                user_id, offset=offset, limit=limit, state=state
            )
            return [row.to_domain() for row in rows], total
    
    async def commit_completion(
        self,
        session: TherapySession,
        resolve_target_memory: bool,
    ) -> Optional[StimulationSet]:
        async with self._transaction("commit_completion") as db:
            row = await self._require_session_row(TherapySessionRepository(db), session.id)
            
            memory = None
            if resolve_target_memory:
                memory = await BaseRepository(TargetMemoryModel, db).get_by_id(
                    session.target_memory_id
                )
                if memory is None:
                    raise NotFoundError(
                        "Target memory not found", memory_id=session.target_memory_id
                    )
            
            interrupted = await self._interrupt_open_set(db, session)
            if memory is not None:
                memory.is_resolved = True
            row.apply(session)
            await db.flush()
            return interrupted
    
    async def commit_emergency_stop(
        self,
        session: TherapySession,
        check: SafetyCheck,
    ) -> Optional[StimulationSet]:
        async with self._transaction("commit_emergency_stop") as db:
            row = await self._require_session_row(TherapySessionRepository(db), session.id)
            interrupted = await self._interrupt_open_set(db, session)
            row.apply(session)
            await SafetyCheckRepository(db).add(SafetyCheckModel.from_domain(check))
            return interrupted
    
    @staticmethod
    async def _interrupt_open_set(
        db: AsyncSession,
        session: TherapySession,
    ) -> Optional[StimulationSet]:
        open_row = await StimulationSetRepository(db).get_open(session.id)
        if open_row is None:
            return None
        stimulation_set = open_row.to_domain()
        stimulation_set.close(session.end_time)
        open_row.apply(stimulation_set)
        return stimulation_set
    
    # =========================================================================
    # Sets
    # =========================================================================
    
    async def begin_set(
        self,
        session: TherapySession,
        stimulation_set: StimulationSet,
    ) -> StimulationSet:
        async with self._transaction(
            "begin_set",
            "Set number already exists or a set is open",
            session_id=session.id,
            set_number=stimulation_set.set_number,
        ) as db:
            row = await self._require_session_row(TherapySessionRepository(db), session.id)
            row.apply(session)
            set_row = await StimulationSetRepository(db).add(
                StimulationSetModel.from_domain(stimulation_set)
            )
            return set_row.to_domain()
    
    async def close_set(
        self,
        session: TherapySession,
        stimulation_set: StimulationSet,
    ) -> StimulationSet:
        async with self._transaction("close_set") as db:
            row = await self._require_session_row(TherapySessionRepository(db), session.id)
            set_row = await StimulationSetRepository(db).get_by_id(stimulation_set.id)
            if set_row is None:
                raise NotFoundError("Set not found", set_id=stimulation_set.id)
            set_row.apply(stimulation_set)
            row.apply(session)
            await db.flush()
            return set_row.to_domain()
    
    async def get_open_set(self, session_id: UUID) -> Optional[StimulationSet]:
        async with self._transaction("get_open_set") as db:
            row = await StimulationSetRepository(db).get_open(session_id)
            return row.to_domain() if row else None
    
    async def get_last_set(self, session_id: UUID) -> Optional[StimulationSet]:
        async with self._transaction("get_last_set") as db:
            row = await StimulationSetRepository(db).get_last(session_id)
            return row.to_domain() if row else None
    
    async def list_sets(self, session_id: UUID) -> list[StimulationSet]:
        async with self._transaction("list_sets") as db:
            rows = await StimulationSetRepository(db).list_for_session(session_id)
            return [row.to_domain() for row in rows]
    
    async def get_recent_sets(self, session_id: UUID, limit: int) -> list[StimulationSet]:
        async with self._transaction("get_recent_sets") as db:
            rows = await StimulationSetRepository(db).recent(session_id, limit)
            return [row.to_domain() for row in rows]
    
    # =========================================================================
    # Safety checks
    # =========================================================================
    
    async def record_safety_check(self, check: SafetyCheck) -> SafetyCheck:
        async with self._transaction("record_safety_check") as db:
            row = await SafetyCheckRepository(db).add(SafetyCheckModel.from_domain(check))
            return row.to_domain()
    
    async def get_recent_safety_checks(self, session_id: UUID, limit: int) -> list[SafetyCheck]:
        async with self._transaction("get_recent_safety_checks") as db:
            rows = await SafetyCheckRepository(db).list_for_session(session_id, limit)
            return [row.to_domain() for row in rows]
    
    async def list_safety_checks(self, session_id: UUID) -> list[SafetyCheck]:
        async with self._transaction("list_safety_checks") as db:
            rows = await SafetyCheckRepository(db).list_for_session(session_id)
            return [row.to_domain() for row in rows]
    
    # =========================================================================
    # Externally owned records
    # =========================================================================
    
    async def get_target_memory(self, memory_id: UUID) -> Optional[TargetMemory]:
        async with self._transaction("get_target_memory") as db:
            row = await BaseRepository(TargetMemoryModel, db).get_by_id(memory_id)
            return row.to_domain() if row else None
    
    async def save_target_memory(self, memory: TargetMemory) -> TargetMemory:
        async with self._transaction("save_target_memory") as db:
            row = await BaseRepository(TargetMemoryModel, db).merge(
                TargetMemoryModel.from_domain(memory)
            )
            return row.to_domain()
    
    async def get_user_safety_profile(self, user_id: UUID) -> Optional[UserSafetyProfile]:
        async with self._transaction("get_user_safety_profile") as db:
            row = await BaseRepository(UserSafetyProfileModel, db).get_by_id(user_id)
            return row.to_domain() if row else None
    
    async def save_user_safety_profile(self, profile: UserSafetyProfile) -> UserSafetyProfile:
        async with self._transaction("save_user_safety_profile") as db:
            row = await BaseRepository(UserSafetyProfileModel, db).merge(
                UserSafetyProfileModel.from_domain(profile)
            )
            return row.to_domain()
    
    async def close(self) -> None:
        await self._db.close()
