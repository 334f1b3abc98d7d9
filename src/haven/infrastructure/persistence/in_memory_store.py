"""
In-Memory Persistence Store

Process-local store for tests and single-process deployments.

Every method body runs without an await point, so each call is
atomic with respect to other coroutines. Records are deep-copied
on the way in and out; callers can only change stored state by
committing through the store.
"""

import copy
from typing import Optional, TypeVar
from uuid import UUID

from haven.config.logging_config import get_logger
from haven.domain.enums.session_enums import LifecycleState
from haven.domain.exceptions import ConflictError, NotFoundError
from haven.domain.models.safety_models import SafetyCheck, UserSafetyProfile
from haven.domain.models.session import TargetMemory, TherapySession
from haven.domain.models.stimulation_set import StimulationSet
from haven.infrastructure.persistence.store import PersistenceStore

logger = get_logger(__name__)

T = TypeVar("T")


def _copy(value: T) -> T:
    return copy.deepcopy(value)


class InMemoryPersistenceStore(PersistenceStore):
    """
    Dictionary-backed persistence store.
    
    Usage:
        store = InMemoryPersistenceStore()
        await store.save_target_memory(memory)
        session = await store.create_session(session)
    """
    
    def __init__(self) -> None:
        self._sessions: dict[UUID, TherapySession] = {}
        self._sets: dict[UUID, list[StimulationSet]] = {}
        self._checks: dict[UUID, list[SafetyCheck]] = {}
        self._memories: dict[UUID, TargetMemory] = {}
        self._profiles: dict[UUID, UserSafetyProfile] = {}
    
    # Sessions
    
    async def create_session(self, session: TherapySession) -> TherapySession:
        for existing in self._sessions.values():
            if existing.user_id == session.user_id and not existing.is_terminal:
                raise ConflictError(
                    "User already has an active session",
                    user_id=session.user_id,
                    active_session_id=existing.id,
                )
        self._sessions[session.id] = _copy(session)
        self._sets[session.id] = []
        self._checks[session.id] = []
        return _copy(session)
    
    async def get_session(self, session_id: UUID) -> Optional[TherapySession]:
        session = self._sessions.get(session_id)
        return _copy(session) if session else None
    
    async def update_session(self, session: TherapySession) -> TherapySession:
        self._require_session(session.id)
        self._sessions[session.id] = _copy(session)
        return _copy(session)
    
    async def list_user_sessions(
        self,
        user_id: UUID,
        offset: int = 0,
        limit: int = 20,
        state: Optional[LifecycleState] = None,
    ) -> tuple[list[TherapySession], int]:
        sessions = [
            s for s in self._sessions.values()
            if s.user_id == user_id and (state is None or s.lifecycle_state == state)
        ]
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return [_copy(s) for s in sessions[offset:offset + limit]], len(sessions)
    
    async def commit_completion(
        self,
        session: TherapySession,
        resolve_target_memory: bool,
    ) -> Optional[StimulationSet]:
        self._require_session(session.id)
        memory = self._memories.get(session.target_memory_id)
        if resolve_target_memory and memory is None:
            raise NotFoundError("Target memory not found", memory_id=session.target_memory_id)
        
        interrupted = self._interrupt_open_set(session)
        if resolve_target_memory:
            memory.is_resolved = True
        self._sessions[session.id] = _copy(session)
        return _copy(interrupted)
    
    async def commit_emergency_stop(
        self,
        session: TherapySession,
        check: SafetyCheck,
    ) -> Optional[StimulationSet]:
        self._require_session(session.id)
        interrupted = self._interrupt_open_set(session)
        self._checks[session.id].append(_copy(check))
        self._sessions[session.id] = _copy(session)
        return _copy(interrupted)
    
    def _interrupt_open_set(self, session: TherapySession) -> Optional[StimulationSet]:
        for stimulation_set in self._sets[session.id]:
            if stimulation_set.is_open:
                stimulation_set.close(session.end_time)
                return stimulation_set
        return None
    
    def _require_session(self, session_id: UUID) -> None:
        if session_id not in self._sessions:
            raise NotFoundError("Session not found", session_id=session_id)
    
    # Sets
    
    async def begin_set(
        self,
        session: TherapySession,
        stimulation_set: StimulationSet,
    ) -> StimulationSet:
        self._require_session(session.id)
        sets = self._sets[session.id]
        if any(s.set_number == stimulation_set.set_number for s in sets):
            raise ConflictError(
                "Set number already exists",
                session_id=session.id,
                set_number=stimulation_set.set_number,
            )
        sets.append(_copy(stimulation_set))
        self._sessions[session.id] = _copy(session)
        return _copy(stimulation_set)
    
    async def close_set(
        self,
        session: TherapySession,
        stimulation_set: StimulationSet,
    ) -> StimulationSet:
        self._require_session(session.id)
        sets = self._sets[session.id]
        for index, existing in enumerate(sets):
            if existing.id == stimulation_set.id:
                sets[index] = _copy(stimulation_set)
                self._sessions[session.id] = _copy(session)
                return _copy(stimulation_set)
        raise NotFoundError("Set not found", set_id=stimulation_set.id)
    
    async def get_open_set(self, session_id: UUID) -> Optional[StimulationSet]:
        for stimulation_set in self._sets.get(session_id, []):
            if stimulation_set.is_open:
                return _copy(stimulation_set)
        return None
    
    async def get_last_set(self, session_id: UUID) -> Optional[StimulationSet]:
        sets = self._sets.get(session_id, [])
        return _copy(sets[-1]) if sets else None
    
    async def list_sets(self, session_id: UUID) -> list[StimulationSet]:
        return _copy(self._sets.get(session_id, []))
    
    async def get_recent_sets(self, session_id: UUID, limit: int) -> list[StimulationSet]:
        sets = self._sets.get(session_id, [])
        return _copy(sets[-limit:]) if limit > 0 else []
    
    # Safety checks
    
    async def record_safety_check(self, check: SafetyCheck) -> SafetyCheck:
        self._require_session(check.session_id)
        self._checks[check.session_id].append(_copy(check))
        return _copy(check)
    
    async def get_recent_safety_checks(self, session_id: UUID, limit: int) -> list[SafetyCheck]:
        checks = self._checks.get(session_id, [])
        return _copy(list(reversed(checks))[:limit])
    
    async def list_safety_checks(self, session_id: UUID) -> list[SafetyCheck]:
        return _copy(list(reversed(self._checks.get(session_id, []))))
    
    # Externally owned records
    
    async def get_target_memory(self, memory_id: UUID) -> Optional[TargetMemory]:
        memory = self._memories.get(memory_id)
        return _copy(memory) if memory else None
    
    async def save_target_memory(self, memory: TargetMemory) -> TargetMemory:
        self._memories[memory.id] = _copy(memory)
        return _copy(memory)
    
    async def get_user_safety_profile(self, user_id: UUID) -> Optional[UserSafetyProfile]:
        profile = self._profiles.get(user_id)
        return _copy(profile) if profile else None
    
    async def save_user_safety_profile(self, profile: UserSafetyProfile) -> UserSafetyProfile:
        self._profiles[profile.user_id] = _copy(profile)
        return _copy(profile)
