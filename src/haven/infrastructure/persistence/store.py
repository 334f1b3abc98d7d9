"""
Persistence Store Interface

Async contract between the session core and its storage.
Each mutating method is one atomic unit: either everything it
writes is committed or nothing is.

Implementations must give read-your-writes consistency and must
raise PersistenceError (never a driver exception) on failure.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from haven.domain.enums.session_enums import LifecycleState
from haven.domain.models.safety_models import SafetyCheck, UserSafetyProfile
from haven.domain.models.session import TargetMemory, TherapySession
from haven.domain.models.stimulation_set import StimulationSet


class PersistenceStore(ABC):
    """
    Storage for sessions, sets and safety checks.
    
    Target memories and safety profiles are owned by other parts of
    the platform; the core reads them and only marks memories as
    resolved on completion.
    """
    
    # =========================================================================
    # Sessions
    # =========================================================================
    
    @abstractmethod
    async def create_session(self, session: TherapySession) -> TherapySession:
        """
        Insert a new session.
        
        Raises:
            ConflictError: If the user already has a non-terminal session
        """
    
    @abstractmethod
    async def get_session(self, session_id: UUID) -> Optional[TherapySession]:
        pass
    
    @abstractmethod
    async def update_session(self, session: TherapySession) -> TherapySession:
        """
        Persist session fields.
        
        Raises:
            NotFoundError: If the session does not exist
        """
    
    @abstractmethod
    async def list_user_sessions(
        self,
        user_id: UUID,
        offset: int = 0,
        limit: int = 20,
        state: Optional[LifecycleState] = None,
    ) -> tuple[list[TherapySession], int]:
        """List a user's sessions newest first, with the total count."""
    
    @abstractmethod
    async def commit_completion(
        self,
        session: TherapySession,
        resolve_target_memory: bool,
    ) -> Optional[StimulationSet]:
        """
        Persist a completed session, interrupting any open set and
        optionally marking the target memory resolved.
        
        Returns:
            The set that was interrupted, if any
        """
    
    @abstractmethod
    async def commit_emergency_stop(
        self,
        session: TherapySession,
        check: SafetyCheck,
    ) -> Optional[StimulationSet]:
        """
        Persist an emergency-stopped session together with its
        emergency safety check, interrupting any open set.
        
        Returns:
            The set that was interrupted, if any
        """
    
    # =========================================================================
    # Sets
    # =========================================================================
    
    @abstractmethod
    async def begin_set(
        self,
        session: TherapySession,
        stimulation_set: StimulationSet,
    ) -> StimulationSet:
        """
        Insert a new set and persist the session's set counters.
        
        Raises:
            ConflictError: If the set number is already taken
        """
    
    @abstractmethod
    async def close_set(
        self,
        session: TherapySession,
        stimulation_set: StimulationSet,
    ) -> StimulationSet:
        """Persist a closed set together with the session's measurements."""
    
    @abstractmethod
    async def get_open_set(self, session_id: UUID) -> Optional[StimulationSet]:
        pass
    
    @abstractmethod
    async def get_last_set(self, session_id: UUID) -> Optional[StimulationSet]:
        pass
    
    @abstractmethod
    async def list_sets(self, session_id: UUID) -> list[StimulationSet]:
        """All sets of a session ordered by set number."""
    
    @abstractmethod
    async def get_recent_sets(self, session_id: UUID, limit: int) -> list[StimulationSet]:
        """The last `limit` sets ordered by set number."""
    
    # =========================================================================
    # Safety checks
    # =========================================================================
    
    @abstractmethod
    async def record_safety_check(self, check: SafetyCheck) -> SafetyCheck:
        pass
    
    @abstractmethod
    async def get_recent_safety_checks(self, session_id: UUID, limit: int) -> list[SafetyCheck]:
        """The last `limit` checks, newest first."""
    
    @abstractmethod
    async def list_safety_checks(self, session_id: UUID) -> list[SafetyCheck]:
        """All checks, newest first."""
    
    # =========================================================================
    # Externally owned records
    # =========================================================================
    
    @abstractmethod
    async def get_target_memory(self, memory_id: UUID) -> Optional[TargetMemory]:
        pass
    
    @abstractmethod
    async def save_target_memory(self, memory: TargetMemory) -> TargetMemory:
        pass
    
    @abstractmethod
    async def get_user_safety_profile(self, user_id: UUID) -> Optional[UserSafetyProfile]:
        pass
    
    @abstractmethod
    async def save_user_safety_profile(self, profile: UserSafetyProfile) -> UserSafetyProfile:
        pass
    
    async def close(self) -> None:
        """Release store resources."""
        return None
