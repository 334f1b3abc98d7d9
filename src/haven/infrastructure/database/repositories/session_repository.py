"""
Therapy Session Repository

Session rows plus the externally owned memory and safety
profile records the session core consults.
"""

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select

from haven.domain.enums.session_enums import LifecycleState
from haven.infrastructure.database.models.therapy_session_model import TherapySessionModel
from haven.infrastructure.database.repositories.base import BaseRepository


class TherapySessionRepository(BaseRepository[TherapySessionModel]):
    """
    Usage:
        repo = TherapySessionRepository(session)
        rows, total = await repo.list_for_user(user_id, offset=0, limit=20)
    """
    
    def __init__(self, session) -> None:
        super().__init__(TherapySessionModel, session)
    
    async def get_for_update(self, session_id: UUID) -> Optional[TherapySessionModel]:
        """Load a session row with a row lock where the dialect supports it."""
        return await self._first(
            select(TherapySessionModel)
            .where(TherapySessionModel.id == session_id)
            .with_for_update()
        )
    
    async def list_for_user(
        self,
        user_id: UUID,
        offset: int,
        limit: int,
        state: Optional[LifecycleState] = None,
    ) -> tuple[Sequence[TherapySessionModel], int]:
        """
        Page through a user's sessions, newest first.
        
        Returns:
            (rows, total matching rows)
        """
        criteria = [TherapySessionModel.user_id == user_id]
        if state is not None:
            criteria.append(TherapySessionModel.lifecycle_state == state.value)
        
        total = await self.count_where(*criteria)
        rows = await self._all(
            select(TherapySessionModel)
            .where(*criteria)
            .order_by(TherapySessionModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return rows, total
