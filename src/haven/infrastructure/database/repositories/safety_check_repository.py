"""
Safety Check Repository

Append-only: no update or delete operations are exposed.
"""

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select

from haven.infrastructure.database.models.safety_check_model import SafetyCheckModel
from haven.infrastructure.database.repositories.base import BaseRepository


class SafetyCheckRepository(BaseRepository[SafetyCheckModel]):
    
    def __init__(self, session) -> None:
        super().__init__(SafetyCheckModel, session)
    
    async def list_for_session(
        self,
        session_id: UUID,
        limit: Optional[int] = None,
    ) -> Sequence[SafetyCheckModel]:
        """Checks for a session, newest first."""
        query = (
            select(SafetyCheckModel)
            .where(SafetyCheckModel.session_id == session_id)
            .order_by(SafetyCheckModel.timestamp.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return await self._all(query)
