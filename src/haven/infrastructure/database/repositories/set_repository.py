"""
Stimulation Set Repository
"""

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select

from haven.infrastructure.database.models.stimulation_set_model import StimulationSetModel
from haven.infrastructure.database.repositories.base import BaseRepository


class StimulationSetRepository(BaseRepository[StimulationSetModel]):
    """Set queries, always ordered by session-wide set number."""
    
    def __init__(self, session) -> None:
        super().__init__(StimulationSetModel, session)
    
    async def get_open(self, session_id: UUID) -> Optional[StimulationSetModel]:
        return await self._first(
            select(StimulationSetModel).where(
                StimulationSetModel.session_id == session_id,
                StimulationSetModel.end_time.is_(None),
            )
        )
    
    async def get_last(self, session_id: UUID) -> Optional[StimulationSetModel]:
        return await self._first(
            select(StimulationSetModel)
            .where(StimulationSetModel.session_id == session_id)
            .order_by(StimulationSetModel.set_number.desc())
        )
    
    async def list_for_session(self, session_id: UUID) -> Sequence[StimulationSetModel]:
        return await self._all(
            select(StimulationSetModel)
            .where(StimulationSetModel.session_id == session_id)
            .order_by(StimulationSetModel.set_number)
        )
    
    async def recent(self, session_id: UUID, limit: int) -> list[StimulationSetModel]:
        """Last `limit` sets, oldest first."""
        rows = await self._all(
            select(StimulationSetModel)
            .where(StimulationSetModel.session_id == session_id)
            .order_by(StimulationSetModel.set_number.desc())
            .limit(limit)
        )
        return list(reversed(rows))
