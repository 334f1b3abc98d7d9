"""
Base Repository Pattern

Provides generic async data access shared by all repositories.
Implements the Repository pattern for clean separation between
domain logic and data access.

Repositories operate on ORM rows inside a caller-owned session;
they flush but never commit. The unit of work (one transaction
per store call) belongs to SqlAlchemyPersistenceStore.
"""

from typing import Any, Generic, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from haven.infrastructure.database.connection import Base

# Type variable for model types
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Generic base repository with async row operations.
    
    Subclass and specify the model type for entity-specific repositories.
    
    Usage:
        class StimulationSetRepository(BaseRepository[StimulationSetModel]):
            pass
            
        repo = StimulationSetRepository(StimulationSetModel, session)
        row = await repo.get_by_id(set_id)
    """
    
    def __init__(self, model: Type[ModelT], session: AsyncSession) -> None:
        """
        Initialize repository with model class and session.
        
        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self._model = model
        self._session = session
    
    async def get_by_id(self, id: Any) -> Optional[ModelT]:
        """
        Get row by primary key.
        
        Args:
            id: Primary key value
            
        Returns:
            Row if found, None otherwise
        """
        return await self._session.get(self._model, id)
    
    async def add(self, entity: ModelT) -> ModelT:
        """
        Insert a new row and flush so constraint violations surface here.
        
        Args:
            entity: Row to insert
            
        Returns:
            The inserted row
        """
        self._session.add(entity)
        await self._session.flush()
        return entity
    
    async def merge(self, entity: ModelT) -> ModelT:
        """
        Insert or update a row by primary key.
        
        Args:
            entity: Row with the desired state
            
        Returns:
            The persistent row
        """
        merged = await self._session.merge(entity)
        await self._session.flush()
        return merged
    
    async def flush(self) -> None:
        await self._session.flush()
    
    async def count_where(self, *criteria: Any) -> int:
        """
        Count rows matching criteria.
        
        Returns:
            Matching row count
        """
        result = await self._session.execute(
            select(func.count()).select_from(self._model).where(*criteria)
        )
        return result.scalar_one()
    
    async def _all(self, query: Any) -> Sequence[ModelT]:
        result = await self._session.execute(query)
        return result.scalars().all()
    
    async def _first(self, query: Any) -> Optional[ModelT]:
        result = await self._session.execute(query.limit(1))
        return result.scalars().first()
