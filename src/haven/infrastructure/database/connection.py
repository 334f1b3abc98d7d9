"""
Database Connection Management

Async SQLAlchemy connection handling with:
- Connection pooling (PostgreSQL)
- Health checks
- Graceful shutdown
- Transaction management

SECURITY: Connection strings contain credentials and must
never be logged.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text

from haven.config.logging_config import get_logger
from haven.config.settings import DatabaseSettings

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all ORM models.
    
    All database models should inherit from this base.
    """
    pass


class DatabaseManager:
    """
    Manages database connections and sessions.
    
    Provides connection pooling, health checks, and
    lifecycle management for the database layer.
    
    Usage:
        db = DatabaseManager(settings.database)
        await db.initialize()
        async with db.session() as session:
            # use session
        await db.close()
    """
    
    def __init__(self, settings: DatabaseSettings, echo: bool = False) -> None:
        """Initialize database manager (connection not established)."""
        self._settings = settings
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._initialized = False
    
    async def initialize(self) -> None:
        """
        Initialize database engine and session factory.
        
        Should be called once during application startup.
        """
        if self._initialized:
            logger.warning("Database already initialized")
            return
        
        if self._settings.is_sqlite:
            # SQLite has no server-side pool to size
            self._engine = create_async_engine(
                self._settings.async_url,
                echo=self._echo,
            )
        else:
            self._engine = create_async_engine(
                self._settings.async_url,
                pool_size=self._settings.pool_size,
                max_overflow=self._settings.max_overflow,
                pool_pre_ping=True,  # Verify connections before use
                pool_recycle=3600,   # Recycle connections after 1 hour
                echo=self._echo,     # SQL logging in debug mode only
            )
        
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        
        self._initialized = True
        logger.info("Database connection pool initialized", sqlite=self._settings.is_sqlite)
    
    async def create_schema(self) -> None:
        """
        Create all tables from ORM metadata.
        
        For SQLite and tests; PostgreSQL deployments use Alembic.
        """
        if not self._engine:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        
        # Register all models on Base.metadata
        import haven.infrastructure.database.models  # noqa: F401
        
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    
    async def close(self) -> None:
        """
        Close database connections.
        
        Should be called during application shutdown.
        """
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._initialized = False
            logger.info("Database connections closed")
    
    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session wrapping one transaction.
        
        Commits on success, rolls back on any exception.
        
        Usage:
            async with db.session() as session:
                result = await session.execute(...)
                
        Yields:
            AsyncSession: Database session
        """
        if not self._session_factory:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
    
    async def health_check(self) -> bool:
        """
        Check database connectivity.
        
        Returns:
            True if database is reachable, False otherwise
        """
        if not self._engine:
            return False
        
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False
    
    @property
    def engine(self) -> AsyncEngine | None:
        """Get the SQLAlchemy async engine."""
        return self._engine
    
    @property
    def is_initialized(self) -> bool:
        """Check if database is initialized."""
        return self._initialized
