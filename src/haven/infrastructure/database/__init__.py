"""
Database infrastructure components.
"""

from haven.infrastructure.database.connection import Base, DatabaseManager
from haven.infrastructure.database.sql_store import SqlAlchemyPersistenceStore

__all__ = [
    "Base",
    "DatabaseManager",
    "SqlAlchemyPersistenceStore",
]
