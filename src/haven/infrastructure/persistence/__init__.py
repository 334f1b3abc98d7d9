"""Persistence package: store interface and in-memory implementation."""

from haven.infrastructure.persistence.store import PersistenceStore
from haven.infrastructure.persistence.in_memory_store import InMemoryPersistenceStore

__all__ = [
    "PersistenceStore",
    "InMemoryPersistenceStore",
]
