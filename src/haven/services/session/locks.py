"""
Per-Session Serialization

One asyncio lock per session serializes all mutating operations.
Emergency stops announce themselves before they queue for the
lock; any regular operation that acquires the lock, or reaches its
commit point, while an emergency stop is pending is abandoned, so
the emergency stop is the next commit on that session.

An entry exists only while some operation holds or waits for the
session's lock; the last one out removes it.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator
from uuid import UUID

from haven.config.logging_config import get_logger
from haven.domain.exceptions import StateTransitionError

logger = get_logger(__name__)


@dataclass
class _SessionLockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    # Set while at least one emergency stop is pending
    emergency_requested: asyncio.Event = field(default_factory=asyncio.Event)
    pending_emergencies: int = 0
    users: int = 0


class OperationGuard:
    """Handle given to a regular operation while it holds the lock."""
    
    def __init__(self, session_id: UUID, operation: str, entry: _SessionLockEntry) -> None:
        self.session_id = session_id
        self.operation = operation
        self._entry = entry
    
    @property
    def preempted(self) -> bool:
        return self._entry.pending_emergencies > 0
    
    @property
    def preemption(self) -> asyncio.Event:
        """Event set as soon as an emergency stop queues for this session."""
        return self._entry.emergency_requested
    
    def ensure_not_preempted(self) -> None:
        """
        Raises:
            StateTransitionError: If an emergency stop is waiting
        """
        if self.preempted:
            logger.warning(
                "Operation preempted by emergency stop",
                session_id=str(self.session_id),
                operation=self.operation,
            )
            raise StateTransitionError(
                f"Cannot {self.operation}: emergency stop in progress",
                session_id=self.session_id,
                operation=self.operation,
            )


class SessionLockManager:
    """
    Per-session lock registry with emergency preemption.
    
    Usage:
        async with locks.operation(session_id, "start") as guard:
            assessment = await assessment_service.assess(
                session_id, interrupt=guard.preemption
            )
            guard.ensure_not_preempted()
            await store.update_session(session)
        
        async with locks.emergency(session_id):
            await store.commit_emergency_stop(session, check)
    """
    
    def __init__(self) -> None:
        self._entries: dict[UUID, _SessionLockEntry] = {}
    
    def _checkout(self, session_id: UUID) -> _SessionLockEntry:
        entry = self._entries.get(session_id)
        if entry is None:
            entry = _SessionLockEntry()
            self._entries[session_id] = entry
        entry.users += 1
        return entry
    
    def _checkin(self, session_id: UUID, entry: _SessionLockEntry) -> None:
        entry.users -= 1
        if entry.users == 0 and self._entries.get(session_id) is entry:
            del self._entries[session_id]
    
    @asynccontextmanager
    async def operation(self, session_id: UUID, operation: str) -> AsyncIterator[OperationGuard]:
        """
        Hold the session lock for a regular operation.
        
        Raises:
            StateTransitionError: If an emergency stop is pending
        """
        entry = self._checkout(session_id)
        try:
            async with entry.lock:
                guard = OperationGuard(session_id, operation, entry)
                guard.ensure_not_preempted()
                yield guard
        finally:
            self._checkin(session_id, entry)
    
    @asynccontextmanager
    async def emergency(self, session_id: UUID) -> AsyncIterator[None]:
        """Hold the session lock for an emergency stop, ahead of regular operations."""
        entry = self._checkout(session_id)
        entry.pending_emergencies += 1
        entry.emergency_requested.set()
        try:
            async with entry.lock:
                yield
        finally:
            entry.pending_emergencies -= 1
            if entry.pending_emergencies == 0:
                entry.emergency_requested.clear()
            self._checkin(session_id, entry)
    
    def is_emergency_pending(self, session_id: UUID) -> bool:
        entry = self._entries.get(session_id)
        return entry is not None and entry.pending_emergencies > 0
    
    def __len__(self) -> int:
        return len(self._entries)
