"""
Session Trend Cache

Process-local cache of per-session SUD series used by the
escalation indicator. Not a source of truth: any entry can be
rebuilt from persisted sets, and entries expire after an idle TTL
or when the cache is full (least recently used first).
"""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional
from uuid import UUID

from haven.config.logging_config import get_logger
from haven.domain.models.session import TherapySession
from haven.infrastructure.persistence.store import PersistenceStore

logger = get_logger(__name__)


@dataclass
class _TrendEntry:
    sud: list[int] = field(default_factory=list)
    last_access: float = 0.0


class SessionTrendCache:
    """
    LRU + TTL cache of SUD series keyed by session.
    
    The series starts with the initial SUD followed by the SUD of
    every set closed with feedback, in set order.
    
    Usage:
        cache = SessionTrendCache(store, ttl_seconds=14400, max_sessions=1000)
        trend = await cache.get_trend(session)
        cache.record(session.id, feedback.sud)
    """
    
    def __init__(
        self,
        store: PersistenceStore,
        ttl_seconds: float = 4 * 3600,
        max_sessions: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._max_sessions = max_sessions
        self._clock = clock
        self._entries: OrderedDict[UUID, _TrendEntry] = OrderedDict()
    
    async def get_trend(self, session: TherapySession) -> list[int]:
        """Return the SUD series, rebuilding it from the store on a miss."""
        entry = self._fresh_entry(session.id)
        if entry is not None:
            return list(entry.sud)
        
        series = await self.rebuild(session)
        if not session.is_terminal:
            self._put(session.id, series)
        return list(series)
    
    async def rebuild(self, session: TherapySession) -> list[int]:
        """Reconstruct the series from persisted sets."""
        sets = await self._store.list_sets(session.id)
        series = [session.initial_sud]
        for stimulation_set in sorted(sets, key=lambda s: s.set_number):
            if stimulation_set.user_feedback is not None:
                series.append(stimulation_set.user_feedback.sud)
        return series
    
    def seed(self, session: TherapySession) -> None:
        """Start a series for a session with no sets yet."""
        self._put(session.id, [session.initial_sud])
    
    def record(self, session_id: UUID, sud: int) -> None:
        """Append a committed measurement; a missing entry is rebuilt later."""
        entry = self._fresh_entry(session_id)
        if entry is not None:
            entry.sud.append(sud)
    
    def discard(self, session_id: UUID) -> None:
        self._entries.pop(session_id, None)
    
    def evict_expired(self) -> int:
        """Drop entries idle longer than the TTL; returns the count removed."""
        now = self._clock()
        expired = [
            session_id for session_id, entry in self._entries.items()
            if now - entry.last_access > self._ttl
        ]
        for session_id in expired:
            del self._entries[session_id]
        if expired:
            logger.warning("Evicted stale session trends", count=len(expired))
        return len(expired)
    
    def _fresh_entry(self, session_id: UUID) -> Optional[_TrendEntry]:
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        now = self._clock()
        if now - entry.last_access > self._ttl:
            del self._entries[session_id]
            return None
        entry.last_access = now
        self._entries.move_to_end(session_id)
        return entry
    
    def _put(self, session_id: UUID, series: list[int]) -> None:
        self.evict_expired()
        self._entries[session_id] = _TrendEntry(sud=list(series), last_access=self._clock())
        self._entries.move_to_end(session_id)
        while len(self._entries) > self._max_sessions:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Trend cache full, evicted session", session_id=str(evicted))
    
    def __contains__(self, session_id: object) -> bool:
        return session_id in self._entries
    
    def __len__(self) -> int:
        return len(self._entries)
