"""
Therapy Session ORM Model

Stores session lifecycle, measurements and the phase archive.

PRIVACY: Notes and reason columns may contain sensitive content.
They are excluded from logging and from TherapySession.to_dict().

The partial unique index on user_id enforces at most one
non-terminal session per user at the storage level.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from haven.domain.clock import utc_now
from haven.domain.enums.session_enums import LifecycleState, TherapyPhase
from haven.domain.models.session import PhaseRecord, TherapySession
from haven.infrastructure.database.connection import Base
from haven.infrastructure.database.models.types import ACTIVE_STATES_SQL, JSONType


class TherapySessionModel(Base):
    """
    Therapy session database model.
    
    Table: therapy_sessions
    """
    
    __tablename__ = "therapy_sessions"
    __table_args__ = (
        Index(
            "uq_therapy_sessions_active_user",
            "user_id",
            unique=True,
            postgresql_where=text(ACTIVE_STATES_SQL),
            sqlite_where=text(ACTIVE_STATES_SQL),
        ),
        Index("ix_therapy_sessions_user_created", "user_id", "created_at"),
    )
    
    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        doc="Unique session identifier",
    )
    
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        nullable=False,
        doc="Owning user",
    )
    
    target_memory_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("target_memories.id"),
        nullable=False,
        doc="Memory being processed",
    )
    
    # State
    phase: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=TherapyPhase.PREPARATION.value,
    )
    
    lifecycle_state: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LifecycleState.PREPARING.value,
        index=True,
    )
    
    # Measurements
    initial_sud: Mapped[int] = mapped_column(Integer, nullable=False)
    initial_voc: Mapped[int] = mapped_column(Integer, nullable=False)
    current_sud: Mapped[int] = mapped_column(Integer, nullable=False)
    current_voc: Mapped[int] = mapped_column(Integer, nullable=False)
    final_sud: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    final_voc: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    
    current_set_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Sets run in the current phase",
    )
    
    last_set_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Session-wide set counter",
    )
    
    phase_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    
    phase_history: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        doc="Validated PhaseRecord entries, oldest first",
    )
    
    # Notes (sensitive)
    preparation_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pause_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completion_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    # Timing
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    total_duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
    )
    
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
    )
    
    def to_domain(self) -> TherapySession:
        return TherapySession(
            id=self.id,
            user_id=self.user_id,
            target_memory_id=self.target_memory_id,
            phase=TherapyPhase(self.phase),
            lifecycle_state=LifecycleState(self.lifecycle_state),
            initial_sud=self.initial_sud,
            initial_voc=self.initial_voc,
            current_sud=self.current_sud,
            current_voc=self.current_voc,
            final_sud=self.final_sud,
            final_voc=self.final_voc,
            current_set_number=self.current_set_number,
            last_set_number=self.last_set_number,
            phase_started_at=self.phase_started_at,
            phase_history=[PhaseRecord.from_dict(r) for r in self.phase_history or []],
            preparation_notes=self.preparation_notes,
            pause_reason=self.pause_reason,
            completion_notes=self.completion_notes,
            emergency_reason=self.emergency_reason,
            start_time=self.start_time,
            end_time=self.end_time,
            total_duration_seconds=self.total_duration_seconds,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
    
    @classmethod
    def from_domain(cls, session: TherapySession) -> "TherapySessionModel":
        model = cls(
            id=session.id,
            user_id=session.user_id,
            target_memory_id=session.target_memory_id,
            initial_sud=session.initial_sud,
            initial_voc=session.initial_voc,
            created_at=session.created_at,
        )
        model.apply(session)
        return model
    
    def apply(self, session: TherapySession) -> None:
        """Copy mutable session state onto this row."""
        self.phase = session.phase.value
        self.lifecycle_state = session.lifecycle_state.value
        self.current_sud = session.current_sud
        self.current_voc = session.current_voc
        self.final_sud = session.final_sud
        self.final_voc = session.final_voc
        self.current_set_number = session.current_set_number
        self.last_set_number = session.last_set_number
        self.phase_started_at = session.phase_started_at
        self.phase_history = [r.to_dict() for r in session.phase_history]
        self.preparation_notes = session.preparation_notes
        self.pause_reason = session.pause_reason
        self.completion_notes = session.completion_notes
        self.emergency_reason = session.emergency_reason
        self.start_time = session.start_time
        self.end_time = session.end_time
        self.total_duration_seconds = session.total_duration_seconds
        self.updated_at = session.updated_at
    
    def __repr__(self) -> str:
        return (
            f"<TherapySessionModel(id={self.id}, state={self.lifecycle_state}, "
            f"phase={self.phase})>"
        )
