"""
Stimulation Set ORM Model

One row per bilateral stimulation set. Set numbers are unique
per session, and at most one set per session may be open.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from haven.domain.enums.session_enums import TherapyPhase
from haven.domain.models.measurements import SetFeedback
from haven.domain.models.stimulation_set import StimulationSet
from haven.infrastructure.database.connection import Base
from haven.infrastructure.database.models.types import JSONType


class StimulationSetModel(Base):
    """
    Table: stimulation_sets
    """
    
    __tablename__ = "stimulation_sets"
    __table_args__ = (
        UniqueConstraint("session_id", "set_number", name="uq_stimulation_sets_number"),
        Index(
            "uq_stimulation_sets_open",
            "session_id",
            unique=True,
            postgresql_where=text("end_time IS NULL"),
            sqlite_where=text("end_time IS NULL"),
        ),
    )
    
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    
    session_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("therapy_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    
    set_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Session-wide position, starting at 1",
    )
    
    phase: Mapped[str] = mapped_column(String(30), nullable=False)
    
    phase_set_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Position within the phase",
    )
    
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    
    stimulation_settings: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    user_feedback: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    agent_observations: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    
    interrupted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Closed by a terminal transition rather than feedback",
    )
    
    def to_domain(self) -> StimulationSet:
        return StimulationSet(
            id=self.id,
            session_id=self.session_id,
            set_number=self.set_number,
            phase=TherapyPhase(self.phase),
            phase_set_number=self.phase_set_number,
            start_time=self.start_time,
            end_time=self.end_time,
            duration_seconds=self.duration_seconds,
            stimulation_settings=dict(self.stimulation_settings or {}),
            user_feedback=SetFeedback.from_dict(self.user_feedback) if self.user_feedback else None,
            agent_observations=self.agent_observations,
            interrupted=self.interrupted,
        )
    
    @classmethod
    def from_domain(cls, stimulation_set: StimulationSet) -> "StimulationSetModel":
        model = cls(
            id=stimulation_set.id,
            session_id=stimulation_set.session_id,
            set_number=stimulation_set.set_number,
            phase=stimulation_set.phase.value,
            phase_set_number=stimulation_set.phase_set_number,
            start_time=stimulation_set.start_time,
        )
        model.apply(stimulation_set)
        return model
    
    def apply(self, stimulation_set: StimulationSet) -> None:
        """Copy closing data onto this row."""
        feedback = stimulation_set.user_feedback
        self.end_time = stimulation_set.end_time
        self.duration_seconds = stimulation_set.duration_seconds
        self.stimulation_settings = dict(stimulation_set.stimulation_settings)
        self.user_feedback = feedback.to_dict() if feedback else None
        self.agent_observations = stimulation_set.agent_observations
        self.interrupted = stimulation_set.interrupted
