"""
Stimulation Set Domain Model

One bounded unit of bilateral stimulation plus the feedback
collected after it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from haven.domain.clock import utc_now
from haven.domain.enums.session_enums import TherapyPhase
from haven.domain.models.measurements import SetFeedback


@dataclass
class StimulationSet:
    """
    A single set within a session.
    
    Attributes:
        session_id: Owning session
        set_number: Session-wide number, starts at 1, no gaps
        phase: Phase during which the set ran
        phase_set_number: Position of the set within its phase
        start_time / end_time: Set boundaries
        duration_seconds: Computed on close
        stimulation_settings: Opaque rendering settings
        user_feedback: Feedback recorded on close
        agent_observations: Opaque observations from the guiding agent
        interrupted: Closed by a terminal transition, not by feedback
    """
    
    session_id: UUID
    set_number: int
    phase: TherapyPhase
    phase_set_number: int
    id: UUID = field(default_factory=uuid4)
    start_time: datetime = field(default_factory=utc_now)
    end_time: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    stimulation_settings: dict = field(default_factory=dict)
    user_feedback: Optional[SetFeedback] = None
    agent_observations: Optional[dict] = None
    interrupted: bool = False
    
    @property
    def is_open(self) -> bool:
        return self.end_time is None
    
    def close(
        self,
        end_time: datetime,
        feedback: Optional[SetFeedback] = None,
        agent_observations: Optional[dict] = None,
    ) -> None:
        """Close the set and compute its duration."""
        self.end_time = end_time
        self.duration_seconds = max(0, int((end_time - self.start_time).total_seconds()))
        self.user_feedback = feedback
        self.agent_observations = agent_observations
        self.interrupted = feedback is None
    
    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "session_id": str(self.session_id),
            "set_number": self.set_number,
            "phase": self.phase.value,
            "phase_set_number": self.phase_set_number,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": self.duration_seconds,
            "stimulation_settings": self.stimulation_settings,
            "user_feedback": self.user_feedback.to_dict() if self.user_feedback else None,
            "interrupted": self.interrupted,
        }
