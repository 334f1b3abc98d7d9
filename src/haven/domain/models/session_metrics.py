"""
Session Metrics Model

Trend summary of SUD/VOC measurements across a session's sets
and the safety events raised along the way.

CLINICAL_VALIDATION_REQUIRED: "Improvement" here is a plain
difference of scale values, not a validated outcome measure.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

from haven.domain.enums.safety_enums import SafetyAction
from haven.domain.models.safety_models import SafetyCheck
from haven.domain.models.session import TherapySession
from haven.domain.models.stimulation_set import StimulationSet


@dataclass
class MeasurementPoint:
    """
    Single feedback measurement after a set.
    
    Attributes:
        set_number: Session-wide set number (0 for the baseline)
        timestamp: When the measurement was taken
        sud: Distress score
        voc: Validity of cognition, if reported
    """
    
    set_number: int
    timestamp: datetime
    sud: int
    voc: Optional[int] = None
    
    def to_dict(self) -> dict:
        return {
            "set_number": self.set_number,
            "timestamp": self.timestamp.isoformat(),
            "sud": self.sud,
            "voc": self.voc,
        }


@dataclass
class SessionMetrics:
    """
    Trend summary for a session.
    
    Attributes:
        session_id: Session summarized
        trajectory: Baseline plus one point per set with feedback
        peak_sud: Highest SUD observed
        sud_change: Current SUD minus initial SUD (negative is improvement)
        voc_change: Current VOC minus initial VOC
        set_count: Sets started
        interrupted_sets: Sets closed by a terminal transition
        safety_event_count: Checks recommending anything but continue
        duration_seconds: Elapsed or total session duration
    """
    
    session_id: UUID
    trajectory: list[MeasurementPoint] = field(default_factory=list)
    peak_sud: int = 0
    sud_change: int = 0
    voc_change: int = 0
    set_count: int = 0
    interrupted_sets: int = 0
    safety_event_count: int = 0
    duration_seconds: int = 0
    
    @property
    def sud_series(self) -> list[int]:
        return [point.sud for point in self.trajectory]
    
    @property
    def voc_series(self) -> list[int]:
        return [point.voc for point in self.trajectory if point.voc is not None]
    
    @classmethod
    def build(
        cls,
        session: TherapySession,
        sets: list[StimulationSet],
        checks: list[SafetyCheck],
        now: datetime,
    ) -> "SessionMetrics":
        """Summarize a session from its persisted sets and checks."""
        trajectory = [
            MeasurementPoint(
                set_number=0,
                timestamp=session.start_time or session.created_at,
                sud=session.initial_sud,
                voc=session.initial_voc,
            )
        ]
        for stimulation_set in sorted(sets, key=lambda s: s.set_number):
            feedback = stimulation_set.user_feedback
            if feedback is None or stimulation_set.end_time is None:
                continue
            trajectory.append(
                MeasurementPoint(
                    set_number=stimulation_set.set_number,
                    timestamp=stimulation_set.end_time,
                    sud=feedback.sud,
                    voc=feedback.voc,
                )
            )
        
        if session.total_duration_seconds is not None:
            duration = session.total_duration_seconds
        else:
            duration = int(session.elapsed_minutes(now) * 60)
        
        return cls(
            session_id=session.id,
            trajectory=trajectory,
            peak_sud=max(point.sud for point in trajectory),
            sud_change=session.current_sud - session.initial_sud,
            voc_change=session.current_voc - session.initial_voc,
            set_count=len(sets),
            interrupted_sets=sum(1 for s in sets if s.interrupted),
            safety_event_count=sum(
                1 for check in checks if check.action != SafetyAction.CONTINUE
            ),
            duration_seconds=duration,
        )
    
    def to_dict(self) -> dict:
        return {
            "session_id": str(self.session_id),
            "trajectory": [p.to_dict() for p in self.trajectory],
            "sud_series": self.sud_series,
            "voc_series": self.voc_series,
            "peak_sud": self.peak_sud,
            "sud_change": self.sud_change,
            "voc_change": self.voc_change,
            "set_count": self.set_count,
            "interrupted_sets": self.interrupted_sets,
            "safety_event_count": self.safety_event_count,
            "duration_seconds": self.duration_seconds,
        }
