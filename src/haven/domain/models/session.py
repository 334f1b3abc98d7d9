"""
Therapy Session Domain Model

Represents a guided reprocessing session and the archive of the
phases it has passed through.

PRIVACY: Notes fields may contain sensitive content and must never
be logged.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from haven.domain.clock import utc_now
from haven.domain.enums.session_enums import LifecycleState, TherapyPhase
from haven.domain.exceptions import ValidationError
from haven.domain.models.measurements import validate_sud, validate_voc


@dataclass
class PhaseRecord:
    """
    Archived data for a completed phase.
    
    Fixed-field record validated at construction so that the
    phase archive is never an untyped blob.
    
    Attributes:
        phase: Phase that was completed
        started_at: When the phase began
        completed_at: When the session advanced past it
        notes: Optional clinician/user notes
        set_count: Number of sets run during the phase
    """
    
    phase: TherapyPhase
    started_at: datetime
    completed_at: datetime
    notes: Optional[str] = None
    set_count: int = 0
    
    def __post_init__(self) -> None:
        if not isinstance(self.phase, TherapyPhase):
            self.phase = TherapyPhase(self.phase)
        if self.completed_at < self.started_at:
            raise ValidationError(
                "Phase completion precedes its start",
                phase=self.phase.value,
            )
        if self.set_count < 0:
            raise ValidationError("Phase set count cannot be negative", phase=self.phase.value)
    
    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "notes": self.notes,
            "set_count": self.set_count,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "PhaseRecord":
        return cls(
            phase=TherapyPhase(data["phase"]),
            started_at=datetime.fromisoformat(data["started_at"]),
            completed_at=datetime.fromisoformat(data["completed_at"]),
            notes=data.get("notes"),
            set_count=int(data.get("set_count", 0)),
        )


@dataclass
class TherapySession:
    """
    Session entity.
    
    Lifecycle changes are driven exclusively by the
    SessionStateMachine; this class only holds state.
    
    Attributes:
        id: Unique session identifier
        user_id: Owning user
        target_memory_id: Memory being processed
        phase: Current protocol phase
        lifecycle_state: Current lifecycle state
        initial_sud / current_sud / final_sud: Distress scores
        initial_voc / current_voc / final_voc: Cognition validity scores
        current_set_number: Sets run in the current phase (reset on advance)
        last_set_number: Session-wide set counter (monotonic, never reset)
        phase_started_at: When the current phase began
        phase_history: Archived records of completed phases
    """
    
    user_id: UUID
    target_memory_id: UUID
    initial_sud: int
    initial_voc: int
    id: UUID = field(default_factory=uuid4)
    phase: TherapyPhase = TherapyPhase.PREPARATION
    lifecycle_state: LifecycleState = LifecycleState.PREPARING
    current_sud: Optional[int] = None
    current_voc: Optional[int] = None
    final_sud: Optional[int] = None
    final_voc: Optional[int] = None
    current_set_number: int = 0
    last_set_number: int = 0
    phase_started_at: Optional[datetime] = None
    phase_history: list[PhaseRecord] = field(default_factory=list)
    
    # Notes and reasons
    preparation_notes: Optional[str] = None
    pause_reason: Optional[str] = None
    completion_notes: Optional[str] = None
    emergency_reason: Optional[str] = None
    
    # Timestamps
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_duration_seconds: Optional[int] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    
    def __post_init__(self) -> None:
        validate_sud(self.initial_sud, "initial_sud")
        validate_voc(self.initial_voc, "initial_voc")
        if self.current_sud is None:
            self.current_sud = self.initial_sud
        if self.current_voc is None:
            self.current_voc = self.initial_voc
        if self.phase_started_at is None:
            self.phase_started_at = self.created_at
    
    @property
    def is_terminal(self) -> bool:
        return self.lifecycle_state.is_terminal
    
    def elapsed_minutes(self, now: Optional[datetime] = None) -> float:
        """Minutes since the session started (0 if not started)."""
        if self.start_time is None:
            return 0.0
        end = self.end_time or now or utc_now()
        return max(0.0, (end - self.start_time).total_seconds() / 60.0)
    
    def get_phase_record(self, phase: TherapyPhase) -> Optional[PhaseRecord]:
        for record in self.phase_history:
            if record.phase == phase:
                return record
        return None
    
    def to_dict(self) -> dict:
        """Serialize session to dictionary (notes excluded)."""
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "target_memory_id": str(self.target_memory_id),
            "phase": self.phase.value,
            "lifecycle_state": self.lifecycle_state.value,
            "initial_sud": self.initial_sud,
            "current_sud": self.current_sud,
            "final_sud": self.final_sud,
            "initial_voc": self.initial_voc,
            "current_voc": self.current_voc,
            "final_voc": self.final_voc,
            "current_set_number": self.current_set_number,
            "last_set_number": self.last_set_number,
            "phase_history": [r.to_dict() for r in self.phase_history],
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "total_duration_seconds": self.total_duration_seconds,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class TargetMemory:
    """
    Memory targeted by a session.
    
    Owned by the external persistence layer; the core only checks
    ownership and marks it resolved.
    """
    
    user_id: UUID
    description: str = ""
    id: UUID = field(default_factory=uuid4)
    is_active: bool = True
    is_resolved: bool = False
    created_at: datetime = field(default_factory=utc_now)
