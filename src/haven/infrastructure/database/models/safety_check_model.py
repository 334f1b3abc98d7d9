"""
Safety Check ORM Model

Append-only audit record of every safety assessment.

AUDIT: Rows are never updated or deleted by the session core.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from haven.domain.enums.safety_enums import RiskLevel, SafetyAction, SafetyCheckType
from haven.domain.models.safety_models import Intervention, SafetyCheck, SafetyIndicator
from haven.infrastructure.database.connection import Base
from haven.infrastructure.database.models.types import JSONType


class SafetyCheckModel(Base):
    """
    Table: safety_checks
    """
    
    __tablename__ = "safety_checks"
    __table_args__ = (
        Index("ix_safety_checks_session_timestamp", "session_id", "timestamp"),
    )
    
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    
    session_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("therapy_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    
    check_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="automatic, manual or emergency",
    )
    
    risk_level: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="RiskLevel member name",
    )
    
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    
    measurements_snapshot: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    intervention: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    indicators: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Reason for the check (sensitive)",
    )
    
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    
    def to_domain(self) -> SafetyCheck:
        return SafetyCheck(
            id=self.id,
            session_id=self.session_id,
            check_type=SafetyCheckType(self.check_type),
            risk_level=RiskLevel[self.risk_level],
            action=SafetyAction(self.action),
            measurements_snapshot=dict(self.measurements_snapshot or {}),
            intervention=Intervention.from_dict(self.intervention) if self.intervention else None,
            indicators=[SafetyIndicator.from_dict(i) for i in self.indicators or []],
            notes=self.notes,
            timestamp=self.timestamp,
        )
    
    @classmethod
    def from_domain(cls, check: SafetyCheck) -> "SafetyCheckModel":
        return cls(
            id=check.id,
            session_id=check.session_id,
            check_type=check.check_type.value,
            risk_level=check.risk_level.name,
            action=check.action.value,
            measurements_snapshot=dict(check.measurements_snapshot),
            intervention=check.intervention.to_dict() if check.intervention else None,
            indicators=[i.to_dict() for i in check.indicators],
            notes=check.notes,
            timestamp=check.timestamp,
        )
