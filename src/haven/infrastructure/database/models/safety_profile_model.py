"""
User Safety Profile ORM Model

Externally maintained risk classification consumed by the
risk evaluator.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from haven.domain.clock import utc_now
from haven.domain.enums.safety_enums import ProfileRiskLevel
from haven.domain.models.safety_models import UserSafetyProfile
from haven.infrastructure.database.connection import Base


class UserSafetyProfileModel(Base):
    """
    Table: user_safety_profiles
    """
    
    __tablename__ = "user_safety_profiles"
    
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        doc="User the profile belongs to",
    )
    
    risk_level: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProfileRiskLevel.LOW.value,
        doc="low, medium, high or critical",
    )
    
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )
    
    def to_domain(self) -> UserSafetyProfile:
        return UserSafetyProfile(
            user_id=self.user_id,
            risk_level=ProfileRiskLevel(self.risk_level),
            updated_at=self.updated_at,
        )
    
    @classmethod
    def from_domain(cls, profile: UserSafetyProfile) -> "UserSafetyProfileModel":
        return cls(
            user_id=profile.user_id,
            risk_level=profile.risk_level.value,
            updated_at=profile.updated_at,
        )
