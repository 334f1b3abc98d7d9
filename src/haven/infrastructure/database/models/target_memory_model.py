"""
Target Memory ORM Model

Externally owned memory records. The session core only reads
ownership/active flags and marks memories resolved.

PRIVACY: description is user-authored and must never be logged.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from haven.domain.clock import utc_now
from haven.domain.models.session import TargetMemory
from haven.infrastructure.database.connection import Base


class TargetMemoryModel(Base):
    """
    Target memory database model.
    
    Table: target_memories
    """
    
    __tablename__ = "target_memories"
    
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
        doc="Unique memory identifier",
    )
    
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
        doc="Owning user",
    )
    
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        doc="User description of the memory (sensitive)",
    )
    
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Whether the memory may be targeted",
    )
    
    is_resolved: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Set when a session completes with resolution criteria met",
    )
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
    )
    
    def to_domain(self) -> TargetMemory:
        return TargetMemory(
            id=self.id,
            user_id=self.user_id,
            description=self.description,
            is_active=self.is_active,
            is_resolved=self.is_resolved,
            created_at=self.created_at,
        )
    
    @classmethod
    def from_domain(cls, memory: TargetMemory) -> "TargetMemoryModel":
        return cls(
            id=memory.id,
            user_id=memory.user_id,
            description=memory.description,
            is_active=memory.is_active,
            is_resolved=memory.is_resolved,
            created_at=memory.created_at,
        )
    
    def __repr__(self) -> str:
        return f"<TargetMemoryModel(id={self.id}, resolved={self.is_resolved})>"
