"""
Repository pattern implementations package.
"""

from haven.infrastructure.database.repositories.base import BaseRepository
from haven.infrastructure.database.repositories.session_repository import TherapySessionRepository
from haven.infrastructure.database.repositories.set_repository import StimulationSetRepository
from haven.infrastructure.database.repositories.safety_check_repository import SafetyCheckRepository

__all__ = [
    "BaseRepository",
    "TherapySessionRepository",
    "StimulationSetRepository",
    "SafetyCheckRepository",
]
