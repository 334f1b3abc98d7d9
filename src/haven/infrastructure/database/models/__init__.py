"""
Database ORM models package.
"""

from haven.infrastructure.database.models.target_memory_model import TargetMemoryModel
from haven.infrastructure.database.models.safety_profile_model import UserSafetyProfileModel
from haven.infrastructure.database.models.therapy_session_model import TherapySessionModel
from haven.infrastructure.database.models.stimulation_set_model import StimulationSetModel
from haven.infrastructure.database.models.safety_check_model import SafetyCheckModel

__all__ = [
    "TargetMemoryModel",
    "UserSafetyProfileModel",
    "TherapySessionModel",
    "StimulationSetModel",
    "SafetyCheckModel",
]
