"""
Measurement Models

Subjective Units of Distress (SUD, 0-10) and Validity of
Cognition (VOC, 1-7) validation, plus the per-set user feedback
record.

CLINICAL_VALIDATION_REQUIRED: Scale bounds follow the standard
protocol definitions.
"""

from dataclasses import dataclass
from typing import Any, Optional

from haven.domain.exceptions import ValidationError

SUD_MIN = 0
SUD_MAX = 10
VOC_MIN = 1
VOC_MAX = 7


def _validate_scale(value: Any, name: str, low: int, high: int) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{name} must be an integer between {low} and {high}",
            field=name,
            value=value,
        )
    if value < low or value > high:
        raise ValidationError(
            f"{name} must be between {low} and {high}",
            field=name,
            value=value,
        )
    return value


def validate_sud(value: Any, name: str = "sud") -> int:
    """
    Validate a SUD score.
    
    Raises:
        ValidationError: If value is not an integer in [0, 10]
    """
    return _validate_scale(value, name, SUD_MIN, SUD_MAX)


def validate_voc(value: Any, name: str = "voc") -> int:
    """
    Validate a VOC score.
    
    Raises:
        ValidationError: If value is not an integer in [1, 7]
    """
    return _validate_scale(value, name, VOC_MIN, VOC_MAX)


@dataclass
class SetFeedback:
    """
    User feedback collected at the end of a set.
    
    Attributes:
        sud: Distress after the set (0-10)
        voc: Optional validity of cognition (1-7)
        notes: Optional free-text notes (never logged)
        overwhelm: User reported feeling overwhelmed
        dissociation: User reported dissociation
    """
    
    sud: int
    voc: Optional[int] = None
    notes: Optional[str] = None
    overwhelm: bool = False
    dissociation: bool = False
    
    def __post_init__(self) -> None:
        validate_sud(self.sud)
        if self.voc is not None:
            validate_voc(self.voc)
    
    @property
    def requires_safety_check(self) -> bool:
        """Whether the feedback should trigger an out-of-band safety check."""
        return bool(self.overwhelm or self.dissociation)
    
    def describe_concern(self) -> str:
        concerns = []
        if self.overwhelm:
            concerns.append("overwhelm")
        if self.dissociation:
            concerns.append("dissociation")
        return " and ".join(concerns)
    
    def to_dict(self) -> dict:
        return {
            "sud": self.sud,
            "voc": self.voc,
            "notes": self.notes,
            "overwhelm": self.overwhelm,
            "dissociation": self.dissociation,
        }
    
    @classmethod
    def from_dict(cls, data: dict) -> "SetFeedback":
        """Create feedback from a dictionary, validating scores."""
        if "sud" not in data:
            raise ValidationError("Feedback requires a sud value", field="sud")
        return cls(
            sud=data["sud"],
            voc=data.get("voc"),
            notes=data.get("notes"),
            overwhelm=bool(data.get("overwhelm", False)),
            dissociation=bool(data.get("dissociation", False)),
        )
