"""
Intervention Selector

Maps a recommended safety action and its indicators to concrete
intervention content: grounding steps, stabilization scripts and
crisis resources.

SAFETY-CRITICAL: Every non-continue action must produce an
intervention the user can act on. Never a bare error code.

CLINICAL_VALIDATION_REQUIRED: Scripts and technique effectiveness
priors need clinical review.
"""

from typing import Optional

from haven.config.logging_config import get_logger
from haven.domain.enums.safety_enums import (
    CrisisResourceType,
    IndicatorType,
    InterventionType,
    SafetyAction,
)
from haven.domain.exceptions import NotFoundError, ValidationError
from haven.domain.models.safety_models import (
    GroundingTechnique,
    Intervention,
    SafetyIndicator,
)
from haven.services.safety.crisis_resources import CrisisResourceDirectory

logger = get_logger(__name__)


DEFAULT_TECHNIQUE_ID = "5-4-3-2-1"

GROUNDING_INTRO = "Let's try a grounding technique together."
GROUNDING_OUTRO = "Take three deep breaths with me."
DISTRESS_REASSURANCE = "Remember: these feelings are temporary and will pass."

PAUSE_SCRIPT = (
    "Let's pause the session for a moment.",
    "Take some deep breaths with me.",
    "Notice your feet on the floor and your body in the chair.",
    "We can continue when you feel ready, or end the session if you prefer.",
)

EMERGENCY_SCRIPT = (
    "We're stopping the session immediately for your safety.",
    "You are safe right now in this moment.",
    "Let's focus on grounding techniques.",
    "Professional support is available if needed.",
)

REFERRAL_SCRIPT = (
    "I recommend connecting with a licensed mental health professional.",
    "This level of distress may benefit from professional support.",
    "You don't have to handle this alone.",
)

FAIL_SAFE_SCRIPT = (
    "We're pausing for safety due to a system error.",
    "Please take some deep breaths.",
    "If you need immediate help, contact emergency services.",
)

PAUSE_DURATION_MINUTES = 10
EMERGENCY_DURATION_MINUTES = 15
REFERRAL_DURATION_MINUTES = 5


def _built_in_techniques() -> list[GroundingTechnique]:
    return [
        GroundingTechnique(
            id="5-4-3-2-1",
            name="5-4-3-2-1 Sensory Grounding",
            category="sensory",
            instructions=[
                "Name 5 things you can see around you.",
                "Name 4 things you can touch.",
                "Name 3 things you can hear.",
                "Name 2 things you can smell.",
                "Name 1 thing you can taste.",
            ],
            effectiveness=0.85,
            duration_minutes=5,
        ),
        GroundingTechnique(
            id="box-breathing",
            name="Box Breathing",
            category="breathing",
            instructions=[
                "Breathe in slowly for a count of 4.",
                "Hold your breath for a count of 4.",
                "Breathe out slowly for a count of 4.",
                "Hold again for a count of 4.",
                "Repeat this cycle four times.",
            ],
            effectiveness=0.80,
            duration_minutes=3,
        ),
        GroundingTechnique(
            id="safe-place",
            name="Safe Place Visualization",
            category="imagery",
            instructions=[
                "Close your eyes if that feels comfortable.",
                "Bring to mind your safe, calm place.",
                "Notice what you see, hear and feel there.",
                "Let yourself rest in that place for a few breaths.",
            ],
            effectiveness=0.75,
            duration_minutes=7,
        ),
    ]


class GroundingLibrary:
    """
    Ranked library of grounding techniques.

    Ranking is by effectiveness, a running mean of reported scores
    seeded with a prior. Ties keep library order.

    Usage:
        library = GroundingLibrary()
        technique = library.best()
        library.report_effectiveness("box-breathing", 0.9)
    """

    def __init__(self, techniques: Optional[list[GroundingTechnique]] = None) -> None:
        self._techniques: dict[str, GroundingTechnique] = {
            t.id: t for t in (techniques or _built_in_techniques())
        }

    def list_techniques(self, category: Optional[str] = None) -> list[GroundingTechnique]:
        """List techniques, most effective first."""
        techniques = [
            t for t in self._techniques.values()
            if category is None or t.category == category
        ]
        return sorted(techniques, key=lambda t: t.effectiveness, reverse=True)

    def get(self, technique_id: str) -> GroundingTechnique:
        try:
            return self._techniques[technique_id]
        except KeyError:
            raise NotFoundError("Grounding technique not found", technique_id=technique_id) from None

    def best(self) -> GroundingTechnique:
        """Highest-ranked technique, or the sensory default on an empty ranking."""
        ranked = self.list_techniques()
        if ranked:
            return ranked[0]
        return _built_in_techniques()[0]

    def report_effectiveness(self, technique_id: str, score: float) -> GroundingTechnique:
        """
        Fold a reported effectiveness score into the running mean.

        Raises:
            ValidationError: If score is outside [0, 1]
            NotFoundError: If the technique is unknown
        """
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0.0 <= score <= 1.0:
            raise ValidationError(
                "Effectiveness score must be between 0 and 1",
                field="score",
                value=score,
            )

        technique = self.get(technique_id)
        total = technique.effectiveness * technique.rating_count + score
        technique.rating_count += 1
        technique.effectiveness = total / technique.rating_count

        logger.info(
            "Grounding effectiveness reported",
            technique_id=technique_id,
            effectiveness=round(technique.effectiveness, 3),
            rating_count=technique.rating_count,
        )
        return technique


class InterventionSelector:
    """
    Selects intervention content for a recommended action.

    Selection depends only on its inputs, the technique ranking and
    the resource directory; it performs no I/O.

    Usage:
        selector = InterventionSelector(library, directory)
        intervention = selector.select(SafetyAction.GROUNDING, indicators)
    """

    def __init__(
        self,
        library: Optional[GroundingLibrary] = None,
        directory: Optional[CrisisResourceDirectory] = None,
    ) -> None:
        self.library = library or GroundingLibrary()
        self.directory = directory or CrisisResourceDirectory()

    def select(
        self,
        action: SafetyAction,
        indicators: list[SafetyIndicator],
    ) -> Optional[Intervention]:
        """
        Build the intervention for an action.

        Returns:
            Intervention, or None when the action is CONTINUE
        """
        if action == SafetyAction.CONTINUE:
            return None
        if action == SafetyAction.GROUNDING:
            return self._grounding(indicators)
        if action == SafetyAction.PAUSE:
            return Intervention(
                type=InterventionType.PAUSE,
                instructions=list(PAUSE_SCRIPT),
                follow_up_required=True,
                estimated_duration_minutes=PAUSE_DURATION_MINUTES,
            )
        if action == SafetyAction.EMERGENCY_STOP:
            return self.emergency()
        if action == SafetyAction.PROFESSIONAL_REFERRAL:
            return self._referral()
        raise ValueError(f"Unknown safety action: {action}")

    def _grounding(self, indicators: list[SafetyIndicator]) -> Intervention:
        technique = self.library.best()
        instructions = [GROUNDING_INTRO, *technique.instructions, GROUNDING_OUTRO]
        if any(i.type == IndicatorType.DISTRESS for i in indicators):
            instructions.append(DISTRESS_REASSURANCE)
        return Intervention(
            type=InterventionType.GROUNDING,
            instructions=instructions,
            follow_up_required=True,
            estimated_duration_minutes=technique.duration_minutes,
            technique_id=technique.id,
        )

    def emergency(self) -> Intervention:
        """Stabilization script with the full crisis-resource list."""
        return Intervention(
            type=InterventionType.EMERGENCY_STOP,
            instructions=list(EMERGENCY_SCRIPT),
            resources=self.directory.list_resources(),
            follow_up_required=True,
            estimated_duration_minutes=EMERGENCY_DURATION_MINUTES,
        )

    def _referral(self) -> Intervention:
        resources = self.directory.list_resources(CrisisResourceType.PROFESSIONAL)
        if not resources:
            logger.warning("No professional resources for jurisdiction, attaching all")
            resources = self.directory.list_resources()
        return Intervention(
            type=InterventionType.PROFESSIONAL_REFERRAL,
            instructions=list(REFERRAL_SCRIPT),
            resources=resources,
            follow_up_required=True,
            estimated_duration_minutes=REFERRAL_DURATION_MINUTES,
        )

    def fail_safe(self) -> Intervention:
        """Generic pause used when assessment itself failed."""
        return Intervention(
            type=InterventionType.PAUSE,
            instructions=list(FAIL_SAFE_SCRIPT),
            resources=self.directory.list_resources(),
            follow_up_required=True,
            estimated_duration_minutes=PAUSE_DURATION_MINUTES,
        )
