"""
Static Guidance Provider

Fixed, clinically reviewed messages per recommended action.
Used as the default provider and as the fallback whenever a
generating provider fails.
"""

from haven.domain.enums.safety_enums import SafetyAction
from haven.infrastructure.llm.provider import GuidanceContext, GuidanceTextProvider


# CLINICAL_VALIDATION_REQUIRED
STATIC_MESSAGES: dict[SafetyAction, str] = {
    SafetyAction.CONTINUE: "You're doing well. We can continue when you're ready.",
    SafetyAction.GROUNDING: "Let's take a moment to ground ourselves before going on.",
    SafetyAction.PAUSE: "Let's pause here and take care of how you're feeling right now.",
    SafetyAction.EMERGENCY_STOP: "Your safety comes first. We're stopping now, and support is available.",
    SafetyAction.PROFESSIONAL_REFERRAL: "A licensed professional can support you with what you're feeling.",
}


class StaticGuidanceProvider(GuidanceTextProvider):
    """
    Deterministic guidance provider.
    
    Usage:
        provider = StaticGuidanceProvider()
        message = await provider.generate(context)
    """
    
    @property
    def provider_name(self) -> str:
        return "static"
    
    def message_for(self, action: SafetyAction) -> str:
        return STATIC_MESSAGES[action]
    
    async def generate(self, context: GuidanceContext) -> str:
        return self.message_for(context.action)
