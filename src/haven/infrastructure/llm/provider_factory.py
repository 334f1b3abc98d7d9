"""
Guidance Provider Factory

Creates the guidance text provider selected by configuration.

CONFIGURATION:
    HAVEN_GUIDANCE_PROVIDER=static  # or: openai
"""

from enum import StrEnum

from haven.config.logging_config import get_logger
from haven.config.settings import Settings
from haven.infrastructure.llm.provider import GuidanceTextProvider
from haven.infrastructure.llm.static_provider import StaticGuidanceProvider

logger = get_logger(__name__)


class GuidanceProviderType(StrEnum):
    """Supported guidance provider types."""
    
    STATIC = "static"
    OPENAI = "openai"


def create_guidance_provider(settings: Settings) -> GuidanceTextProvider:
    """
    Create a guidance provider from settings.
    
    Falls back to the static provider when OpenAI is selected but
    no API key is configured.
    
    Raises:
        ValueError: If unknown provider type
    """
    provider_type = GuidanceProviderType(settings.guidance_provider)
    
    if provider_type == GuidanceProviderType.STATIC:
        provider: GuidanceTextProvider = StaticGuidanceProvider()
    elif provider_type == GuidanceProviderType.OPENAI:
        if not settings.openai.api_key.get_secret_value():
            logger.warning("OpenAI guidance selected without API key, using static provider")
            provider = StaticGuidanceProvider()
        else:
            from haven.infrastructure.llm.openai_provider import OpenAIGuidanceProvider
            provider = OpenAIGuidanceProvider(settings.openai)
    else:
        raise ValueError(f"Unknown provider type: {provider_type}")
    
    logger.info("Guidance provider initialized", provider=provider.provider_name)
    return provider
