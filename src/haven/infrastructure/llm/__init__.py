"""Guidance text provider abstraction package."""

from haven.infrastructure.llm.provider import (
    GuidanceContext,
    GuidanceTextProvider,
    GuidanceProviderError,
    RateLimitError,
    ContentFilterError,
)
from haven.infrastructure.llm.static_provider import StaticGuidanceProvider
from haven.infrastructure.llm.provider_factory import (
    GuidanceProviderType,
    create_guidance_provider,
)

__all__ = [
    # Base types
    "GuidanceContext",
    "GuidanceTextProvider",
    "GuidanceProviderError",
    "RateLimitError",
    "ContentFilterError",
    # Providers
    "StaticGuidanceProvider",
    # Factory
    "GuidanceProviderType",
    "create_guidance_provider",
]
