"""
Guidance Text Provider Abstract Interface

Defines the contract for generators of short user-facing
guidance messages. The core passes context and receives a string;
prompt construction stays inside each provider.

ARCHITECTURE: All guidance text goes through this interface so the
generator can be swapped (static scripts, OpenAI, self-hosted).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from haven.domain.enums.safety_enums import RiskLevel, SafetyAction
from haven.domain.enums.session_enums import TherapyPhase


@dataclass
class GuidanceContext:
    """
    Context passed to a guidance provider.
    
    PRIVACY: Only structured values. Never free-text notes or
    memory descriptions.
    """
    
    action: SafetyAction
    risk_level: RiskLevel
    phase: Optional[TherapyPhase] = None
    current_sud: Optional[int] = None
    indicator_types: list[str] = field(default_factory=list)
    technique_name: Optional[str] = None


class GuidanceTextProvider(ABC):
    """
    Abstract guidance text provider.
    
    Implementations must either return a non-empty string or raise
    GuidanceProviderError; callers fall back to static text.
    """
    
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name for logging/tracking."""
        pass
    
    @abstractmethod
    async def generate(self, context: GuidanceContext) -> str:
        """
        Generate a supportive guidance message.
        
        Raises:
            GuidanceProviderError: On provider failure
        """
        pass
    
    async def health_check(self) -> bool:
        return True
    
    async def close(self) -> None:
        """Release provider resources."""
        return None


class GuidanceProviderError(Exception):
    """Base exception for guidance provider errors."""
    
    def __init__(
        self,
        message: str,
        provider: str,
        is_retryable: bool = False,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.is_retryable = is_retryable
        self.original_error = original_error


class RateLimitError(GuidanceProviderError):
    """Rate limit exceeded error."""
    
    def __init__(
        self,
        provider: str,
        retry_after_seconds: Optional[int] = None,
    ) -> None:
        super().__init__(
            f"Rate limit exceeded for {provider}",
            provider=provider,
            is_retryable=True,
        )
        self.retry_after_seconds = retry_after_seconds


class ContentFilterError(GuidanceProviderError):
    """Content was filtered by provider's safety systems."""
    
    def __init__(self, provider: str, filter_reason: str = "") -> None:
        super().__init__(
            f"Content filtered by {provider}: {filter_reason}",
            provider=provider,
            is_retryable=False,
        )
        self.filter_reason = filter_reason
