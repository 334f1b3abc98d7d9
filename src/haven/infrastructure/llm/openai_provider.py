"""
OpenAI Guidance Provider

Generates a single supportive sentence for an intervention using
the OpenAI chat completions API. Includes retries and error
handling; callers fall back to static text on any error.
"""

from typing import Optional

from openai import AsyncOpenAI, APIError, RateLimitError as OpenAIRateLimitError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from haven.config.logging_config import get_logger
from haven.config.settings import OpenAISettings
from haven.infrastructure.llm.provider import (
    ContentFilterError,
    GuidanceContext,
    GuidanceProviderError,
    GuidanceTextProvider,
    RateLimitError,
)
from haven.infrastructure.metrics.prometheus_metrics import track_guidance_request

logger = get_logger(__name__)


SYSTEM_PROMPT = (
    "You support a person during a guided trauma-processing session. "
    "Write ONE short, calm, supportive sentence (max 30 words) that "
    "introduces the recommended safety step. Do not give medical advice, "
    "do not mention diagnoses, and do not ask about the memory itself."
)


def build_messages(context: GuidanceContext) -> list[dict[str, str]]:
    """Build chat messages from structured context only."""
    details = [
        f"Recommended step: {context.action.value.replace('_', ' ')}",
        f"Risk level: {context.risk_level.name.lower()}",
    ]
    if context.phase is not None:
        details.append(f"Session phase: {context.phase.value.replace('_', ' ')}")
    if context.current_sud is not None:
        details.append(f"Current distress (0-10): {context.current_sud}")
    if context.indicator_types:
        details.append(f"Signals: {', '.join(context.indicator_types)}")
    if context.technique_name:
        details.append(f"Technique: {context.technique_name}")
    
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(details)},
    ]


class OpenAIGuidanceProvider(GuidanceTextProvider):
    """
    OpenAI guidance provider.
    
    Usage:
        provider = OpenAIGuidanceProvider(settings.openai)
        message = await provider.generate(context)
    """
    
    def __init__(
        self,
        settings: OpenAISettings,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Initialize OpenAI provider.
        
        Args:
            settings: OpenAI settings group
            client: Optional preconstructed client (tests)
        """
        self._api_key = settings.api_key.get_secret_value()
        self._model = settings.model
        self._max_tokens = settings.max_tokens
        self._temperature = settings.temperature
        self._client = client
    
    @property
    def provider_name(self) -> str:
        return "openai"
    
    def is_configured(self) -> bool:
        """Check if API key is configured."""
        return bool(self._client is not None or self._api_key)
    
    def _get_client(self) -> AsyncOpenAI:
        """Get or create async client."""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client
    
    @track_guidance_request("openai")
    async def generate(self, context: GuidanceContext) -> str:
        if not self.is_configured():
            raise GuidanceProviderError(
                "OpenAI API key not configured",
                provider=self.provider_name,
            )
        
        try:
            return await self._complete(build_messages(context))
        except GuidanceProviderError:
            raise
        except OpenAIRateLimitError as e:
            logger.warning("OpenAI rate limit hit", error=str(e))
            raise RateLimitError(provider=self.provider_name, retry_after_seconds=60) from e
        except APIError as e:
            logger.error("OpenAI API error", error=str(e))
            raise GuidanceProviderError(
                f"OpenAI API error: {e}",
                provider=self.provider_name,
                is_retryable=True,
                original_error=e,
            ) from e
        except Exception as e:
            logger.error("Unexpected OpenAI error", error=str(e))
            raise GuidanceProviderError(
                f"Unexpected error: {e}",
                provider=self.provider_name,
                original_error=e,
            ) from e
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((OpenAIRateLimitError, APIError)),
        reraise=True,
    )
    async def _complete(self, messages: list[dict[str, str]]) -> str:
        response = await self._get_client().chat.completions.create(
            model=self._model,
            messages=messages,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        
        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise ContentFilterError(
                provider=self.provider_name,
                filter_reason="Content was filtered by OpenAI safety systems",
            )
        
        content = (choice.message.content or "").strip()
        if not content:
            raise GuidanceProviderError("Empty completion", provider=self.provider_name)
        
        logger.debug(
            "OpenAI guidance generated",
            model=self._model,
            tokens=response.usage.total_tokens if response.usage else 0,
        )
        return content
    
    async def health_check(self) -> bool:
        """Check OpenAI API availability."""
        if not self.is_configured():
            return False
        
        try:
            await self._get_client().models.list()
            return True
        except Exception as e:
            logger.warning("OpenAI health check failed", error=str(e))
            return False
    
    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
