"""
Unit Tests for Guidance Text Providers
"""

from types import SimpleNamespace

import pytest
from pydantic import SecretStr

from haven.config import Settings
from haven.config.settings import OpenAISettings
from haven.domain.enums.safety_enums import RiskLevel, SafetyAction
from haven.domain.enums.session_enums import TherapyPhase
from haven.infrastructure.llm.openai_provider import OpenAIGuidanceProvider, build_messages
from haven.infrastructure.llm.provider import (
    ContentFilterError,
    GuidanceContext,
    GuidanceProviderError,
)
from haven.infrastructure.llm.provider_factory import create_guidance_provider
from haven.infrastructure.llm.static_provider import StaticGuidanceProvider


def completion(content, finish_reason="stop"):
    return SimpleNamespace(
        choices=[SimpleNamespace(
            finish_reason=finish_reason,
            message=SimpleNamespace(content=content),
        )],
        usage=None,
    )


class FakeCompletions:
    def __init__(self, result):
        self.result = result
        self.calls = []
    
    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def fake_client(result):
    completions = FakeCompletions(result)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


@pytest.fixture
def context():
    return GuidanceContext(
        action=SafetyAction.GROUNDING,
        risk_level=RiskLevel.MEDIUM,
        phase=TherapyPhase.DESENSITIZATION,
        current_sud=8,
        indicator_types=["distress"],
        technique_name="box-breathing",
    )


class TestStaticProvider:
    
    async def test_message_per_action(self, context):
        provider = StaticGuidanceProvider()
        
        message = await provider.generate(context)
        
        assert message == provider.message_for(SafetyAction.GROUNDING)
        assert await provider.health_check()


class TestOpenAIProvider:
    
    def test_messages_carry_no_free_text(self, context):
        messages = build_messages(context)
        
        assert messages[0]["role"] == "system"
        assert "Recommended step: grounding" in messages[1]["content"]
        assert "Current distress (0-10): 8" in messages[1]["content"]
    
    async def test_generate(self, context):
        client, completions = fake_client(completion("  Let's breathe together.  "))
        provider = OpenAIGuidanceProvider(OpenAISettings(), client=client)
        
        message = await provider.generate(context)
        
        assert message == "Let's breathe together."
        assert completions.calls[0]["model"] == "gpt-4o-mini"
    
    async def test_content_filter(self, context):
        client, _ = fake_client(completion("", finish_reason="content_filter"))
        provider = OpenAIGuidanceProvider(OpenAISettings(), client=client)
        
        with pytest.raises(ContentFilterError):
            await provider.generate(context)
    
    async def test_unexpected_error_wrapped(self, context):
        client, _ = fake_client(RuntimeError("socket closed"))
        provider = OpenAIGuidanceProvider(OpenAISettings(), client=client)
        
        with pytest.raises(GuidanceProviderError) as exc_info:
            await provider.generate(context)
        
        assert isinstance(exc_info.value.original_error, RuntimeError)
    
    async def test_unconfigured(self, context):
        provider = OpenAIGuidanceProvider(OpenAISettings(api_key=SecretStr("")))
        
        with pytest.raises(GuidanceProviderError):
            await provider.generate(context)
        assert not await provider.health_check()


class TestProviderFactory:
    
    def test_static_by_default(self):
        provider = create_guidance_provider(Settings(guidance_provider="static"))
        
        assert provider.provider_name == "static"
    
    def test_openai_without_key_falls_back(self):
        settings = Settings(guidance_provider="openai", openai=OpenAISettings(api_key=SecretStr("")))
        
        assert create_guidance_provider(settings).provider_name == "static"
    
    def test_openai_with_key(self):
        settings = Settings(
            guidance_provider="openai",
            openai=OpenAISettings(api_key=SecretStr("sk-test")),
        )
        
        assert create_guidance_provider(settings).provider_name == "openai"
