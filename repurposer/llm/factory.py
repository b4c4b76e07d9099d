"""Factory for creating LLM provider instances."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from repurposer.exceptions import LLMProviderError
from repurposer.llm.anthropic import AnthropicProvider
from repurposer.llm.ollama_provider import OllamaProvider
from repurposer.llm.openai_provider import OpenAIProvider
from repurposer.llm.provider import LLMProviderBase
from repurposer.types import LLMProvider

if TYPE_CHECKING:
    from repurposer.config.settings import Settings

logger = structlog.get_logger(__name__)


def create_llm_provider(
    provider: LLMProvider | str,
    api_key: str | None = None,
    base_url: str | None = None,
) -> LLMProviderBase:
    """Create an LLM provider instance."""
    provider_str = str(provider)

    if provider_str == LLMProvider.ANTHROPIC:
        if not api_key:
            raise LLMProviderError("API key required for Anthropic provider")
        return AnthropicProvider(api_key=api_key)
    elif provider_str == LLMProvider.OPENAI:
        if not api_key:
            raise LLMProviderError("API key required for OpenAI provider")
        return OpenAIProvider(api_key=api_key)
    elif provider_str == LLMProvider.OLLAMA:
        return OllamaProvider(**({"base_url": base_url} if base_url else {}))
    else:
        raise LLMProviderError(f"Unsupported LLM provider: {provider}")


def provider_from_settings(settings: Settings) -> LLMProviderBase | None:
    """Build the configured provider, or None when it lacks credentials.

    Without a provider the generation executor serves template fallbacks.
    """
    keys = {
        LLMProvider.OPENAI: settings.openai_api_key,
        LLMProvider.ANTHROPIC: settings.anthropic_api_key,
    }
    try:
        return create_llm_provider(
            settings.llm_provider,
            api_key=keys.get(LLMProvider(settings.llm_provider)),
            base_url=settings.ollama_base_url,
        )
    except LLMProviderError as e:
        logger.warning("llm_provider_unavailable", provider=settings.llm_provider, error=str(e))
        return None
