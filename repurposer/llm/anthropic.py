"""Anthropic (Claude) LLM provider implementation."""

from typing import Any

from anthropic import AsyncAnthropic

from repurposer.exceptions import LLMProviderError
from repurposer.llm.provider import CompletionOptions, LLMProviderBase, LLMResponse


class AnthropicProvider(LLMProviderBase):
    name = "anthropic"

    def __init__(self, api_key: str, timeout: float = 60.0):
        self._client = AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)

    async def complete(
        self, system_prompt: str, user_prompt: str, options: CompletionOptions
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {
            "model": options.model,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        message = await self._client.messages.create(**kwargs)
        text = "".join(block.text for block in message.content if block.type == "text").strip()
        if not text:
            raise LLMProviderError(f"Empty completion from {options.model}")
        return LLMResponse(
            content=text,
            model=message.model,
            tokens_used=message.usage.input_tokens + message.usage.output_tokens,
        )
