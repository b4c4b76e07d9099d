"""OpenAI LLM provider implementation."""

from __future__ import annotations

from typing import Any

from openai import AsyncOpenAI

from repurposer.exceptions import LLMProviderError
from repurposer.llm.provider import CompletionOptions, LLMProviderBase, LLMResponse


class OpenAIProvider(LLMProviderBase):
    """OpenAI GPT provider."""

    name = "openai"

    def __init__(self, api_key: str, timeout: float = 60.0) -> None:
        # Retries are owned by the generation executor
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def complete(
        self, system_prompt: str, user_prompt: str, options: CompletionOptions
    ) -> LLMResponse:
        """Generate a chat completion from OpenAI."""
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        response = await self._client.chat.completions.create(
            model=options.model,
            messages=messages,
            max_tokens=options.max_tokens,
            temperature=options.temperature,
        )
        choice = response.choices[0]
        content = (choice.message.content or "").strip()
        if not content:
            raise LLMProviderError(f"Empty completion from {options.model}")
        usage = response.usage
        return LLMResponse(
            content=content,
            model=response.model,
            tokens_used=(usage.prompt_tokens + usage.completion_tokens) if usage else 0,
        )
