"""Ollama (local model) LLM provider implementation."""

from __future__ import annotations

from typing import Any

import httpx

from repurposer.exceptions import LLMProviderError
from repurposer.llm.provider import CompletionOptions, LLMProviderBase, LLMResponse


class OllamaProvider(LLMProviderBase):
    """Ollama local model provider using its HTTP API."""

    name = "ollama"

    def __init__(self, base_url: str = "http://localhost:11434", timeout: float = 120.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def complete(
        self, system_prompt: str, user_prompt: str, options: CompletionOptions
    ) -> LLMResponse:
        """Generate a completion from Ollama."""
        payload: dict[str, Any] = {
            "model": options.model,
            "prompt": user_prompt,
            "stream": False,
            "options": {"num_predict": options.max_tokens, "temperature": options.temperature},
        }
        if system_prompt:
            payload["system"] = system_prompt

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(f"{self._base_url}/api/generate", json=payload)
            resp.raise_for_status()
            data = resp.json()

        content = data.get("response", "").strip()
        if not content:
            raise LLMProviderError(f"Empty completion from {options.model}")
        return LLMResponse(
            content=content,
            model=options.model,
            tokens_used=data.get("eval_count", 0) + data.get("prompt_eval_count", 0),
        )
