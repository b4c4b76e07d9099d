"""Abstract LLM provider interface."""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class LLMResponse(BaseModel):
    content: str
    model: str
    tokens_used: int


class CompletionOptions(BaseModel):
    model: str
    temperature: float = 0.7
    max_tokens: int = 1024


class LLMProviderBase(ABC):
    """Abstract base for all LLM providers.

    Providers raise on any failure; callers treat every exception as an
    opaque failed attempt.
    """

    name: str = "base"

    @abstractmethod
    async def complete(
        self, system_prompt: str, user_prompt: str, options: CompletionOptions
    ) -> LLMResponse:
        """Generate a text completion with the model named in ``options``."""
