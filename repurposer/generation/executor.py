"""Generation executor: cache, model call with retry and fallback model, offline template.

The executor never raises for provider or cache trouble. Its terminal path is
a deterministic template built from the source text.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from repurposer.llm.provider import CompletionOptions
from repurposer.types import Provenance
from repurposer.utils.retry import backoff_seconds, retry
from repurposer.utils.sanitize import truncate_at_word_boundary

if TYPE_CHECKING:
    from repurposer.generation.cache import GenerationCache
    from repurposer.llm.provider import LLMProviderBase, LLMResponse

logger = structlog.get_logger(__name__)

TEMPLATE_EXCERPT_CHARS = 280
UNAVAILABLE_MARKER = "[Service temporarily unavailable]"


@dataclass(frozen=True)
class ExecutionRequest:
    system_prompt: str
    user_prompt: str
    options: CompletionOptions
    source_text: str
    cache_key: str | None = None


@dataclass(frozen=True)
class ExecutionResult:
    content: str
    provenance: Provenance
    model: str
    attempts: int = 0
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.provenance != Provenance.API


def render_template(source_text: str) -> str:
    """Offline stand-in post: a truncated excerpt behind an explicit marker."""
    excerpt, truncated = truncate_at_word_boundary(source_text or "", TEMPLATE_EXCERPT_CHARS)
    if truncated:
        excerpt = f"{excerpt}..."
    return f"{UNAVAILABLE_MARKER}\n\n{excerpt}".rstrip()


class GenerationExecutor:
    """Runs one generation with the full degradation chain."""

    def __init__(
        self,
        provider: LLMProviderBase | None,
        cache: GenerationCache | None = None,
        fallback_model: str | None = None,
        max_attempts: int = 3,
        delay_ms: int = 1000,
        backoff_factor: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._fallback_model = fallback_model
        self._max_attempts = max_attempts
        self._delay_ms = delay_ms
        self._backoff_factor = backoff_factor
        self._sleep = sleep

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        primary = request.options.model

        if request.cache_key and self._cache is not None:
            cached = await self._cache.lookup(request.cache_key)
            if cached is not None:
                logger.info(
                    "generation_degraded",
                    provenance=Provenance.CACHE.value,
                    model=primary,
                )
                return ExecutionResult(content=cached, provenance=Provenance.CACHE, model=primary)

        if self._provider is None:
            return self._template(request, attempts=0, error="no provider configured")

        attempts = 0

        async def call(model: str) -> LLMResponse:
            nonlocal attempts
            attempts += 1
            options = request.options.model_copy(update={"model": model})
            return await self._provider.complete(  # type: ignore[union-attr]
                request.system_prompt, request.user_prompt, options
            )

        with_retry = retry(
            max_attempts=self._max_attempts,
            delay_ms=self._delay_ms,
            backoff_factor=self._backoff_factor,
            sleep=self._sleep,
        )(call)

        last_error: str | None = None
        try:
            response = await with_retry(primary)
        except Exception as e:
            last_error = str(e)
            logger.warning(
                "generation_primary_failed", model=primary, attempts=attempts, error=last_error
            )
            response = None

        if response is None and self._fallback_model and self._fallback_model != primary:
            await self._sleep(
                backoff_seconds(self._max_attempts, self._delay_ms, self._backoff_factor)
            )
            try:
                response = await call(self._fallback_model)
                logger.warning(
                    "generation_fallback_model_used",
                    primary_model=primary,
                    model=self._fallback_model,
                )
            except Exception as e:
                last_error = str(e)
                logger.warning(
                    "generation_fallback_failed", model=self._fallback_model, error=last_error
                )

        if response is None:
            return self._template(request, attempts=attempts, error=last_error)

        if request.cache_key and self._cache is not None:
            await self._cache.store(request.cache_key, response.content)

        return ExecutionResult(
            content=response.content,
            provenance=Provenance.API,
            model=response.model or primary,
            attempts=attempts,
        )

    def _template(
        self, request: ExecutionRequest, attempts: int, error: str | None
    ) -> ExecutionResult:
        logger.warning(
            "generation_degraded",
            provenance=Provenance.TEMPLATE.value,
            model=request.options.model,
            attempts=attempts,
            error=error,
        )
        return ExecutionResult(
            content=render_template(request.source_text),
            provenance=Provenance.TEMPLATE,
            model="template",
            attempts=attempts,
            error=error,
        )
