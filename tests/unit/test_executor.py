"""Unit tests for the generation executor degradation chain."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from repurposer.exceptions import LLMProviderError
from repurposer.generation.cache import GenerationCache
from repurposer.generation.executor import (
    UNAVAILABLE_MARKER,
    ExecutionRequest,
    GenerationExecutor,
    render_template,
)
from repurposer.llm.provider import CompletionOptions, LLMResponse
from repurposer.storage.repositories.cache_entries import InMemoryCacheBackend
from repurposer.types import Provenance

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request(cache_key: str | None = "gen:p1:abc", source: str = "Source text") -> ExecutionRequest:
    return ExecutionRequest(
        system_prompt="system",
        user_prompt="user",
        options=CompletionOptions(model="primary-model"),
        source_text=source,
        cache_key=cache_key,
    )


def _provider(side_effect) -> AsyncMock:
    provider = AsyncMock()
    provider.complete = AsyncMock(side_effect=side_effect)
    return provider


def _ok(content: str = "Fresh post") -> LLMResponse:
    return LLMResponse(content=content, model="primary-model", tokens_used=5)


def _cache() -> GenerationCache:
    return GenerationCache(
        InMemoryCacheBackend(), ttl_seconds=3600, clock=lambda: datetime(2025, 1, 1, tzinfo=UTC)
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestExecutorSuccess:
    async def test_api_result_is_cached(self) -> None:
        cache = _cache()
        provider = _provider([_ok()])
        executor = GenerationExecutor(provider, cache=cache, sleep=AsyncMock())

        result = await executor.execute(_request())

        assert result.provenance == Provenance.API
        assert result.content == "Fresh post"
        assert result.attempts == 1
        assert await cache.lookup("gen:p1:abc") == "Fresh post"

    async def test_cache_hit_skips_provider(self) -> None:
        cache = _cache()
        await cache.store("gen:p1:abc", "Cached post")
        provider = _provider([_ok()])
        executor = GenerationExecutor(provider, cache=cache, sleep=AsyncMock())

        result = await executor.execute(_request())

        assert result.provenance == Provenance.CACHE
        assert result.content == "Cached post"
        provider.complete.assert_not_awaited()

    async def test_no_cache_key_means_no_cache(self) -> None:
        cache = _cache()
        provider = _provider([_ok(), _ok("Second")])
        executor = GenerationExecutor(provider, cache=cache, sleep=AsyncMock())

        await executor.execute(_request(cache_key=None))
        result = await executor.execute(_request(cache_key=None))

        assert result.content == "Second"
        assert provider.complete.await_count == 2


@pytest.mark.unit
class TestExecutorRetry:
    async def test_retries_with_backoff_then_succeeds(self) -> None:
        sleep = AsyncMock()
        provider = _provider([LLMProviderError("boom"), LLMProviderError("boom"), _ok()])
        executor = GenerationExecutor(provider, sleep=sleep)

        result = await executor.execute(_request())

        assert result.provenance == Provenance.API
        assert result.attempts == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    async def test_fallback_model_tried_once_after_wait(self) -> None:
        sleep = AsyncMock()
        provider = _provider([RuntimeError("x")] * 3 + [_ok("From fallback")])
        executor = GenerationExecutor(provider, fallback_model="cheap-model", sleep=sleep)

        result = await executor.execute(_request())

        assert result.content == "From fallback"
        assert result.attempts == 4
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 4.0]
        assert provider.complete.await_args_list[-1].args[2].model == "cheap-model"

    async def test_fallback_skipped_when_same_as_primary(self) -> None:
        provider = _provider([RuntimeError("x")] * 3)
        executor = GenerationExecutor(provider, fallback_model="primary-model", sleep=AsyncMock())

        result = await executor.execute(_request())

        assert result.provenance == Provenance.TEMPLATE
        assert provider.complete.await_count == 3


@pytest.mark.unit
class TestExecutorTemplate:
    async def test_all_failures_yield_template(self) -> None:
        provider = _provider([RuntimeError("x")] * 4)
        executor = GenerationExecutor(provider, fallback_model="cheap-model", sleep=AsyncMock())

        result = await executor.execute(_request(source="Long source " * 50))

        assert result.provenance == Provenance.TEMPLATE
        assert result.content.startswith(UNAVAILABLE_MARKER)
        assert result.error == "x"
        assert result.degraded

    async def test_no_provider_yields_template(self) -> None:
        executor = GenerationExecutor(None)
        result = await executor.execute(_request())
        assert result.provenance == Provenance.TEMPLATE
        assert result.attempts == 0

    async def test_template_is_not_cached(self) -> None:
        cache = _cache()
        executor = GenerationExecutor(None, cache=cache)
        await executor.execute(_request())
        assert await cache.lookup("gen:p1:abc") is None

    async def test_broken_cache_does_not_raise(self) -> None:
        backend = AsyncMock()
        backend.get = AsyncMock(side_effect=OSError("db gone"))
        backend.set = AsyncMock(side_effect=OSError("db gone"))
        cache = GenerationCache(backend, ttl_seconds=60)
        executor = GenerationExecutor(_provider([_ok()]), cache=cache, sleep=AsyncMock())

        result = await executor.execute(_request())

        assert result.provenance == Provenance.API

    @pytest.mark.parametrize("source", ["", "short", "word " * 200, "x" * 1000])
    def test_render_template_never_throws(self, source: str) -> None:
        content = render_template(source)
        assert content.startswith(UNAVAILABLE_MARKER)
        assert len(content) <= len(UNAVAILABLE_MARKER) + 2 + 280 + 3
