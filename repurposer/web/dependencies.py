"""FastAPI dependency injection and shared state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from repurposer.audit.logger import AuditLogger
from repurposer.billing.plans import get_fallback_model
from repurposer.billing.quota import QuotaService
from repurposer.config.settings import get_settings
from repurposer.generation.cache import GenerationCache
from repurposer.generation.executor import GenerationExecutor
from repurposer.generation.orchestrator import BulkOrchestrator
from repurposer.generation.service import GenerationService
from repurposer.llm.factory import provider_from_settings
from repurposer.llm.transcription import OpenAIWhisperTranscriber
from repurposer.ratelimit.limiter import RateLimiter
from repurposer.ratelimit.store import InMemoryCounterStore
from repurposer.storage.repositories.accounts import InMemoryAccountRepository
from repurposer.storage.repositories.audit import InMemoryAuditRepository
from repurposer.storage.repositories.cache_entries import InMemoryCacheBackend
from repurposer.storage.repositories.outputs import InMemoryOutputRepository
from repurposer.storage.repositories.projects import InMemoryProjectRepository

if TYPE_CHECKING:
    from repurposer.config.settings import Settings
    from repurposer.llm.provider import LLMProviderBase
    from repurposer.llm.transcription import Transcriber
    from repurposer.ratelimit.store import CounterStore
    from repurposer.storage.repositories.base import (
        AccountRepository,
        AuditRepository,
        CacheBackend,
        OutputRepository,
        ProjectRepository,
    )

logger = structlog.get_logger(__name__)

_UNSET = object()


@dataclass
class AppState:
    """Repositories and services shared by every request."""

    projects: ProjectRepository
    outputs: OutputRepository
    accounts: AccountRepository
    audit_repo: AuditRepository
    audit_logger: AuditLogger
    cache: GenerationCache
    rate_limiter: RateLimiter
    quota: QuotaService
    executor: GenerationExecutor
    generation: GenerationService
    transcriber: Transcriber | None


def _create_repositories(
    settings: Settings,
) -> tuple[
    ProjectRepository,
    OutputRepository,
    AccountRepository,
    AuditRepository,
    CacheBackend,
    CounterStore,
]:
    """Create the appropriate repositories based on settings."""
    if settings.use_database:
        from repurposer.ratelimit.store import DatabaseCounterStore
        from repurposer.storage.database import get_engine
        from repurposer.storage.repositories.accounts import DatabaseAccountRepository
        from repurposer.storage.repositories.audit import DatabaseAuditRepository
        from repurposer.storage.repositories.cache_entries import DatabaseCacheBackend
        from repurposer.storage.repositories.outputs import DatabaseOutputRepository
        from repurposer.storage.repositories.projects import DatabaseProjectRepository

        engine = get_engine()
        counters: CounterStore = (
            DatabaseCounterStore(engine)
            if settings.rate_limit_backend == "database"
            else InMemoryCounterStore()
        )
        return (
            DatabaseProjectRepository(engine),
            DatabaseOutputRepository(engine),
            DatabaseAccountRepository(engine),
            DatabaseAuditRepository(engine),
            DatabaseCacheBackend(engine),
            counters,
        )

    projects = InMemoryProjectRepository()
    return (
        projects,
        InMemoryOutputRepository(projects),
        InMemoryAccountRepository(),
        InMemoryAuditRepository(),
        InMemoryCacheBackend(),
        InMemoryCounterStore(),
    )


def build_state(
    settings: Settings | None = None,
    provider: LLMProviderBase | None | object = _UNSET,
    transcriber: Transcriber | None | object = _UNSET,
) -> AppState:
    """Wire repositories and services. ``provider``/``transcriber`` override settings."""
    settings = settings or get_settings()
    projects, outputs, accounts, audit_repo, cache_backend, counters = _create_repositories(
        settings
    )

    llm = provider_from_settings(settings) if provider is _UNSET else provider
    if transcriber is _UNSET:
        transcriber = (
            OpenAIWhisperTranscriber(api_key=settings.openai_api_key)
            if settings.openai_api_key
            else None
        )

    audit_logger = AuditLogger(audit_repo)
    cache = GenerationCache(cache_backend, ttl_seconds=settings.cache_ttl_seconds)
    rate_limiter = RateLimiter(counters)
    quota = QuotaService(accounts, projects)
    executor = GenerationExecutor(
        provider=llm,  # type: ignore[arg-type]
        cache=cache,
        fallback_model=settings.llm_fallback_model or get_fallback_model(settings.llm_provider),
        max_attempts=settings.llm_max_attempts,
        delay_ms=settings.llm_retry_delay_ms,
    )
    orchestrator = BulkOrchestrator(
        executor, outputs, audit_logger, concurrency=settings.generation_concurrency
    )
    generation = GenerationService(
        projects=projects,
        outputs=outputs,
        accounts=accounts,
        quota=quota,
        rate_limiter=rate_limiter,
        orchestrator=orchestrator,
        executor=executor,
        audit_logger=audit_logger,
        provider=settings.llm_provider,
    )
    logger.info(
        "app_state_built",
        use_database=settings.use_database,
        llm_provider=settings.llm_provider,
        llm_available=llm is not None,
    )
    return AppState(
        projects=projects,
        outputs=outputs,
        accounts=accounts,
        audit_repo=audit_repo,
        audit_logger=audit_logger,
        cache=cache,
        rate_limiter=rate_limiter,
        quota=quota,
        executor=executor,
        generation=generation,
        transcriber=transcriber,  # type: ignore[arg-type]
    )


_state: AppState | None = None


def get_state() -> AppState:
    """Shared state, built on first use."""
    global _state
    if _state is None:
        _state = build_state()
    return _state


def set_state(state: AppState | None) -> None:
    """Replace (or with None, drop) the shared state."""
    global _state
    _state = state
