"""Generation service: request-level checks in front of the bulk orchestrator.

Every rejection (ownership, capability, quota, rate limit, validation) is
raised before any slot is scheduled, so a rejected request has no side effects
beyond the rate-limit counter.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from repurposer.billing.plans import (
    get_generation_model,
    get_plan_capabilities,
    get_plan_limits,
)
from repurposer.exceptions import (
    NotFoundError,
    PlanRequiredError,
    QuotaExceededError,
    RequestValidationError,
)
from repurposer.generation.executor import ExecutionRequest
from repurposer.generation.options import normalize_generation_options
from repurposer.generation.orchestrator import BatchContext
from repurposer.generation.platforms import get_platform_rules
from repurposer.generation.prompts import PromptContext, build_prompt
from repurposer.generation.scheduler import (
    SeriesConfig,
    build_slots,
    enforce_output_limit,
    enforce_series_capability,
    series_slots,
    single_output_slots,
    tail_slots,
)
from repurposer.llm.provider import CompletionOptions
from repurposer.types import LLMProvider, Platform, PostTone, RouteCategory
from repurposer.utils.sanitize import sanitize_content

if TYPE_CHECKING:
    from repurposer.audit.logger import AuditLogger
    from repurposer.billing.plans import PlanCapabilities, PlanLimits
    from repurposer.billing.quota import QuotaService
    from repurposer.generation.executor import GenerationExecutor
    from repurposer.generation.orchestrator import BulkGenerationResult, BulkOrchestrator
    from repurposer.models.domain import BrandVoiceRecord, ProjectRecord
    from repurposer.ratelimit.limiter import RateLimiter
    from repurposer.storage.repositories.base import (
        AccountRepository,
        OutputRepository,
        ProjectRepository,
    )
    from repurposer.types import Plan

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Variation:
    content: str
    provenance: str


@dataclass(frozen=True)
class _Prepared:
    plan: Plan
    limits: PlanLimits
    capabilities: PlanCapabilities
    project: ProjectRecord
    tone: PostTone | None
    brand_voice: BrandVoiceRecord | None


def _parse_tone(value: PostTone | str | None) -> PostTone | None:
    if value is None or value == "":
        return None
    try:
        return PostTone(value)
    except ValueError as e:
        raise RequestValidationError(
            f"Unknown post tone: {value}", details={"post_tone": str(value)}
        ) from e


def check_content_length(source_content: str, limits: PlanLimits) -> None:
    if not source_content or not source_content.strip():
        raise RequestValidationError("Source content is required")
    if len(source_content) > limits.max_characters_per_content:
        raise QuotaExceededError(
            f"Content exceeds {limits.max_characters_per_content} characters for your plan",
            code="CONTENT_LIMIT_EXCEEDED",
            details={
                "length": len(source_content),
                "limit": limits.max_characters_per_content,
            },
        )


class GenerationService:
    """Bulk generate, single-output regenerate and variations."""

    def __init__(
        self,
        *,
        projects: ProjectRepository,
        outputs: OutputRepository,
        accounts: AccountRepository,
        quota: QuotaService,
        rate_limiter: RateLimiter,
        orchestrator: BulkOrchestrator,
        executor: GenerationExecutor,
        audit_logger: AuditLogger,
        provider: LLMProvider | str = LLMProvider.OPENAI,
    ) -> None:
        self._projects = projects
        self._outputs = outputs
        self._accounts = accounts
        self._quota = quota
        self._rate_limiter = rate_limiter
        self._orchestrator = orchestrator
        self._executor = executor
        self._audit = audit_logger
        self._provider = LLMProvider(provider)

    # ------------------------------------------------------------------
    # Shared checks
    # ------------------------------------------------------------------

    def _resolve_tone(
        self,
        override: PostTone | str | None,
        project: ProjectRecord,
        capabilities: PlanCapabilities,
        plan: Plan,
    ) -> PostTone | None:
        tone = _parse_tone(override)
        if tone is not None and tone != PostTone.NEUTRAL and not capabilities.can_use_post_tone:
            raise PlanRequiredError(
                "Post tone requires a plan with tone control",
                details={"plan": str(plan), "post_tone": str(tone)},
            )
        if tone is None and project.post_tone is not None:
            if capabilities.can_use_post_tone:
                tone = project.post_tone
            elif project.post_tone != PostTone.NEUTRAL:
                logger.info(
                    "project_tone_ignored",
                    project_id=project.id,
                    plan=str(plan),
                    post_tone=str(project.post_tone),
                )
        return None if tone == PostTone.NEUTRAL else tone

    async def _resolve_brand_voice(
        self,
        user_id: str,
        brand_voice_id: str | None,
        capabilities: PlanCapabilities,
        plan: Plan,
    ) -> BrandVoiceRecord | None:
        if brand_voice_id:
            if not capabilities.can_use_brand_voice:
                raise PlanRequiredError(
                    "Brand voice requires a plan with brand voice support",
                    details={"plan": str(plan)},
                )
            voice = await self._accounts.get_brand_voice(brand_voice_id, user_id)
            if voice is None:
                raise NotFoundError(
                    "Brand voice not found", details={"brand_voice_id": brand_voice_id}
                )
            return voice
        if capabilities.can_use_brand_voice:
            return await self._accounts.get_active_brand_voice(user_id)
        return None

    async def _prepare(
        self,
        user_id: str,
        project_id: str,
        source_content: str,
        post_tone_override: PostTone | str | None,
        brand_voice_id: str | None,
    ) -> _Prepared:
        await self._rate_limiter.enforce(user_id, RouteCategory.GENERATE)
        plan = await self._quota.resolve_plan(user_id)
        limits = get_plan_limits(plan)
        capabilities = get_plan_capabilities(plan)

        project = await self._projects.get(project_id, user_id)
        if project is None:
            raise NotFoundError("Project not found", details={"project_id": project_id})

        check_content_length(source_content, limits)
        tone = self._resolve_tone(post_tone_override, project, capabilities, plan)
        brand_voice = await self._resolve_brand_voice(user_id, brand_voice_id, capabilities, plan)
        return _Prepared(
            plan=plan,
            limits=limits,
            capabilities=capabilities,
            project=project,
            tone=tone,
            brand_voice=brand_voice,
        )

    def _batch_context(
        self, user_id: str, prepared: _Prepared, source_content: str, options: dict[str, Any]
    ) -> BatchContext:
        return BatchContext(
            user_id=user_id,
            project_id=prepared.project.id,
            source_text=source_content,
            model=get_generation_model(prepared.plan, self._provider),
            options=options,
            tone=prepared.tone,
            brand_voice=prepared.brand_voice,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def bulk_generate(
        self,
        user_id: str,
        *,
        project_id: str,
        platforms: list[Platform | str],
        source_content: str,
        options: dict[str, Any] | None = None,
        brand_voice_id: str | None = None,
        post_tone_override: PostTone | str | None = None,
        regenerate_series_for_platform: Platform | str | None = None,
        regenerate_from_index: tuple[Platform | str, int] | None = None,
    ) -> BulkGenerationResult:
        prepared = await self._prepare(
            user_id, project_id, source_content, post_tone_override, brand_voice_id
        )
        generation_options = normalize_generation_options(options)
        project = prepared.project
        config = SeriesConfig(
            posts_per_platform=project.posts_per_platform,
            posts_per_platform_by_platform=project.posts_per_platform_by_platform,
        )

        if regenerate_from_index is not None:
            platform, from_index = regenerate_from_index
            slot_plan = tail_slots(config, platform, from_index)
        elif regenerate_series_for_platform is not None:
            slot_plan = series_slots(config, regenerate_series_for_platform)
        else:
            slot_plan = build_slots(config, platforms)

        enforce_series_capability(slot_plan, prepared.capabilities, prepared.plan)
        existing = await self._outputs.list_for_project(project.id)
        enforce_output_limit(
            slot_plan, [o.slot_key for o in existing], prepared.limits, prepared.plan
        )

        logger.info(
            "bulk_generate_accepted",
            user_id=user_id,
            project_id=project.id,
            plan=str(prepared.plan),
            slots=slot_plan.total,
        )
        return await self._orchestrator.run(
            self._batch_context(user_id, prepared, source_content, generation_options), slot_plan
        )

    async def regenerate_output(
        self,
        user_id: str,
        *,
        project_id: str,
        output_id: str,
        source_content: str,
        post_tone_override: PostTone | str | None = None,
    ) -> BulkGenerationResult:
        prepared = await self._prepare(user_id, project_id, source_content, post_tone_override, None)
        project = prepared.project
        output = await self._outputs.get_for_user(output_id, user_id)
        if output is None or output.project_id != project.id:
            raise NotFoundError("Output not found", details={"output_id": output_id})

        slot_plan = single_output_slots(
            output.platform,
            output.series_index,
            SeriesConfig(
                posts_per_platform=project.posts_per_platform,
                posts_per_platform_by_platform=project.posts_per_platform_by_platform,
            ),
        )
        logger.info(
            "regenerate_output_accepted",
            user_id=user_id,
            project_id=project_id,
            output_id=output_id,
        )
        return await self._orchestrator.run(
            self._batch_context(user_id, prepared, source_content, {}), slot_plan
        )

    async def generate_variations(
        self,
        user_id: str,
        *,
        platform: Platform | str,
        source_content: str,
        count: int,
        post_tone_override: PostTone | str | None = None,
    ) -> list[Variation]:
        """Alternative drafts for one platform. Nothing is persisted or cached."""
        await self._rate_limiter.enforce(user_id, RouteCategory.GENERATE)
        plan = await self._quota.resolve_plan(user_id)
        limits = get_plan_limits(plan)
        capabilities = get_plan_capabilities(plan)

        if count < 1:
            raise RequestValidationError("At least one variation is required")
        if count > limits.max_variations_per_generation:
            raise QuotaExceededError(
                f"Your plan allows {limits.max_variations_per_generation} variations",
                details={"requested": count, "limit": limits.max_variations_per_generation},
            )
        check_content_length(source_content, limits)
        try:
            target = Platform(platform)
        except ValueError as e:
            raise RequestValidationError(f"Unknown platform: {platform}") from e

        tone = _parse_tone(post_tone_override)
        if tone not in (None, PostTone.NEUTRAL) and not capabilities.can_use_post_tone:
            raise PlanRequiredError(
                "Post tone requires a plan with tone control", details={"plan": str(plan)}
            )

        rules = get_platform_rules(target)
        system_prompt, user_prompt = build_prompt(
            PromptContext(platform=target, source_text=source_content, tone=tone)
        )
        model = get_generation_model(plan, self._provider)

        async def one(index: int) -> Variation:
            angle = f"Draft {index} of {count}: take a distinct angle."
            result = await self._executor.execute(
                ExecutionRequest(
                    system_prompt=system_prompt,
                    user_prompt=f"{user_prompt}\n\n{angle}",
                    options=CompletionOptions(
                        model=model, temperature=rules.temperature, max_tokens=rules.max_tokens
                    ),
                    source_text=source_content,
                )
            )
            return Variation(
                content=sanitize_content(result.content), provenance=result.provenance.value
            )

        variations = list(await asyncio.gather(*(one(i) for i in range(1, count + 1))))
        await self._audit.log(
            user_id=user_id,
            action="generate_variations",
            details={"platform": str(target), "count": count},
        )
        return variations
