"""Bulk orchestrator: fan slots out over the executor and persist each one."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from structlog.contextvars import bound_contextvars

from repurposer.generation.cache_keys import CacheKeyParams, build_generation_cache_key
from repurposer.generation.executor import ExecutionRequest, ExecutionResult
from repurposer.generation.options import completion_settings
from repurposer.generation.platforms import get_platform_rules
from repurposer.generation.prompts import PromptContext, build_prompt
from repurposer.generation.validation import validate_platform_content
from repurposer.llm.provider import CompletionOptions
from repurposer.types import Provenance
from repurposer.utils.sanitize import sanitize_content
from repurposer.utils.timing import timed

if TYPE_CHECKING:
    from repurposer.audit.logger import AuditLogger
    from repurposer.generation.executor import GenerationExecutor
    from repurposer.generation.scheduler import GenerationSlot, SlotPlan
    from repurposer.models.domain import BrandVoiceRecord, OutputRecord
    from repurposer.storage.repositories.base import OutputRepository
    from repurposer.types import Platform, PostTone

logger = structlog.get_logger(__name__)

GENERATION_STEP = "platform_post"


# ---------------------------------------------------------------------------
# Per-slot state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Pending:
    """Scheduled but not settled; reported as a failure if a batch ends in this state."""

    slot: GenerationSlot


@dataclass(frozen=True)
class Succeeded:
    slot: GenerationSlot
    content: str
    result: ExecutionResult
    metadata: dict[str, Any]
    output_id: str | None = None


@dataclass(frozen=True)
class Failed:
    slot: GenerationSlot
    error: str
    metadata: dict[str, Any]
    output_id: str | None = None


SlotState = Pending | Succeeded | Failed


@dataclass
class SlotOutcome:
    """Response item for one slot."""

    platform: Platform
    series_index: int
    content: str
    success: bool
    error: str | None = None
    output_id: str | None = None
    provenance: str | None = None


@dataclass
class BulkGenerationResult:
    successful: list[SlotOutcome] = field(default_factory=list)
    failed: list[SlotOutcome] = field(default_factory=list)
    total_requested: int = 0


@dataclass(frozen=True)
class BatchContext:
    """Everything shared by the slots of one batch."""

    user_id: str
    project_id: str
    source_text: str
    model: str
    options: dict[str, Any] = field(default_factory=dict)
    tone: PostTone | None = None
    brand_voice: BrandVoiceRecord | None = None


def _to_outcome(state: SlotState) -> SlotOutcome:
    if isinstance(state, Succeeded):
        return SlotOutcome(
            platform=state.slot.platform,
            series_index=state.slot.series_index,
            content=state.content,
            success=True,
            output_id=state.output_id,
            provenance=state.result.provenance.value,
        )
    if isinstance(state, Failed):
        return SlotOutcome(
            platform=state.slot.platform,
            series_index=state.slot.series_index,
            content="",
            success=False,
            error=state.error,
            output_id=state.output_id,
        )
    return SlotOutcome(
        platform=state.slot.platform,
        series_index=state.slot.series_index,
        content="",
        success=False,
        error="Generation did not complete",
    )


def _earlier_posts(
    persisted: list[OutputRecord], plan: SlotPlan
) -> dict[Platform, dict[int, str]]:
    """Stored content of series posts that this batch does not regenerate."""
    scheduled = {(slot.platform, slot.series_index) for slot in plan.slots}
    earlier: dict[Platform, dict[int, str]] = {}
    for output in persisted:
        if output.content and (output.platform, output.series_index) not in scheduled:
            earlier.setdefault(output.platform, {})[output.series_index] = output.content
    return earlier


class BulkOrchestrator:
    """Runs every slot of a plan concurrently; one slot's failure never touches another."""

    def __init__(
        self,
        executor: GenerationExecutor,
        outputs: OutputRepository,
        audit_logger: AuditLogger,
        concurrency: int = 3,
    ) -> None:
        self._executor = executor
        self._outputs = outputs
        self._audit = audit_logger
        self._concurrency = concurrency

    async def run(self, ctx: BatchContext, plan: SlotPlan) -> BulkGenerationResult:
        batch_id = str(uuid.uuid4())
        semaphore = asyncio.Semaphore(self._concurrency)
        states: dict[GenerationSlot, SlotState] = {slot: Pending(slot=slot) for slot in plan.slots}
        earlier: dict[Platform, dict[int, str]] = {}
        if any(slot.series_index > 1 for slot in plan.slots):
            earlier = _earlier_posts(await self._outputs.list_for_project(ctx.project_id), plan)

        async def guarded(slot: GenerationSlot) -> None:
            previous = tuple(
                (index, content)
                for index, content in sorted(earlier.get(slot.platform, {}).items())
                if index < slot.series_index
            )
            async with semaphore:
                states[slot] = await self._run_slot(
                    ctx, slot, plan.series_totals.get(slot.platform, 1), previous
                )

        with bound_contextvars(batch_id=batch_id, project_id=ctx.project_id):
            logger.info("generation_batch_started", slots=plan.total, model=ctx.model)
            await asyncio.gather(*(guarded(slot) for slot in plan.slots))

            result = BulkGenerationResult(total_requested=plan.total)
            for slot in plan.slots:
                state = states[slot]
                if isinstance(state, Pending):
                    logger.error(
                        "slot_never_settled",
                        platform=str(slot.platform),
                        series_index=slot.series_index,
                    )
                outcome = _to_outcome(state)
                (result.successful if outcome.success else result.failed).append(outcome)

            await self._audit.log(
                user_id=ctx.user_id,
                action="generate",
                project_id=ctx.project_id,
                details={
                    "batch_id": batch_id,
                    "platforms": sorted({str(s.platform) for s in plan.slots}),
                    "slots": plan.total,
                    "successful": len(result.successful),
                    "failed": len(result.failed),
                },
            )
            logger.info(
                "generation_batch_finished",
                successful=len(result.successful),
                failed=len(result.failed),
            )
        return result

    async def _run_slot(
        self,
        ctx: BatchContext,
        slot: GenerationSlot,
        series_total: int,
        previous_posts: tuple[tuple[int, str], ...] = (),
    ) -> SlotState:
        rules = get_platform_rules(slot.platform)
        base_metadata: dict[str, Any] = {
            "model": ctx.model,
            "temperature": rules.temperature,
            "max_tokens": rules.max_tokens,
            "timestamp": datetime.now(UTC).isoformat(),
            "series_index": slot.series_index,
            "series_total": series_total,
            "brand_voice_id": ctx.brand_voice.id if ctx.brand_voice else None,
            "tone": str(ctx.tone) if ctx.tone else None,
        }

        state: SlotState
        try:
            temperature, max_tokens = completion_settings(rules, ctx.options)
            base_metadata.update(temperature=temperature, max_tokens=max_tokens)
            with timed("generate_slot", platform=str(slot.platform)) as elapsed:
                state = await self._generate(
                    ctx,
                    slot,
                    series_total,
                    CompletionOptions(
                        model=ctx.model, temperature=temperature, max_tokens=max_tokens
                    ),
                    base_metadata,
                    previous_posts,
                )
            state.metadata["latency_ms"] = int(elapsed["elapsed_ms"])
        except Exception as e:
            logger.warning(
                "slot_generation_failed",
                platform=str(slot.platform),
                series_index=slot.series_index,
                error=str(e),
            )
            state = Failed(
                slot=slot,
                error=str(e) or type(e).__name__,
                metadata={**base_metadata, "success": False, "error_message": str(e)},
            )

        return await self._persist(ctx, state)

    async def _generate(
        self,
        ctx: BatchContext,
        slot: GenerationSlot,
        series_total: int,
        options: CompletionOptions,
        base_metadata: dict[str, Any],
        previous_posts: tuple[tuple[int, str], ...],
    ) -> Succeeded:
        system_prompt, user_prompt = build_prompt(
            PromptContext(
                platform=slot.platform,
                source_text=ctx.source_text,
                series_index=slot.series_index,
                series_total=series_total,
                tone=ctx.tone,
                brand_voice=ctx.brand_voice,
                previous_posts=previous_posts,
            )
        )
        cache_key = build_generation_cache_key(
            CacheKeyParams(
                user_id=ctx.user_id,
                project_id=ctx.project_id,
                step=GENERATION_STEP,
                model=ctx.model,
                platform=str(slot.platform),
                source_text=ctx.source_text,
                options=ctx.options,
                brand_voice_id=ctx.brand_voice.id if ctx.brand_voice else None,
                brand_voice_updated_at=ctx.brand_voice.updated_at if ctx.brand_voice else None,
                tone=str(ctx.tone) if ctx.tone else None,
                series_index=slot.series_index,
                series_total=series_total,
            )
        )
        result = await self._executor.execute(
            ExecutionRequest(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                options=options,
                source_text=ctx.source_text,
                cache_key=cache_key,
            )
        )
        content = sanitize_content(result.content)
        validation = validate_platform_content(content, slot.platform)
        return Succeeded(
            slot=slot,
            content=content,
            result=result,
            metadata={
                **base_metadata,
                "model": result.model,
                "success": True,
                "provenance": result.provenance.value,
                "attempts": result.attempts,
                "validation_messages": validation.messages,
            },
        )

    async def _persist(self, ctx: BatchContext, state: Succeeded | Failed) -> SlotState:
        """Upsert the slot's record whether it succeeded or failed."""
        succeeded = isinstance(state, Succeeded)
        try:
            record = await self._outputs.upsert(
                ctx.project_id,
                str(state.slot.platform),
                state.slot.series_index,
                content=state.content if isinstance(state, Succeeded) else "",
                generation_metadata=state.metadata,
                succeeded=succeeded,
                # Template excerpts are placeholders, not the first real generation
                record_original=(
                    isinstance(state, Succeeded)
                    and state.result.provenance != Provenance.TEMPLATE
                ),
            )
        except Exception as e:
            logger.error(
                "slot_persist_failed",
                platform=str(state.slot.platform),
                series_index=state.slot.series_index,
                error=str(e),
            )
            return Failed(
                slot=state.slot,
                error=f"Could not save output: {e}",
                metadata=state.metadata,
            )

        if isinstance(state, Succeeded):
            return Succeeded(
                slot=state.slot,
                content=state.content,
                result=state.result,
                metadata=state.metadata,
                output_id=record.id,
            )
        return Failed(
            slot=state.slot, error=state.error, metadata=state.metadata, output_id=record.id
        )
