"""Slot scheduling: expand a generation request into ordered (platform, series_index) slots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from repurposer.exceptions import PlanRequiredError, QuotaExceededError, RequestValidationError
from repurposer.types import Platform

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from repurposer.billing.plans import PlanCapabilities, PlanLimits
    from repurposer.types import Plan

logger = structlog.get_logger(__name__)

MIN_POSTS_PER_PLATFORM = 1
MAX_POSTS_PER_PLATFORM = 3


@dataclass(frozen=True, slots=True, order=True)
class GenerationSlot:
    """One unit of generation and persistence identity within a project.

    Field order gives the canonical sort: series_index, then platform name.
    """

    series_index: int
    platform: Platform

    @property
    def key(self) -> tuple[str, int]:
        return (str(self.platform), self.series_index)


@dataclass(frozen=True)
class SeriesConfig:
    """A project's posts-per-platform settings."""

    posts_per_platform: int | None = None
    posts_per_platform_by_platform: Mapping[str, int] = field(default_factory=dict)

    def resolve_count(self, platform: Platform | str) -> int:
        """Configured post count for ``platform``, clamped to [1, 3].

        The per-platform map takes precedence whenever it is non-empty.
        """
        if self.posts_per_platform_by_platform:
            raw = self.posts_per_platform_by_platform.get(str(platform))
        else:
            raw = self.posts_per_platform
        return _clamp_count(raw)


@dataclass
class SlotPlan:
    """Ordered slots for one batch plus each platform's configured series length."""

    slots: list[GenerationSlot] = field(default_factory=list)
    series_totals: dict[Platform, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.slots)

    def counts_by_platform(self) -> dict[Platform, int]:
        counts: dict[Platform, int] = {}
        for slot in self.slots:
            counts[slot.platform] = counts.get(slot.platform, 0) + 1
        return counts

    def keys(self) -> set[tuple[str, int]]:
        return {slot.key for slot in self.slots}


def _clamp_count(raw: object) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        return MIN_POSTS_PER_PLATFORM
    return max(MIN_POSTS_PER_PLATFORM, min(MAX_POSTS_PER_PLATFORM, raw))


def _parse_platform(value: Platform | str) -> Platform:
    try:
        return Platform(value)
    except ValueError as e:
        raise RequestValidationError(
            f"Unknown platform: {value}", details={"platform": str(value)}
        ) from e


def _sorted_plan(slots: Iterable[GenerationSlot], totals: dict[Platform, int]) -> SlotPlan:
    return SlotPlan(slots=sorted(set(slots)), series_totals=totals)


def build_slots(config: SeriesConfig, platforms: Iterable[Platform | str]) -> SlotPlan:
    """Emit slots 1..n for each platform, sorted by series_index then platform."""
    slots: list[GenerationSlot] = []
    totals: dict[Platform, int] = {}
    for value in platforms:
        platform = _parse_platform(value)
        count = config.resolve_count(platform)
        totals[platform] = count
        slots.extend(GenerationSlot(series_index=i, platform=platform) for i in range(1, count + 1))
    if not slots:
        raise RequestValidationError("At least one platform is required")
    return _sorted_plan(slots, totals)


def series_slots(config: SeriesConfig, platform: Platform | str) -> SlotPlan:
    """Rebuild one platform's full series."""
    return build_slots(config, [platform])


def tail_slots(config: SeriesConfig, platform: Platform | str, from_index: int) -> SlotPlan:
    """Slots ``from_index..n`` for one platform; earlier slots are left alone."""
    target = _parse_platform(platform)
    count = config.resolve_count(target)
    if from_index < 1 or from_index > count:
        raise RequestValidationError(
            f"Series index must be between 1 and {count}",
            details={"platform": str(target), "series_index": from_index},
        )
    return _sorted_plan(
        (GenerationSlot(series_index=i, platform=target) for i in range(from_index, count + 1)),
        {target: count},
    )


def single_output_slots(
    platform: Platform | str, series_index: int, config: SeriesConfig
) -> SlotPlan:
    """One-element plan targeting an existing output."""
    target = _parse_platform(platform)
    if series_index < 1:
        raise RequestValidationError("Series index must be positive")
    total = max(config.resolve_count(target), series_index)
    return SlotPlan(
        slots=[GenerationSlot(series_index=series_index, platform=target)],
        series_totals={target: total},
    )


def enforce_series_capability(
    plan_slots: SlotPlan, capabilities: PlanCapabilities, plan: Plan
) -> None:
    """Reject multi-post platforms on plans without series support."""
    if capabilities.can_use_series:
        return
    over = sorted(str(p) for p, n in plan_slots.counts_by_platform().items() if n > 1)
    if over:
        logger.warning("series_not_allowed", plan=str(plan), platforms=over)
        raise PlanRequiredError(
            "Series generation requires a plan with series support",
            details={"platforms": over, "plan": str(plan)},
        )


def enforce_output_limit(
    plan_slots: SlotPlan,
    existing_keys: Iterable[tuple[str, int]],
    limits: PlanLimits,
    plan: Plan,
) -> None:
    """Reject a batch that would push the project past its output ceiling.

    Outputs for platforms outside the batch still count.
    """
    projected = set(existing_keys) | plan_slots.keys()
    if len(projected) > limits.max_outputs_per_project:
        logger.warning(
            "output_limit_exceeded",
            plan=str(plan),
            projected=len(projected),
            limit=limits.max_outputs_per_project,
        )
        raise QuotaExceededError(
            f"This project would have {len(projected)} outputs; "
            f"your plan allows {limits.max_outputs_per_project}",
            details={"projected": len(projected), "limit": limits.max_outputs_per_project},
        )
