"""Plan tier definitions: limits, capabilities and effective-plan resolution.

Adding a plan means adding one ``PlanLimits`` row and one ``PlanCapabilities``
row below; nothing else branches on plan names.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from repurposer.types import LLMProvider, Plan, PlanType

if TYPE_CHECKING:
    from repurposer.models.domain import SubscriptionRecord

TRIAL_DURATION = timedelta(days=3)

PAID_PLANS = frozenset({Plan.PRO, Plan.MAX, Plan.ENTERPRISE})


@dataclass(frozen=True, slots=True)
class PlanLimits:
    """Volume limits for a billing plan."""

    max_projects: int
    max_outputs_per_project: int
    max_characters_per_content: int
    max_variations_per_generation: int
    audio_minutes_per_period: int | None
    max_audio_file_size_mb: int | None
    plan_type: PlanType


@dataclass(frozen=True, slots=True)
class PlanCapabilities:
    """Feature flags derived from a plan. Never persisted."""

    can_use_audio: bool
    can_use_series: bool
    can_use_post_tone: bool
    can_use_brand_voice: bool
    max_posts_per_platform: int


PLAN_LIMITS: dict[Plan, PlanLimits] = {
    Plan.TRIAL: PlanLimits(
        max_projects=10,
        max_outputs_per_project=21,
        max_characters_per_content=10_000,
        max_variations_per_generation=3,
        audio_minutes_per_period=30,
        max_audio_file_size_mb=25,
        plan_type=PlanType.TEXT_AUDIO,
    ),
    Plan.FREE: PlanLimits(
        max_projects=3,
        max_outputs_per_project=3,
        max_characters_per_content=1_000,
        max_variations_per_generation=1,
        audio_minutes_per_period=None,
        max_audio_file_size_mb=None,
        plan_type=PlanType.TEXT,
    ),
    Plan.PRO: PlanLimits(
        max_projects=50,
        max_outputs_per_project=7,
        max_characters_per_content=5_000,
        max_variations_per_generation=3,
        audio_minutes_per_period=60,
        max_audio_file_size_mb=25,
        plan_type=PlanType.TEXT_AUDIO,
    ),
    Plan.MAX: PlanLimits(
        max_projects=200,
        max_outputs_per_project=7,
        max_characters_per_content=10_000,
        max_variations_per_generation=5,
        audio_minutes_per_period=180,
        max_audio_file_size_mb=50,
        plan_type=PlanType.TEXT_AUDIO,
    ),
    Plan.ENTERPRISE: PlanLimits(
        max_projects=500,
        max_outputs_per_project=21,
        max_characters_per_content=10_000,
        max_variations_per_generation=5,
        audio_minutes_per_period=600,
        max_audio_file_size_mb=100,
        plan_type=PlanType.TEXT_AUDIO,
    ),
}

# Trial is enterprise-equivalent for series, tone and brand voice
PLAN_CAPABILITIES: dict[Plan, PlanCapabilities] = {
    Plan.TRIAL: PlanCapabilities(
        can_use_audio=True,
        can_use_series=True,
        can_use_post_tone=True,
        can_use_brand_voice=True,
        max_posts_per_platform=3,
    ),
    Plan.FREE: PlanCapabilities(
        can_use_audio=False,
        can_use_series=False,
        can_use_post_tone=False,
        can_use_brand_voice=False,
        max_posts_per_platform=1,
    ),
    Plan.PRO: PlanCapabilities(
        can_use_audio=True,
        can_use_series=False,
        can_use_post_tone=False,
        can_use_brand_voice=False,
        max_posts_per_platform=1,
    ),
    Plan.MAX: PlanCapabilities(
        can_use_audio=True,
        can_use_series=False,
        can_use_post_tone=False,
        can_use_brand_voice=True,
        max_posts_per_platform=1,
    ),
    Plan.ENTERPRISE: PlanCapabilities(
        can_use_audio=True,
        can_use_series=True,
        can_use_post_tone=True,
        can_use_brand_voice=True,
        max_posts_per_platform=3,
    ),
}

GENERATION_MODELS: dict[LLMProvider, dict[Plan, str]] = {
    LLMProvider.OPENAI: {
        Plan.TRIAL: "gpt-4o-mini",
        Plan.FREE: "gpt-4o-mini",
        Plan.PRO: "gpt-4o-mini",
        Plan.MAX: "gpt-4o",
        Plan.ENTERPRISE: "gpt-4o",
    },
    LLMProvider.ANTHROPIC: {
        Plan.TRIAL: "claude-3-5-haiku-latest",
        Plan.FREE: "claude-3-5-haiku-latest",
        Plan.PRO: "claude-3-5-haiku-latest",
        Plan.MAX: "claude-sonnet-4-20250514",
        Plan.ENTERPRISE: "claude-sonnet-4-20250514",
    },
    LLMProvider.OLLAMA: {plan: "llama3" for plan in Plan},
}

# Cheaper model tried once after the primary model exhausts its retries
FALLBACK_MODELS: dict[LLMProvider, str | None] = {
    LLMProvider.OPENAI: "gpt-3.5-turbo",
    LLMProvider.ANTHROPIC: "claude-3-haiku-20240307",
    LLMProvider.OLLAMA: None,
}


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as stored in TIMESTAMP columns) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def resolve_effective_plan(
    subscription: SubscriptionRecord | None,
    user_created_at: datetime,
    now: datetime | None = None,
) -> Plan:
    """Return the plan governing behavior right now.

    A stored paid plan wins outright. Otherwise accounts younger than the
    trial window are on ``trial`` and everyone else is on ``free``.
    """
    if subscription is not None and subscription.plan in PAID_PLANS:
        return Plan(subscription.plan)

    current = _as_utc(now) if now else datetime.now(UTC)
    if current - _as_utc(user_created_at) < TRIAL_DURATION:
        return Plan.TRIAL
    return Plan.FREE


def get_plan_limits(plan: Plan | str) -> PlanLimits:
    """Get limits for a plan, defaulting to free tier."""
    try:
        return PLAN_LIMITS[Plan(plan)]
    except ValueError:
        return PLAN_LIMITS[Plan.FREE]


def get_plan_capabilities(plan: Plan | str) -> PlanCapabilities:
    """Get capabilities for a plan, defaulting to free tier."""
    try:
        return PLAN_CAPABILITIES[Plan(plan)]
    except ValueError:
        return PLAN_CAPABILITIES[Plan.FREE]


def get_generation_model(
    plan: Plan | str, provider: LLMProvider | str = LLMProvider.OPENAI
) -> str:
    """Primary model id used for generation on this plan."""
    models = GENERATION_MODELS[LLMProvider(provider)]
    try:
        return models[Plan(plan)]
    except ValueError:
        return models[Plan.FREE]


def get_fallback_model(provider: LLMProvider | str = LLMProvider.OPENAI) -> str | None:
    return FALLBACK_MODELS[LLMProvider(provider)]
