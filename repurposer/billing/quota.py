"""Quota service: point-in-time project and audio quota snapshots.

Checks read live counts and are not locked against the write that follows;
two concurrent creations can both pass a check.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from repurposer.billing.plans import (
    TRIAL_DURATION,
    get_plan_capabilities,
    get_plan_limits,
    resolve_effective_plan,
)
from repurposer.exceptions import NotFoundError
from repurposer.models.domain import SubscriptionRecord
from repurposer.types import Plan, PlanType

if TYPE_CHECKING:
    from collections.abc import Callable

    from repurposer.billing.plans import PlanLimits
    from repurposer.models.domain import UserRecord
    from repurposer.storage.repositories.base import AccountRepository, ProjectRepository

logger = structlog.get_logger(__name__)


def add_month(value: datetime) -> datetime:
    """Same day next month, clamped to the month's last day."""
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


@dataclass(frozen=True)
class ProjectQuota:
    can_create: bool
    current: int
    limit: int
    plan: Plan
    plan_type: PlanType
    can_use_audio: bool


@dataclass(frozen=True)
class AudioQuota:
    allowed: bool
    plan_type: PlanType
    used_minutes: float
    limit_minutes: float | None

    def can_add_minutes(self, minutes: float) -> bool:
        if not self.allowed or self.limit_minutes is None:
            return False
        return self.used_minutes + minutes <= self.limit_minutes


class QuotaService:
    def __init__(
        self,
        accounts: AccountRepository,
        projects: ProjectRepository,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._accounts = accounts
        self._projects = projects
        self._clock = clock or (lambda: datetime.now(UTC))

    async def _load(self, user_id: str) -> tuple[UserRecord, SubscriptionRecord | None, Plan]:
        user = await self._accounts.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        subscription = await self._accounts.get_subscription(user_id)
        plan = resolve_effective_plan(subscription, user.created_at, self._clock())
        return user, subscription, plan

    async def resolve_plan(self, user_id: str) -> Plan:
        _, _, plan = await self._load(user_id)
        return plan

    async def check_project_quota(self, user_id: str) -> ProjectQuota:
        _, _, plan = await self._load(user_id)
        limits = get_plan_limits(plan)
        current = await self._projects.count_for_user(user_id)
        quota = ProjectQuota(
            can_create=current < limits.max_projects,
            current=current,
            limit=limits.max_projects,
            plan=plan,
            plan_type=limits.plan_type,
            can_use_audio=limits.plan_type == PlanType.TEXT_AUDIO,
        )
        logger.info(
            "project_quota_checked",
            user_id=user_id,
            plan=str(plan),
            current=current,
            limit=limits.max_projects,
        )
        return quota

    async def roll_over_audio_period(self, user_id: str) -> bool:
        """Zero the audio counter if the stored period has ended.

        Returns True when a rollover happened.
        """
        subscription = await self._accounts.get_subscription(user_id)
        if subscription is None or subscription.audio_minutes_limit is None:
            return False
        reset_at = subscription.audio_minutes_reset_at or subscription.current_period_end
        now = self._clock()
        if reset_at is None or now <= _as_utc(reset_at):
            return False
        await self._accounts.save_subscription(
            subscription.model_copy(
                update={
                    "audio_minutes_used_this_period": 0.0,
                    "audio_minutes_reset_at": add_month(now),
                }
            )
        )
        logger.info("audio_period_rolled_over", user_id=user_id)
        return True

    async def check_audio_quota(self, user_id: str) -> AudioQuota:
        _, subscription, plan = await self._load(user_id)
        limits = get_plan_limits(plan)
        if limits.plan_type == PlanType.TEXT or limits.audio_minutes_per_period is None:
            return AudioQuota(
                allowed=False, plan_type=limits.plan_type, used_minutes=0.0, limit_minutes=None
            )

        if plan == Plan.TRIAL and subscription is None:
            return AudioQuota(
                allowed=True,
                plan_type=limits.plan_type,
                used_minutes=0.0,
                limit_minutes=float(limits.audio_minutes_per_period),
            )

        await self.roll_over_audio_period(user_id)
        current = await self._accounts.get_subscription(user_id)
        used = current.audio_minutes_used_this_period if current else 0.0
        limit = (
            current.audio_minutes_limit
            if current and current.audio_minutes_limit is not None
            else float(limits.audio_minutes_per_period)
        )
        return AudioQuota(
            allowed=True, plan_type=limits.plan_type, used_minutes=used, limit_minutes=limit
        )

    async def record_audio_usage(self, user_id: str, minutes: float) -> bool:
        """Add transcribed minutes to the current period.

        Nothing is recorded once the period has ended or on text-only plans.
        """
        user, subscription, plan = await self._load(user_id)
        limits = get_plan_limits(plan)
        if limits.audio_minutes_per_period is None:
            return False

        now = self._clock()
        if subscription is None:
            if plan != Plan.TRIAL:
                return False
            subscription = await self._accounts.save_subscription(
                _trial_audio_subscription(user, float(limits.audio_minutes_per_period))
            )
        else:
            await self.roll_over_audio_period(user_id)
            subscription = await self._accounts.get_subscription(user_id) or subscription
            subscription = await self._open_audio_period(subscription, limits, now)

        recorded = await self._accounts.add_audio_minutes(user_id, minutes, now)
        if recorded:
            logger.info("audio_minutes_recorded", user_id=user_id, minutes=round(minutes, 2))
        else:
            logger.warning("audio_minutes_not_recorded", user_id=user_id, reason="period_ended")
        return recorded

    async def _open_audio_period(
        self, subscription: SubscriptionRecord, limits: PlanLimits, now: datetime
    ) -> SubscriptionRecord:
        """Give a paid subscription its audio period fields on first use."""
        updates: dict[str, Any] = {}
        if subscription.audio_minutes_limit is None:
            updates["audio_minutes_limit"] = float(limits.audio_minutes_per_period)
        if subscription.audio_minutes_reset_at is None:
            updates["audio_minutes_reset_at"] = subscription.current_period_end or add_month(now)
        if not updates:
            return subscription
        return await self._accounts.save_subscription(subscription.model_copy(update=updates))

    async def quota_probe(self, user_id: str) -> dict[str, Any]:
        _, _, plan = await self._load(user_id)
        limits = get_plan_limits(plan)
        capabilities = get_plan_capabilities(plan)
        probe: dict[str, Any] = {
            "plan": plan.value,
            "plan_type": limits.plan_type.value,
            "can_use_audio": capabilities.can_use_audio,
            "can_use_series": capabilities.can_use_series,
            "can_use_post_tone": capabilities.can_use_post_tone,
            "can_use_brand_voice": capabilities.can_use_brand_voice,
            "max_posts_per_platform": capabilities.max_posts_per_platform,
            "max_projects": limits.max_projects,
            "max_characters_per_content": limits.max_characters_per_content,
            "max_outputs_per_project": limits.max_outputs_per_project,
            "max_variations_per_generation": limits.max_variations_per_generation,
            "audio_limits": None,
        }
        if limits.audio_minutes_per_period is not None:
            probe["audio_limits"] = {
                "audio_minutes_per_period": limits.audio_minutes_per_period,
                "max_audio_file_size_mb": limits.max_audio_file_size_mb,
            }
        return probe


def _trial_audio_subscription(user: UserRecord, limit: float) -> SubscriptionRecord:
    return SubscriptionRecord(
        user_id=user.id,
        plan=Plan.FREE.value,
        status="active",
        audio_minutes_used_this_period=0.0,
        audio_minutes_limit=limit,
        audio_minutes_reset_at=_as_utc(user.created_at) + TRIAL_DURATION,
    )
