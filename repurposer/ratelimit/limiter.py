"""Per-user, per-route-category fixed-window rate limiting."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from repurposer.exceptions import RateLimitedError
from repurposer.types import Plan, RouteCategory

if TYPE_CHECKING:
    from repurposer.ratelimit.store import CounterStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitRule:
    max_requests: int
    window_seconds: int


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int = 0


_HOUR = 3600
_MINUTE = 60

DEFAULT_RULES: dict[RouteCategory, RateLimitRule] = {
    RouteCategory.GENERATE: RateLimitRule(max_requests=10, window_seconds=_MINUTE),
    RouteCategory.PROJECT_MUTATION: RateLimitRule(max_requests=20, window_seconds=_MINUTE),
    RouteCategory.OUTPUT_UPDATE: RateLimitRule(max_requests=30, window_seconds=_MINUTE),
    RouteCategory.TRANSCRIBE: RateLimitRule(max_requests=2, window_seconds=_HOUR),
    RouteCategory.DOCUMENT_PARSE: RateLimitRule(max_requests=10, window_seconds=_MINUTE),
    RouteCategory.CONTENT_PACK: RateLimitRule(max_requests=10, window_seconds=_MINUTE),
}

# Categories whose ceiling depends on the caller's plan
PLAN_RULES: dict[RouteCategory, dict[Plan, RateLimitRule]] = {
    RouteCategory.TRANSCRIBE: {
        Plan.TRIAL: RateLimitRule(max_requests=10, window_seconds=_HOUR),
        Plan.FREE: RateLimitRule(max_requests=2, window_seconds=_HOUR),
        Plan.PRO: RateLimitRule(max_requests=10, window_seconds=_HOUR),
        Plan.MAX: RateLimitRule(max_requests=25, window_seconds=_HOUR),
        Plan.ENTERPRISE: RateLimitRule(max_requests=50, window_seconds=_HOUR),
    },
    RouteCategory.CONTENT_PACK: {
        Plan.TRIAL: RateLimitRule(max_requests=50, window_seconds=_MINUTE),
        Plan.FREE: RateLimitRule(max_requests=10, window_seconds=_MINUTE),
        Plan.PRO: RateLimitRule(max_requests=50, window_seconds=_MINUTE),
        Plan.MAX: RateLimitRule(max_requests=100, window_seconds=_MINUTE),
        Plan.ENTERPRISE: RateLimitRule(max_requests=200, window_seconds=_MINUTE),
    },
}


class RateLimiter:
    """Increment-then-check limiter over an injected counter store.

    The window resets lazily: the first hit at or after ``window_reset_at``
    starts a new window with a count of 1.
    """

    def __init__(
        self,
        store: CounterStore,
        clock: Callable[[], float] = time.time,
        rules: dict[RouteCategory, RateLimitRule] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._rules = rules if rules is not None else DEFAULT_RULES

    def rule_for(self, category: RouteCategory, plan: Plan | None = None) -> RateLimitRule:
        if plan is not None:
            per_plan = PLAN_RULES.get(category)
            if per_plan and plan in per_plan:
                return per_plan[plan]
        return self._rules[category]

    async def hit(
        self, user_id: str, category: RouteCategory, plan: Plan | None = None
    ) -> RateLimitDecision:
        """Count one request and report whether it is within the ceiling."""
        rule = self.rule_for(category, plan)
        now = self._clock()
        state = await self._store.increment(
            f"{category}:{user_id}", rule.window_seconds, now
        )

        if state.count > rule.max_requests:
            retry_after = max(1, math.ceil(state.window_reset_at - now))
            logger.warning(
                "rate_limit_exceeded",
                user_id=user_id,
                category=str(category),
                count=state.count,
                limit=rule.max_requests,
                retry_after_seconds=retry_after,
            )
            return RateLimitDecision(
                allowed=False,
                limit=rule.max_requests,
                remaining=0,
                retry_after_seconds=retry_after,
            )

        return RateLimitDecision(
            allowed=True,
            limit=rule.max_requests,
            remaining=rule.max_requests - state.count,
        )

    async def enforce(
        self, user_id: str, category: RouteCategory, plan: Plan | None = None
    ) -> RateLimitDecision:
        """Like :meth:`hit` but raises :class:`RateLimitedError` when rejected."""
        decision = await self.hit(user_id, category, plan)
        if not decision.allowed:
            raise RateLimitedError(
                "Too many requests. Please try again later.",
                retry_after_seconds=decision.retry_after_seconds,
                details={"category": str(category), "limit": decision.limit},
            )
        return decision
