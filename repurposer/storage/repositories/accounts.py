"""Account repositories: users, subscriptions and brand voices."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import update
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from repurposer.models.database import BrandVoice, Subscription, User, _utc_now
from repurposer.models.domain import BrandVoiceRecord, SubscriptionRecord, UserRecord
from repurposer.storage.repositories.base import AccountRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


def _naive(value: datetime) -> datetime:
    """Strip tzinfo for TIMESTAMP WITHOUT TIME ZONE comparisons."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class InMemoryAccountRepository(AccountRepository):
    """In-memory fallback for dev/testing without a database."""

    def __init__(self) -> None:
        self._users: dict[str, UserRecord] = {}
        self._subscriptions: dict[str, SubscriptionRecord] = {}
        self._brand_voices: dict[str, BrandVoiceRecord] = {}

    async def get_user(self, user_id: str) -> UserRecord | None:
        return self._users.get(user_id)

    async def ensure_user(self, user_id: str, email: str = "") -> UserRecord:
        user = self._users.get(user_id)
        if user is None:
            user = UserRecord(id=user_id, email=email, created_at=_utc_now())
            self._users[user_id] = user
            logger.info("user_created", user_id=user_id)
        return user

    async def get_subscription(self, user_id: str) -> SubscriptionRecord | None:
        return self._subscriptions.get(user_id)

    async def save_subscription(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        self._subscriptions[subscription.user_id] = subscription
        return subscription

    async def add_audio_minutes(self, user_id: str, minutes: float, now: datetime) -> bool:
        subscription = self._subscriptions.get(user_id)
        if subscription is None or subscription.audio_minutes_reset_at is None:
            return False
        if _naive(now) > _naive(subscription.audio_minutes_reset_at):
            return False
        self._subscriptions[user_id] = subscription.model_copy(
            update={
                "audio_minutes_used_this_period": (
                    subscription.audio_minutes_used_this_period + minutes
                )
            }
        )
        return True

    async def get_brand_voice(self, brand_voice_id: str, user_id: str) -> BrandVoiceRecord | None:
        voice = self._brand_voices.get(brand_voice_id)
        if voice and voice.user_id == user_id:
            return voice
        return None

    async def get_active_brand_voice(self, user_id: str) -> BrandVoiceRecord | None:
        for voice in self._brand_voices.values():
            if voice.user_id == user_id and voice.is_active:
                return voice
        return None

    async def save_brand_voice(self, brand_voice: BrandVoiceRecord) -> BrandVoiceRecord:
        self._brand_voices[brand_voice.id] = brand_voice
        return brand_voice


class DatabaseAccountRepository(AccountRepository):
    """PostgreSQL-backed account store using SQLModel."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def get_user(self, user_id: str) -> UserRecord | None:
        async with AsyncSession(self._engine) as session:
            user = await session.get(User, user_id)
            if user is None:
                return None
            return UserRecord(id=user.id, email=user.email, created_at=user.created_at)

    async def ensure_user(self, user_id: str, email: str = "") -> UserRecord:
        async with AsyncSession(self._engine) as session:
            user = await session.get(User, user_id)
            if user is None:
                user = User(id=user_id, email=email)
                session.add(user)
                await session.commit()
                await session.refresh(user)
                logger.info("user_created", user_id=user_id)
            return UserRecord(id=user.id, email=user.email, created_at=user.created_at)

    async def get_subscription(self, user_id: str) -> SubscriptionRecord | None:
        async with AsyncSession(self._engine) as session:
            statement = select(Subscription).where(col(Subscription.user_id) == user_id)
            results = await session.execute(statement)
            row = results.scalars().first()
            if row is None:
                return None
            return SubscriptionRecord.model_validate(row, from_attributes=True)

    async def save_subscription(self, subscription: SubscriptionRecord) -> SubscriptionRecord:
        async with AsyncSession(self._engine) as session:
            statement = select(Subscription).where(
                col(Subscription.user_id) == subscription.user_id
            )
            results = await session.execute(statement)
            row = results.scalars().first()
            if row is None:
                row = Subscription(user_id=subscription.user_id)
            for key, value in subscription.model_dump(exclude={"user_id"}).items():
                setattr(row, key, _naive(value) if isinstance(value, datetime) else value)
            row.updated_at = _utc_now()
            session.add(row)
            await session.commit()
            logger.debug("subscription_saved", user_id=subscription.user_id, plan=row.plan)
        return subscription

    async def add_audio_minutes(self, user_id: str, minutes: float, now: datetime) -> bool:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                update(Subscription)
                .where(
                    col(Subscription.user_id) == user_id,
                    col(Subscription.audio_minutes_reset_at).is_not(None),
                    col(Subscription.audio_minutes_reset_at) >= _naive(now),
                )
                .values(
                    audio_minutes_used_this_period=(
                        col(Subscription.audio_minutes_used_this_period) + minutes
                    ),
                    updated_at=_utc_now(),
                )
            )
        return bool(result.rowcount)

    async def get_brand_voice(self, brand_voice_id: str, user_id: str) -> BrandVoiceRecord | None:
        async with AsyncSession(self._engine) as session:
            voice = await session.get(BrandVoice, brand_voice_id)
            if voice is None or voice.user_id != user_id:
                return None
            return BrandVoiceRecord.model_validate(voice, from_attributes=True)

    async def get_active_brand_voice(self, user_id: str) -> BrandVoiceRecord | None:
        async with AsyncSession(self._engine) as session:
            statement = (
                select(BrandVoice)
                .where(col(BrandVoice.user_id) == user_id, col(BrandVoice.is_active).is_(True))
                .order_by(col(BrandVoice.updated_at).desc())
            )
            results = await session.execute(statement)
            voice = results.scalars().first()
            if voice is None:
                return None
            return BrandVoiceRecord.model_validate(voice, from_attributes=True)

    async def save_brand_voice(self, brand_voice: BrandVoiceRecord) -> BrandVoiceRecord:
        async with AsyncSession(self._engine) as session:
            row = await session.get(BrandVoice, brand_voice.id)
            if row is None:
                row = BrandVoice(
                    id=brand_voice.id, user_id=brand_voice.user_id, name=brand_voice.name
                )
            for key, value in brand_voice.model_dump(exclude={"id"}).items():
                setattr(row, key, _naive(value) if isinstance(value, datetime) else value)
            session.add(row)
            await session.commit()
        return brand_voice
