"""Integration tests for the SQLModel repositories against in-memory SQLite."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest

from repurposer.models.domain import BrandVoiceRecord, SubscriptionRecord
from repurposer.ratelimit.store import DatabaseCounterStore
from repurposer.storage.repositories.accounts import DatabaseAccountRepository
from repurposer.storage.repositories.audit import DatabaseAuditRepository
from repurposer.storage.repositories.cache_entries import DatabaseCacheBackend
from repurposer.storage.repositories.outputs import DatabaseOutputRepository
from repurposer.storage.repositories.projects import DatabaseProjectRepository
from repurposer.types import Platform, PostTone

# ---------------------------------------------------------------------------
# Projects and outputs
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestDatabaseProjects:
    async def test_create_get_update_delete(self, async_engine) -> None:
        repo = DatabaseProjectRepository(async_engine)
        project = await repo.create(
            "u1",
            "Launch",
            platforms=[Platform.LINKEDIN, "email"],
            posts_per_platform_by_platform={"linkedin": 2},
            post_tone=PostTone.WITTY,
        )

        fetched = await repo.get(project.id, "u1")
        assert fetched is not None
        assert fetched.platforms == [Platform.LINKEDIN, Platform.EMAIL]
        assert fetched.posts_per_platform_by_platform == {"linkedin": 2}
        assert fetched.post_tone == PostTone.WITTY
        assert await repo.get(project.id, "u2") is None

        updated = await repo.update(project.id, "u1", title="Relaunch")
        assert updated is not None
        assert updated.title == "Relaunch"
        assert await repo.count_for_user("u1") == 1

        assert await repo.delete(project.id, "u2") is False
        assert await repo.delete(project.id, "u1") is True
        assert await repo.count_for_user("u1") == 0


@pytest.mark.integration
class TestDatabaseOutputs:
    async def test_upsert_is_idempotent_per_slot(self, async_engine) -> None:
        projects = DatabaseProjectRepository(async_engine)
        outputs = DatabaseOutputRepository(async_engine)
        project = await projects.create("u1", "Launch")

        first = await outputs.upsert(
            project.id,
            "linkedin",
            2,
            content="first",
            generation_metadata={"success": True},
            succeeded=True,
        )
        second = await outputs.upsert(
            project.id,
            "linkedin",
            2,
            content="second",
            generation_metadata={"success": True, "attempts": 2},
            succeeded=True,
        )

        assert first.id == second.id
        assert second.content == "second"
        assert second.original_content == "first"
        assert second.generation_metadata["attempts"] == 2
        assert len(await outputs.list_for_project(project.id)) == 1

    async def test_list_in_canonical_order(self, async_engine) -> None:
        projects = DatabaseProjectRepository(async_engine)
        outputs = DatabaseOutputRepository(async_engine)
        project = await projects.create("u1", "Launch")
        for platform, index in [("twitter", 1), ("linkedin", 2), ("linkedin", 1)]:
            await outputs.upsert(
                project.id, platform, index, content="x", generation_metadata={}, succeeded=True
            )

        ordered = await outputs.list_for_project(project.id)
        assert [(o.series_index, o.platform) for o in ordered] == [
            (1, Platform.LINKEDIN),
            (1, Platform.TWITTER),
            (2, Platform.LINKEDIN),
        ]

    async def test_ownership_and_edit(self, async_engine) -> None:
        projects = DatabaseProjectRepository(async_engine)
        outputs = DatabaseOutputRepository(async_engine)
        project = await projects.create("u1", "Launch")
        record = await outputs.upsert(
            project.id, "email", 1, content="draft", generation_metadata={}, succeeded=True
        )

        assert await outputs.get_for_user(record.id, "u2") is None
        assert await outputs.get_for_user(record.id, "u1") is not None
        edited = await outputs.update_content(record.id, "final")
        assert edited is not None
        assert edited.is_edited is True
        assert edited.content == "final"

    async def test_revert_after_template_then_real_generation(self, async_engine) -> None:
        projects = DatabaseProjectRepository(async_engine)
        outputs = DatabaseOutputRepository(async_engine)
        project = await projects.create("u1", "Launch")
        await outputs.upsert(
            project.id,
            "email",
            1,
            content="[Service temporarily unavailable]",
            generation_metadata={},
            succeeded=True,
            record_original=False,
        )
        record = await outputs.upsert(
            project.id, "email", 1, content="Real", generation_metadata={}, succeeded=True
        )
        assert record.original_content == "Real"
        await outputs.update_content(record.id, "hand edited")

        reverted = await outputs.revert_content(record.id)

        assert reverted is not None
        assert reverted.content == "Real"
        assert reverted.is_edited is False

    async def test_project_delete_removes_outputs(self, async_engine) -> None:
        projects = DatabaseProjectRepository(async_engine)
        outputs = DatabaseOutputRepository(async_engine)
        project = await projects.create("u1", "Launch")
        await outputs.upsert(
            project.id, "email", 1, content="x", generation_metadata={}, succeeded=True
        )
        await projects.delete(project.id, "u1")
        assert await outputs.list_for_project(project.id) == []


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestDatabaseAccounts:
    async def test_subscription_round_trip(self, async_engine) -> None:
        repo = DatabaseAccountRepository(async_engine)
        await repo.ensure_user("u1", "a@example.com")
        await repo.save_subscription(SubscriptionRecord(user_id="u1", plan="max"))
        await repo.save_subscription(
            SubscriptionRecord(user_id="u1", plan="max", audio_minutes_limit=180)
        )

        subscription = await repo.get_subscription("u1")
        assert subscription is not None
        assert subscription.plan == "max"
        assert subscription.audio_minutes_limit == 180

    async def test_add_audio_minutes_respects_period_end(self, async_engine) -> None:
        repo = DatabaseAccountRepository(async_engine)
        await repo.ensure_user("u1")
        now = datetime.now(UTC)
        await repo.save_subscription(
            SubscriptionRecord(
                user_id="u1", plan="pro", audio_minutes_reset_at=now + timedelta(hours=1)
            )
        )

        assert await repo.add_audio_minutes("u1", 2.0, now) is True
        assert await repo.add_audio_minutes("u1", 0.5, now) is True
        assert await repo.add_audio_minutes("u1", 5.0, now + timedelta(hours=2)) is False
        subscription = await repo.get_subscription("u1")
        assert subscription is not None
        assert subscription.audio_minutes_used_this_period == 2.5

    async def test_active_brand_voice(self, async_engine) -> None:
        repo = DatabaseAccountRepository(async_engine)
        await repo.ensure_user("u1")
        now = datetime.now(UTC)
        await repo.save_brand_voice(
            BrandVoiceRecord(id="bv1", user_id="u1", name="Old", updated_at=now)
        )
        await repo.save_brand_voice(
            BrandVoiceRecord(
                id="bv2",
                user_id="u1",
                name="Crisp",
                vocabulary=["ship"],
                is_active=True,
                updated_at=now,
            )
        )

        active = await repo.get_active_brand_voice("u1")
        assert active is not None
        assert active.name == "Crisp"
        assert active.vocabulary == ["ship"]
        assert await repo.get_brand_voice("bv1", "u2") is None


# ---------------------------------------------------------------------------
# Cache, audit and rate-limit counters
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestDatabaseInfrastructure:
    async def test_cache_prefix_delete_and_stats(self, async_engine) -> None:
        backend = DatabaseCacheBackend(async_engine)
        now = datetime(2025, 6, 1, tzinfo=UTC)
        await backend.set("gen:p1:a", "one", now + timedelta(hours=1))
        await backend.set("gen:p1:b", "two", now - timedelta(hours=1))
        await backend.set("gen:p10:a", "three", now + timedelta(hours=1))

        assert await backend.get("gen:p1:a", now) == "one"
        stats = await backend.stats(now)
        assert (stats.total, stats.active, stats.expired) == (3, 2, 1)

        assert await backend.delete_prefix("gen:p1:") == 2
        assert await backend.get("gen:p10:a", now) == "three"

    async def test_cache_expired_entry_is_a_miss(self, async_engine) -> None:
        backend = DatabaseCacheBackend(async_engine)
        now = datetime(2025, 6, 1, tzinfo=UTC)
        await backend.set("k", "v", now + timedelta(seconds=10))
        assert await backend.get("k", now + timedelta(seconds=10)) is None
        assert await backend.delete_expired(now) == 0

    async def test_audit_entries_persist(self, async_engine) -> None:
        from sqlmodel import select
        from sqlmodel.ext.asyncio.session import AsyncSession

        from repurposer.models.database import AuditLog

        repo = DatabaseAuditRepository(async_engine)
        await repo.append(
            user_id="u1", action="generate", details_json=json.dumps({"slots": 2}), project_id="p1"
        )
        async with AsyncSession(async_engine) as session:
            rows = (await session.execute(select(AuditLog))).scalars().all()
        assert len(rows) == 1
        assert rows[0].action == "generate"
        assert json.loads(rows[0].details_json) == {"slots": 2}

    async def test_counter_store_windows(self, async_engine) -> None:
        store = DatabaseCounterStore(async_engine)
        first = await store.increment("generate:u1", 60, 1000.0)
        second = await store.increment("generate:u1", 60, 1010.0)
        assert (first.count, second.count) == (1, 2)
        assert second.window_reset_at == 1060.0

        fresh = await store.increment("generate:u1", 60, 1060.0)
        assert fresh.count == 1
        assert fresh.window_reset_at == 1120.0

        await store.reset("generate:u1")
        assert (await store.increment("generate:u1", 60, 1061.0)).count == 1
