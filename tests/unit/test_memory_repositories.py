"""Unit tests for the in-memory repositories used in dev mode."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from repurposer.models.domain import SubscriptionRecord
from repurposer.storage.repositories.accounts import InMemoryAccountRepository
from repurposer.storage.repositories.outputs import InMemoryOutputRepository
from repurposer.storage.repositories.projects import InMemoryProjectRepository
from repurposer.types import Platform, PostTone


@pytest.mark.unit
class TestInMemoryProjects:
    async def test_ownership_is_enforced(self) -> None:
        repo = InMemoryProjectRepository()
        project = await repo.create("u1", "Launch", platforms=["linkedin"], post_tone="witty")

        assert project.platforms == [Platform.LINKEDIN]
        assert project.post_tone == PostTone.WITTY
        assert await repo.get(project.id, "u2") is None
        assert await repo.update(project.id, "u2", title="Stolen") is None
        assert await repo.delete(project.id, "u2") is False
        assert await repo.count_for_user("u1") == 1

    async def test_update_ignores_unknown_fields(self) -> None:
        repo = InMemoryProjectRepository()
        project = await repo.create("u1", "Launch")
        updated = await repo.update(project.id, "u1", title="Renamed", user_id="u2")
        assert updated is not None
        assert updated.title == "Renamed"
        assert updated.user_id == "u1"


@pytest.mark.unit
class TestInMemoryOutputs:
    async def test_upsert_keeps_one_record_per_slot(self) -> None:
        projects = InMemoryProjectRepository()
        outputs = InMemoryOutputRepository(projects)
        project = await projects.create("u1", "Launch")

        first = await outputs.upsert(
            project.id, "linkedin", 1, content="v1", generation_metadata={}, succeeded=True
        )
        second = await outputs.upsert(
            project.id, "linkedin", 1, content="v2", generation_metadata={}, succeeded=True
        )

        assert first.id == second.id
        assert second.content == "v2"
        assert second.original_content == "v1"
        assert len(await outputs.list_for_project(project.id)) == 1

    async def test_failed_upsert_clears_content(self) -> None:
        projects = InMemoryProjectRepository()
        outputs = InMemoryOutputRepository(projects)
        project = await projects.create("u1", "Launch")
        await outputs.upsert(
            project.id, "email", 1, content="ok", generation_metadata={}, succeeded=True
        )
        failed = await outputs.upsert(
            project.id,
            "email",
            1,
            content="",
            generation_metadata={"success": False},
            succeeded=False,
        )
        assert failed.content == ""
        assert failed.generation_metadata == {"success": False}

    async def test_edit_marks_output_and_checks_owner(self) -> None:
        projects = InMemoryProjectRepository()
        outputs = InMemoryOutputRepository(projects)
        project = await projects.create("u1", "Launch")
        record = await outputs.upsert(
            project.id, "email", 1, content="draft", generation_metadata={}, succeeded=True
        )

        assert await outputs.get_for_user(record.id, "u2") is None
        edited = await outputs.update_content(record.id, "final")
        assert edited is not None
        assert edited.is_edited is True
        assert edited.original_content == "draft"

    async def test_template_write_leaves_original_unset(self) -> None:
        projects = InMemoryProjectRepository()
        outputs = InMemoryOutputRepository(projects)
        project = await projects.create("u1", "Launch")
        placeholder = await outputs.upsert(
            project.id,
            "email",
            1,
            content="[Service temporarily unavailable]",
            generation_metadata={"provenance": "template"},
            succeeded=True,
            record_original=False,
        )
        assert placeholder.original_content is None

        real = await outputs.upsert(
            project.id, "email", 1, content="Real", generation_metadata={}, succeeded=True
        )
        assert real.original_content == "Real"

    async def test_revert_restores_original(self) -> None:
        projects = InMemoryProjectRepository()
        outputs = InMemoryOutputRepository(projects)
        project = await projects.create("u1", "Launch")
        record = await outputs.upsert(
            project.id, "email", 1, content="draft", generation_metadata={}, succeeded=True
        )
        await outputs.update_content(record.id, "hand edited")

        reverted = await outputs.revert_content(record.id)

        assert reverted is not None
        assert reverted.content == "draft"
        assert reverted.is_edited is False
        assert await outputs.revert_content("missing") is None


@pytest.mark.unit
class TestInMemoryAccounts:
    async def test_ensure_user_is_idempotent(self) -> None:
        repo = InMemoryAccountRepository()
        first = await repo.ensure_user("u1", "a@example.com")
        second = await repo.ensure_user("u1", "other@example.com")
        assert first == second

    async def test_audio_minutes_only_within_period(self) -> None:
        repo = InMemoryAccountRepository()
        now = datetime.now(UTC)
        await repo.save_subscription(
            SubscriptionRecord(
                user_id="u1", plan="pro", audio_minutes_reset_at=now + timedelta(days=1)
            )
        )

        assert await repo.add_audio_minutes("u1", 2.5, now) is True
        assert await repo.add_audio_minutes("u1", 1.0, now + timedelta(days=2)) is False
        subscription = await repo.get_subscription("u1")
        assert subscription is not None
        assert subscription.audio_minutes_used_this_period == 2.5
