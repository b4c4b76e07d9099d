"""Project repositories: in-memory for dev/testing, SQLModel-backed for production."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func
from sqlmodel import col, delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from repurposer.models.database import Output, Project, _utc_now
from repurposer.models.domain import ProjectRecord
from repurposer.storage.repositories.base import ProjectRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "source_content",
        "platforms",
        "posts_per_platform",
        "posts_per_platform_by_platform",
        "post_tone",
    }
)


def _to_record(project: Project) -> ProjectRecord:
    return ProjectRecord(
        id=project.id,
        user_id=project.user_id,
        title=project.title,
        source_content=project.source_content or "",
        platforms=project.platforms or [],
        posts_per_platform=project.posts_per_platform,
        posts_per_platform_by_platform=project.posts_per_platform_by_platform or {},
        post_tone=project.post_tone,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def _clean_updates(updates: dict[str, Any]) -> dict[str, Any]:
    cleaned = {k: v for k, v in updates.items() if k in _UPDATABLE_FIELDS}
    if "platforms" in cleaned:
        cleaned["platforms"] = [str(p) for p in cleaned["platforms"]]
    if cleaned.get("post_tone") is not None:
        cleaned["post_tone"] = str(cleaned["post_tone"])
    return cleaned


class InMemoryProjectRepository(ProjectRepository):
    """In-memory project store. Replaced by SQLModel + PostgreSQL in production."""

    def __init__(self) -> None:
        self._projects: dict[str, ProjectRecord] = {}

    async def create(self, user_id: str, title: str, **fields: Any) -> ProjectRecord:
        now = _utc_now()
        project = ProjectRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            created_at=now,
            updated_at=now,
            **_clean_updates(fields),
        )
        self._projects[project.id] = project
        logger.info("project_created", id=project.id, user_id=user_id)
        return project

    async def get(self, project_id: str, user_id: str) -> ProjectRecord | None:
        project = self._projects.get(project_id)
        if project and project.user_id == user_id:
            return project
        return None

    async def list_for_user(self, user_id: str) -> list[ProjectRecord]:
        owned = [p for p in self._projects.values() if p.user_id == user_id]
        return sorted(owned, key=lambda p: p.created_at, reverse=True)

    async def count_for_user(self, user_id: str) -> int:
        return sum(1 for p in self._projects.values() if p.user_id == user_id)

    async def update(self, project_id: str, user_id: str, **updates: Any) -> ProjectRecord | None:
        project = await self.get(project_id, user_id)
        if project is None:
            return None
        updated = ProjectRecord.model_validate(
            {**project.model_dump(), **_clean_updates(updates), "updated_at": _utc_now()}
        )
        self._projects[project_id] = updated
        return updated

    async def delete(self, project_id: str, user_id: str) -> bool:
        if await self.get(project_id, user_id) is None:
            return False
        del self._projects[project_id]
        logger.info("project_deleted", id=project_id, user_id=user_id)
        return True


class DatabaseProjectRepository(ProjectRepository):
    """PostgreSQL-backed project store using SQLModel."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def create(self, user_id: str, title: str, **fields: Any) -> ProjectRecord:
        async with AsyncSession(self._engine) as session:
            project = Project(user_id=user_id, title=title, **_clean_updates(fields))
            session.add(project)
            await session.commit()
            await session.refresh(project)
            logger.info("project_created", id=project.id, user_id=user_id)
            return _to_record(project)

    async def get(self, project_id: str, user_id: str) -> ProjectRecord | None:
        async with AsyncSession(self._engine) as session:
            project = await session.get(Project, project_id)
            if not project or project.user_id != user_id:
                return None
            return _to_record(project)

    async def list_for_user(self, user_id: str) -> list[ProjectRecord]:
        async with AsyncSession(self._engine) as session:
            statement = (
                select(Project)
                .where(col(Project.user_id) == user_id)
                .order_by(col(Project.created_at).desc())
            )
            results = await session.execute(statement)
            return [_to_record(p) for p in results.scalars().all()]

    async def count_for_user(self, user_id: str) -> int:
        async with AsyncSession(self._engine) as session:
            statement = select(func.count()).select_from(Project).where(
                col(Project.user_id) == user_id
            )
            result = await session.execute(statement)
            return int(result.scalar_one())

    async def update(self, project_id: str, user_id: str, **updates: Any) -> ProjectRecord | None:
        async with AsyncSession(self._engine) as session:
            project = await session.get(Project, project_id)
            if not project or project.user_id != user_id:
                return None
            for key, value in _clean_updates(updates).items():
                setattr(project, key, value)
            project.updated_at = _utc_now()
            session.add(project)
            await session.commit()
            await session.refresh(project)
            return _to_record(project)

    async def delete(self, project_id: str, user_id: str) -> bool:
        async with AsyncSession(self._engine) as session:
            project = await session.get(Project, project_id)
            if not project or project.user_id != user_id:
                return False
            # Delete child rows that reference this project (no DB cascade)
            await session.execute(delete(Output).where(col(Output.project_id) == project_id))
            await session.delete(project)
            await session.commit()
            logger.info("project_deleted", id=project_id, user_id=user_id)
            return True
