"""Output repositories keyed by (project_id, platform, series_index)."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from repurposer.exceptions import StorageError
from repurposer.models.database import Output, Project, _utc_now
from repurposer.models.domain import OutputRecord
from repurposer.storage.repositories.base import OutputRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from repurposer.storage.repositories.projects import InMemoryProjectRepository

logger = structlog.get_logger(__name__)


def _slot_order(output: OutputRecord) -> tuple[int, str]:
    return (output.series_index, str(output.platform))


def _to_record(output: Output) -> OutputRecord:
    return OutputRecord(
        id=output.id,
        project_id=output.project_id,
        platform=output.platform,
        series_index=output.series_index,
        content=output.content or "",
        is_edited=output.is_edited,
        original_content=output.original_content,
        generation_metadata=output.generation_metadata or {},
        created_at=output.created_at,
        updated_at=output.updated_at,
    )


def _apply_generation(
    target: Any,
    content: str,
    generation_metadata: dict[str, Any],
    succeeded: bool,
    record_original: bool,
) -> None:
    """Overwrite a slot's generated state on either an ORM row or a mutable dict view."""
    if succeeded:
        target["content"] = content
        target["is_edited"] = False
        if record_original and target.get("original_content") is None:
            target["original_content"] = content
    else:
        target["content"] = ""
    target["generation_metadata"] = dict(generation_metadata)
    target["updated_at"] = _utc_now()


class InMemoryOutputRepository(OutputRepository):
    """In-memory output store; ownership is checked through the project store."""

    def __init__(self, projects: InMemoryProjectRepository) -> None:
        self._projects = projects
        self._outputs: dict[tuple[str, str, int], OutputRecord] = {}

    async def upsert(
        self,
        project_id: str,
        platform: str,
        series_index: int,
        *,
        content: str,
        generation_metadata: dict[str, Any],
        succeeded: bool,
        record_original: bool = True,
    ) -> OutputRecord:
        key = (project_id, str(platform), series_index)
        existing = self._outputs.get(key)
        if existing is None:
            now = _utc_now()
            fields: dict[str, Any] = {
                "id": str(uuid.uuid4()),
                "project_id": project_id,
                "platform": str(platform),
                "series_index": series_index,
                "original_content": None,
                "created_at": now,
            }
        else:
            fields = existing.model_dump()
        _apply_generation(fields, content, generation_metadata, succeeded, record_original)
        record = OutputRecord.model_validate(fields)
        self._outputs[key] = record
        return record

    async def get_for_user(self, output_id: str, user_id: str) -> OutputRecord | None:
        for output in self._outputs.values():
            if output.id == output_id:
                if await self._projects.get(output.project_id, user_id) is None:
                    return None
                return output
        return None

    async def list_for_project(self, project_id: str) -> list[OutputRecord]:
        owned = [o for o in self._outputs.values() if o.project_id == project_id]
        return sorted(owned, key=_slot_order)

    async def update_content(self, output_id: str, content: str) -> OutputRecord | None:
        for key, output in self._outputs.items():
            if output.id == output_id:
                updated = output.model_copy(
                    update={"content": content, "is_edited": True, "updated_at": _utc_now()}
                )
                self._outputs[key] = updated
                return updated
        return None

    async def revert_content(self, output_id: str) -> OutputRecord | None:
        for key, output in self._outputs.items():
            if output.id == output_id:
                if output.original_content is None:
                    return output
                reverted = output.model_copy(
                    update={
                        "content": output.original_content,
                        "is_edited": False,
                        "updated_at": _utc_now(),
                    }
                )
                self._outputs[key] = reverted
                return reverted
        return None


class _RowView:
    """Dict-style access to an ORM row so in-memory and DB share one write rule."""

    def __init__(self, row: Output) -> None:
        self._row = row

    def __setitem__(self, key: str, value: Any) -> None:
        setattr(self._row, key, value)

    def get(self, key: str) -> Any:
        return getattr(self._row, key)


class DatabaseOutputRepository(OutputRepository):
    """PostgreSQL-backed output store using SQLModel."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def upsert(
        self,
        project_id: str,
        platform: str,
        series_index: int,
        *,
        content: str,
        generation_metadata: dict[str, Any],
        succeeded: bool,
        record_original: bool = True,
    ) -> OutputRecord:
        args = (
            project_id,
            str(platform),
            series_index,
            content,
            generation_metadata,
            succeeded,
            record_original,
        )
        try:
            return await self._upsert_once(*args)
        except IntegrityError:
            # A concurrent request inserted the same slot first; retry as an update
            logger.info(
                "output_upsert_conflict",
                project_id=project_id,
                platform=str(platform),
                series_index=series_index,
            )
            try:
                return await self._upsert_once(*args)
            except IntegrityError as e:
                raise StorageError(
                    f"Could not upsert output {platform}#{series_index}: {e}"
                ) from e

    async def _upsert_once(
        self,
        project_id: str,
        platform: str,
        series_index: int,
        content: str,
        generation_metadata: dict[str, Any],
        succeeded: bool,
        record_original: bool,
    ) -> OutputRecord:
        async with AsyncSession(self._engine) as session:
            statement = select(Output).where(
                col(Output.project_id) == project_id,
                col(Output.platform) == platform,
                col(Output.series_index) == series_index,
            )
            results = await session.execute(statement)
            row = results.scalars().first()
            if row is None:
                row = Output(project_id=project_id, platform=platform, series_index=series_index)
            _apply_generation(
                _RowView(row), content, generation_metadata, succeeded, record_original
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_record(row)

    async def get_for_user(self, output_id: str, user_id: str) -> OutputRecord | None:
        async with AsyncSession(self._engine) as session:
            statement = (
                select(Output)
                .join(Project, col(Project.id) == col(Output.project_id))
                .where(col(Output.id) == output_id, col(Project.user_id) == user_id)
            )
            results = await session.execute(statement)
            row = results.scalars().first()
            return _to_record(row) if row else None

    async def list_for_project(self, project_id: str) -> list[OutputRecord]:
        async with AsyncSession(self._engine) as session:
            statement = (
                select(Output)
                .where(col(Output.project_id) == project_id)
                .order_by(col(Output.series_index), col(Output.platform))
            )
            results = await session.execute(statement)
            return [_to_record(o) for o in results.scalars().all()]

    async def update_content(self, output_id: str, content: str) -> OutputRecord | None:
        async with AsyncSession(self._engine) as session:
            row = await session.get(Output, output_id)
            if row is None:
                return None
            row.content = content
            row.is_edited = True
            row.updated_at = _utc_now()
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_record(row)

    async def revert_content(self, output_id: str) -> OutputRecord | None:
        async with AsyncSession(self._engine) as session:
            row = await session.get(Output, output_id)
            if row is None:
                return None
            if row.original_content is not None:
                row.content = row.original_content
                row.is_edited = False
                row.updated_at = _utc_now()
                session.add(row)
                await session.commit()
                await session.refresh(row)
            return _to_record(row)
