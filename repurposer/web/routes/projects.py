"""Project CRUD API routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import Response

from repurposer.exceptions import NotFoundError, QuotaExceededError
from repurposer.models.api import OutputResponse, ProjectCreate, ProjectResponse, ProjectUpdate
from repurposer.types import RouteCategory
from repurposer.web.dependencies import AppState, get_state
from repurposer.web.identity import get_current_user

if TYPE_CHECKING:
    from repurposer.models.domain import ProjectRecord, UserRecord

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])


async def _owned_project(state: AppState, project_id: str, user_id: str) -> ProjectRecord:
    project = await state.projects.get(project_id, user_id)
    if project is None:
        raise NotFoundError("Project not found", details={"project_id": project_id})
    return project


@router.post("", status_code=201, response_model=ProjectResponse)
async def create_project(
    body: ProjectCreate,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> ProjectRecord:
    await state.rate_limiter.enforce(user.id, RouteCategory.PROJECT_MUTATION)
    quota = await state.quota.check_project_quota(user.id)
    if not quota.can_create:
        raise QuotaExceededError(
            f"Your {quota.plan} plan allows {quota.limit} projects",
            details={"current": quota.current, "limit": quota.limit, "plan": str(quota.plan)},
        )

    project = await state.projects.create(
        user.id,
        body.title,
        source_content=body.source_content,
        platforms=body.platforms,
        posts_per_platform=body.posts_per_platform,
        posts_per_platform_by_platform={
            str(k): v for k, v in body.posts_per_platform_by_platform.items()
        },
        post_tone=body.post_tone,
    )
    await state.audit_logger.log(
        user_id=user.id, action="project_create", project_id=project.id
    )
    return project


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> list[ProjectRecord]:
    return await state.projects.list_for_user(user.id)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> ProjectRecord:
    return await _owned_project(state, project_id, user.id)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> ProjectRecord:
    await state.rate_limiter.enforce(user.id, RouteCategory.PROJECT_MUTATION)
    current = await _owned_project(state, project_id, user.id)

    updates = body.model_dump(exclude_unset=True)
    if "posts_per_platform_by_platform" in updates:
        updates["posts_per_platform_by_platform"] = {
            str(k): v for k, v in (updates["posts_per_platform_by_platform"] or {}).items()
        }
    project = await state.projects.update(project_id, user.id, **updates)
    if project is None:
        raise NotFoundError("Project not found", details={"project_id": project_id})

    if "source_content" in updates and updates["source_content"] != current.source_content:
        await state.cache.invalidate_project(project_id)
    await state.audit_logger.log(
        user_id=user.id,
        action="project_update",
        project_id=project_id,
        details={"fields": sorted(updates)},
    )
    return project


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> Response:
    await state.rate_limiter.enforce(user.id, RouteCategory.PROJECT_MUTATION)
    deleted = await state.projects.delete(project_id, user.id)
    if not deleted:
        raise NotFoundError("Project not found", details={"project_id": project_id})
    await state.cache.invalidate_project(project_id)
    await state.audit_logger.log(user_id=user.id, action="project_delete", project_id=project_id)
    return Response(status_code=204)


@router.get("/{project_id}/outputs", response_model=list[OutputResponse])
async def list_outputs(
    project_id: str,
    user: UserRecord = Depends(get_current_user),
    state: AppState = Depends(get_state),
) -> list[OutputResponse]:
    await _owned_project(state, project_id, user.id)
    outputs = await state.outputs.list_for_project(project_id)
    return [OutputResponse.model_validate(o.model_dump()) for o in outputs]
