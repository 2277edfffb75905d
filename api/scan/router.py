"""
Scanlation group, project and link-request endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/api/scan")
cron_router = APIRouter(prefix="/api/cron")


@router.get("/groups")
async def search_groups(
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=10, ge=1, le=50),
) -> dict:
    return await service.search_groups(search=search, limit=limit)


@router.post("/groups")
async def create_group(
    payload: schemas.CreateGroupRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.create_group(current_user, payload)


@router.get("/groups/{group_id}")
async def get_group(group_id: int) -> dict:
    return await service.get_group(group_id)


@router.get("/projects")
async def list_projects(
    user_id: int | None = Query(default=None, alias="userId"),
    media_type: str | None = Query(default=None, alias="mediaType"),
    media_id: int | None = Query(default=None, alias="mediaId"),
    status: str | None = Query(default=None),
    language: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
) -> dict:
    return await service.list_projects(
        user_id=user_id,
        media_type=media_type,
        media_id=media_id,
        status=status,
        language=language,
        limit=limit,
    )


@router.post("/projects")
async def create_project(
    payload: schemas.CreateProjectRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.create_project(current_user, payload)


@router.get("/projects/{project_id}")
async def get_project(project_id: int) -> dict:
    return await service.get_project(project_id)


@router.put("/projects/{project_id}")
async def update_project(
    project_id: int,
    payload: schemas.UpdateProjectRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.update_project(current_user, project_id, payload)


@router.delete("/projects/{project_id}")
async def delete_project(
    project_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.delete_project(current_user, project_id)


@router.get("/link-requests")
async def list_link_requests(
    status: str | None = Query(default=None),
    group_id: int | None = Query(default=None, alias="groupId"),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.list_link_requests(current_user, status=status, group_id=group_id)


@router.post("/link-requests")
async def create_link_request(
    payload: schemas.CreateLinkRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.create_link_request(current_user, payload)


@router.get("/link-requests/{request_id}")
async def get_link_request(
    request_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.get_link_request(current_user, request_id)


@router.put("/link-requests/{request_id}")
async def decide_link_request(
    request_id: int,
    payload: schemas.LinkDecisionRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.decide_link_request(current_user, request_id, payload)


@router.delete("/link-requests/{request_id}")
async def cancel_link_request(
    request_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.cancel_link_request(current_user, request_id)


@cron_router.get("/check-stale-projects", response_model=None)
async def scheduled_stale_check(authorization: str | None = Header(default=None)):
    return await service.drop_stale_projects(authorization)


@cron_router.post("/check-stale-projects", response_model=None)
async def manual_stale_check(authorization: str | None = Header(default=None)):
    return await service.drop_stale_projects(authorization)
