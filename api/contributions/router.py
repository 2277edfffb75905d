"""
Contribution submission endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies
from moderation import service as moderation_service

from . import schemas, service

router = APIRouter(prefix="/api")


@router.post("/user/contributions")
async def submit_user_contribution(
    payload: schemas.UserContributionRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.submit_user_contribution(current_user, payload)


@router.get("/user/contributions")
async def list_user_contributions(
    user_id: int | None = Query(default=None, alias="userId"),
    status: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.list_contributions(
        current_user,
        status=status,
        user_id=user_id if user_id is not None else int(current_user["id"]),
        limit=limit,
        offset=offset,
    )


@router.post("/contributions/submit-media")
async def submit_media(
    payload: schemas.SubmitMediaRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.submit_media(current_user, payload.media_type, payload.contribution_data)


@router.post("/contributions/submit-entity")
async def submit_entity(
    payload: schemas.SubmitEntityRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.submit_entity(current_user, payload.entity_type, payload.contribution_data)


@router.post("/content-contributions")
async def submit_content_contribution(
    payload: schemas.ContentContributionRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.submit_content_contribution(current_user, payload)


@router.get("/content-contributions")
async def list_content_contributions(
    status: str | None = Query(default=None),
    user_id: int | None = Query(default=None, alias="userId"),
    contributable_type: str | None = Query(default=None, alias="contributableType"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.list_contributions(
        current_user,
        status=status,
        user_id=user_id,
        contributable_type=contributable_type,
        edits_only=True,
        limit=limit,
        offset=offset,
    )


@router.get("/content-contributions/{contribution_id}")
async def get_content_contribution(
    contribution_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.get_contribution(current_user, contribution_id)


@router.patch("/content-contributions/{contribution_id}")
async def update_content_contribution(
    contribution_id: int,
    payload: schemas.ContentContributionUpdate,
    current_user: dict = Depends(auth_dependencies.require_staff),
) -> dict:
    result: dict = {"success": True, "id": contribution_id}
    if payload.moderator_notes is not None:
        result.update(await service.update_notes(contribution_id, payload.moderator_notes))
    if payload.assign_to_me is True:
        result.update(await moderation_service.assign(contribution_id, current_user))
    elif payload.assign_to_me is False:
        result.update(await moderation_service.unassign(contribution_id, current_user))
    return result


@router.delete("/content-contributions/{contribution_id}")
async def delete_content_contribution(
    contribution_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.withdraw(current_user, contribution_id)
