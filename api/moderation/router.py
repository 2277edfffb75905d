"""
Moderation API endpoints (admins and moderators only).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/api/moderation/contributions")


@router.get("")
async def list_contributions(
    status: str | None = Query(default="pending"),
    contributable_type: str | None = Query(default=None, alias="contributableType"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: dict = Depends(auth_dependencies.require_staff),
) -> dict:
    return await service.list_contributions(
        status=status or None,
        contributable_type=contributable_type,
        limit=limit,
        offset=offset,
    )


@router.get("/{contribution_id}")
async def get_contribution(
    contribution_id: int,
    _: dict = Depends(auth_dependencies.require_staff),
) -> dict:
    return await service.get_detail(contribution_id)


@router.patch("/{contribution_id}")
async def decide(
    contribution_id: int,
    payload: schemas.DecisionRequest,
    moderator: dict = Depends(auth_dependencies.require_staff),
) -> dict:
    return await service.decide(contribution_id, moderator, payload)


@router.post("/{contribution_id}/assign")
async def assign(
    contribution_id: int,
    moderator: dict = Depends(auth_dependencies.require_staff),
) -> dict:
    return await service.assign(contribution_id, moderator)


@router.delete("/{contribution_id}/assign")
async def unassign(
    contribution_id: int,
    moderator: dict = Depends(auth_dependencies.require_staff),
) -> dict:
    return await service.unassign(contribution_id, moderator)
