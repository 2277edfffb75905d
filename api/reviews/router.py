"""
Review endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/api/user/reviews")


@router.get("")
async def list_reviews(
    user_id: int | None = Query(default=None, alias="userId"),
    reviewable_type: str | None = Query(default=None, alias="reviewableType"),
    reviewable_id: int | None = Query(default=None, alias="reviewableId"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> dict:
    return await service.list_reviews(
        user_id=user_id,
        reviewable_type=reviewable_type,
        reviewable_id=reviewable_id,
        limit=limit,
        offset=offset,
    )


@router.post("")
async def create_review(
    payload: schemas.CreateReviewRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.create_review(current_user, payload)


@router.put("/{review_id}")
async def update_review(
    review_id: int,
    payload: schemas.UpdateReviewRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.update_review(current_user, review_id, payload)


@router.delete("/{review_id}")
async def delete_review(
    review_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.delete_review(current_user, review_id)


@router.post("/{review_id}/vote")
async def vote_helpful(
    review_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.vote_helpful(current_user, review_id)
