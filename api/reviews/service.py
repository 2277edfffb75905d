"""
Review business logic.
"""

from __future__ import annotations

import logging

import asyncpg

from catalog import repository as catalog_repository
from contributions import registry
from core.errors import AuthorizationDenied, Conflict, NotFound, ValidationFailed

from . import repository, schemas

logger = logging.getLogger(__name__)

ALREADY_REVIEWED = "You have already reviewed this title. Edit your existing review instead."


def _serialize(row: dict) -> dict:
    review = {
        "id": int(row["id"]),
        "userId": int(row["user_id"]),
        "reviewableType": row["reviewable_type"],
        "reviewableId": int(row["reviewable_id"]),
        "content": row["content"],
        "overallScore": int(row["overall_score"]),
        "helpfulVotes": int(row["helpful_votes"]),
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }
    if "username" in row:
        review["user"] = {
            "id": int(row["user_id"]),
            "username": row["username"],
            "displayName": row.get("display_name"),
            "avatarUrl": row.get("avatar_url"),
        }
    return review


async def list_reviews(
    *,
    user_id: int | None = None,
    reviewable_type: str | None = None,
    reviewable_id: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> dict:
    if user_id is None and (reviewable_type is None or reviewable_id is None):
        raise ValidationFailed("Provide userId, or reviewableType and reviewableId.")
    rows = await repository.list_reviews(
        user_id=user_id,
        reviewable_type=reviewable_type,
        reviewable_id=reviewable_id,
        limit=limit,
        offset=offset,
    )
    reviews = [_serialize(r) for r in rows]
    return {"success": True, "reviews": reviews, "total": len(reviews)}


async def create_review(current_user: dict, payload: schemas.CreateReviewRequest) -> dict:
    user_id = int(current_user["id"])
    if payload.user_id is not None and payload.user_id != user_id:
        raise AuthorizationDenied("Cannot write a review on behalf of another user.")
    if payload.reviewable_type not in registry.MEDIA_TYPES:
        raise ValidationFailed(f"Invalid reviewable type: {payload.reviewable_type}.")
    content = payload.content.strip()
    if not content:
        raise ValidationFailed("Review content is required.")
    if not await catalog_repository.media_exists(payload.reviewable_type, payload.reviewable_id):
        raise NotFound(f"{payload.reviewable_type} {payload.reviewable_id} not found.")

    try:
        row = await repository.insert_review(
            user_id=user_id,
            reviewable_type=payload.reviewable_type,
            reviewable_id=payload.reviewable_id,
            content=content,
            overall_score=payload.overall_score,
        )
    except asyncpg.UniqueViolationError as exc:
        raise Conflict(ALREADY_REVIEWED) from exc

    logger.info(
        "review_created id=%s user_id=%s target=%s:%s",
        row["id"],
        user_id,
        payload.reviewable_type,
        payload.reviewable_id,
    )
    return {"success": True, "review": _serialize(row), "message": "Review published."}


async def _own_review(current_user: dict, review_id: int) -> dict:
    row = await repository.get_review(review_id)
    if row is None:
        raise NotFound("Review not found.")
    if int(row["user_id"]) != int(current_user["id"]):
        raise AuthorizationDenied("You can only change your own reviews.")
    return row


async def update_review(current_user: dict, review_id: int, payload: schemas.UpdateReviewRequest) -> dict:
    await _own_review(current_user, review_id)
    content = payload.content.strip() if payload.content is not None else None
    if content == "":
        raise ValidationFailed("Review content cannot be empty.")
    row = await repository.update_review(review_id, content=content, overall_score=payload.overall_score)
    if row is None:
        raise NotFound("Review not found.")
    return {"success": True, "review": _serialize(row), "message": "Review updated."}


async def delete_review(current_user: dict, review_id: int) -> dict:
    await _own_review(current_user, review_id)
    if not await repository.soft_delete_review(review_id):
        raise NotFound("Review not found.")
    return {"success": True, "message": "Review deleted."}


async def vote_helpful(current_user: dict, review_id: int) -> dict:
    row = await repository.get_review(review_id)
    if row is None:
        raise NotFound("Review not found.")
    if int(row["user_id"]) == int(current_user["id"]):
        raise ValidationFailed("You cannot vote on your own review.")
    votes = await repository.add_helpful_vote(review_id, user_id=int(current_user["id"]))
    if votes is None:
        raise Conflict("You already marked this review as helpful.")
    return {"success": True, "helpfulVotes": int(votes)}
