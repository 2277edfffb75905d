"""
Favorite business logic. Adding is idempotent; removing a missing favorite is a 404.
"""

from __future__ import annotations

from contributions import registry
from core.errors import NotFound, ValidationFailed

from . import repository

FAVORITABLE_TYPES = registry.MEDIA_TYPES + ("character", "staff", "voice_actor")


def _check_type(favoritable_type: str) -> None:
    if favoritable_type not in FAVORITABLE_TYPES:
        raise ValidationFailed(f"Invalid favorite type: {favoritable_type}.")


async def list_favorites(*, user_id: int, favoritable_type: str | None = None, limit: int = 100) -> dict:
    if favoritable_type is not None:
        _check_type(favoritable_type)
    rows = await repository.list_favorites(user_id=user_id, favoritable_type=favoritable_type, limit=limit)
    return {"success": True, "favorites": rows, "total": len(rows)}


async def add_favorite(*, user_id: int, favoritable_type: str, favoritable_id: int) -> dict:
    _check_type(favoritable_type)
    if not await repository.target_exists(favoritable_type, favoritable_id):
        raise NotFound(f"{favoritable_type} {favoritable_id} not found.")
    created = await repository.add_favorite(
        user_id=user_id,
        favoritable_type=favoritable_type,
        favoritable_id=favoritable_id,
    )
    return {"success": True, "isFavorite": True, "created": created}


async def remove_favorite(*, user_id: int, favoritable_type: str, favoritable_id: int) -> dict:
    _check_type(favoritable_type)
    removed = await repository.remove_favorite(
        user_id=user_id,
        favoritable_type=favoritable_type,
        favoritable_id=favoritable_id,
    )
    if not removed:
        raise NotFound("Favorite not found.")
    return {"success": True, "isFavorite": False}
