"""
Favorite endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from auth import dependencies as auth_dependencies

from . import service

router = APIRouter(prefix="/api/user/favorites")


class AddFavoriteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    favoritable_type: str = Field(..., alias="type", max_length=32)
    favoritable_id: int = Field(..., alias="id", ge=1)


@router.get("")
async def list_favorites(
    user_id: int | None = Query(default=None, alias="userId"),
    favoritable_type: str | None = Query(default=None, alias="type"),
    limit: int = Query(default=100, ge=1, le=500),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.list_favorites(
        user_id=user_id if user_id is not None else int(current_user["id"]),
        favoritable_type=favoritable_type,
        limit=limit,
    )


@router.post("")
async def add_favorite(
    payload: AddFavoriteRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.add_favorite(
        user_id=int(current_user["id"]),
        favoritable_type=payload.favoritable_type,
        favoritable_id=payload.favoritable_id,
    )


@router.delete("/{favoritable_type}/{favoritable_id}")
async def remove_favorite(
    favoritable_type: str,
    favoritable_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.remove_favorite(
        user_id=int(current_user["id"]),
        favoritable_type=favoritable_type,
        favoritable_id=favoritable_id,
    )
