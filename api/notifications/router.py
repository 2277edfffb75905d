"""
Notification polling endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies

from . import service

router = APIRouter(prefix="/api/user/notifications")


@router.get("")
async def list_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.list_notifications(
        user_id=int(current_user["id"]),
        unread_only=unread_only,
        limit=limit,
    )


@router.patch("/{notification_id}")
async def mark_read(
    notification_id: int,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.mark_read(notification_id, user_id=int(current_user["id"]))


@router.post("/read-all")
async def mark_all_read(current_user: dict = Depends(auth_dependencies.get_current_user)) -> dict:
    return await service.mark_all_read(user_id=int(current_user["id"]))
