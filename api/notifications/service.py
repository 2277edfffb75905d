"""
Notification business logic.

Notifications are side effects of other actions (submission, moderation,
link requests). Creation outside a transaction is best-effort: a failure is
logged and never fails the action that triggered it.
"""

from __future__ import annotations

import logging

from auth import repository as auth_repository
from auth import service as auth_service
from core.errors import NotFound

from . import repository

logger = logging.getLogger(__name__)

CONTRIBUTION_SUBMITTED = "contribution_submitted"
CONTRIBUTION_APPROVED = "contribution_approved"
CONTRIBUTION_REJECTED = "contribution_rejected"
LINK_REQUEST_RECEIVED = "link_request_received"
LINK_REQUEST_APPROVED = "link_request_approved"
LINK_REQUEST_REJECTED = "link_request_rejected"
SCAN_PROJECT_STALE = "scan_project_stale"


async def create_notification(
    *,
    recipient_user_id: int,
    action_type: str,
    notifiable_type: str,
    notifiable_id: int,
    actor_user_id: int | None = None,
    conn=None,
) -> None:
    """
    Insert one notification.

    With `conn` the insert joins the caller's transaction and errors propagate.
    Without it the insert is best-effort.
    """
    if actor_user_id is not None and actor_user_id == recipient_user_id:
        return None

    if conn is not None:
        await repository.insert_notification(
            recipient_user_id=recipient_user_id,
            actor_user_id=actor_user_id,
            action_type=action_type,
            notifiable_type=notifiable_type,
            notifiable_id=notifiable_id,
            conn=conn,
        )
        return None

    try:
        await repository.insert_notification(
            recipient_user_id=recipient_user_id,
            actor_user_id=actor_user_id,
            action_type=action_type,
            notifiable_type=notifiable_type,
            notifiable_id=notifiable_id,
        )
    except Exception:
        logger.exception(
            "notification_failed recipient=%s action=%s %s_id=%s",
            recipient_user_id,
            action_type,
            notifiable_type,
            notifiable_id,
        )


async def notify_moderators(
    *,
    action_type: str,
    notifiable_type: str,
    notifiable_id: int,
    actor_user_id: int | None = None,
) -> int:
    """
    Notify every active admin and moderator. Returns how many were targeted.
    """
    try:
        recipients = await auth_repository.list_user_ids_with_roles(list(auth_service.STAFF_ROLES))
    except Exception:
        logger.exception("notify_moderators_lookup_failed action=%s", action_type)
        return 0

    for user_id in recipients:
        await create_notification(
            recipient_user_id=user_id,
            actor_user_id=actor_user_id,
            action_type=action_type,
            notifiable_type=notifiable_type,
            notifiable_id=notifiable_id,
        )
    return len(recipients)


async def list_notifications(*, user_id: int, unread_only: bool = False, limit: int = 20) -> dict:
    rows = await repository.list_for_user(user_id=user_id, unread_only=unread_only, limit=limit)
    notifications = [
        {
            "id": int(r["id"]),
            "action_type": r["action_type"],
            "notifiable_type": r["notifiable_type"],
            "notifiable_id": int(r["notifiable_id"]),
            "read_at": r["read_at"],
            "created_at": r["created_at"],
            "actor": (
                {
                    "id": int(r["actor_user_id"]),
                    "username": r.get("actor_username"),
                    "display_name": r.get("actor_display_name"),
                    "avatar_url": r.get("actor_avatar_url"),
                }
                if r.get("actor_user_id") is not None
                else None
            ),
        }
        for r in rows
    ]
    return {
        "success": True,
        "notifications": notifications,
        "unread_count": await repository.count_unread(user_id),
    }


async def mark_read(notification_id: int, *, user_id: int) -> dict:
    row = await repository.mark_read(notification_id, user_id=user_id)
    if row is None:
        raise NotFound("Notification not found.")
    return {"success": True, "id": int(row["id"]), "read_at": row["read_at"]}


async def mark_all_read(*, user_id: int) -> dict:
    updated = await repository.mark_all_read(user_id)
    return {"success": True, "updated": updated}
