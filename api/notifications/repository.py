"""
Notification persistence.
"""

from __future__ import annotations

from typing import Any

from core import db

_COLUMNS = """
    n.id, n.recipient_user_id, n.actor_user_id, n.action_type,
    n.notifiable_type, n.notifiable_id, n.read_at, n.created_at
"""


async def insert_notification(
    *,
    recipient_user_id: int,
    action_type: str,
    notifiable_type: str,
    notifiable_id: int,
    actor_user_id: int | None = None,
    conn=None,
) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        INSERT INTO notifications (recipient_user_id, actor_user_id, action_type, notifiable_type, notifiable_id)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING id, created_at
        """,
        recipient_user_id,
        actor_user_id,
        action_type,
        notifiable_type,
        notifiable_id,
        conn=conn,
    )
    if row is None:
        raise RuntimeError("Failed to insert notification.")
    return row


async def list_for_user(*, user_id: int, unread_only: bool, limit: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_COLUMNS},
               a.username AS actor_username,
               a.display_name AS actor_display_name,
               a.avatar_url AS actor_avatar_url
        FROM notifications n
        LEFT JOIN users a ON a.id = n.actor_user_id
        WHERE n.recipient_user_id = $1
          AND ($2::boolean IS FALSE OR n.read_at IS NULL)
        ORDER BY n.created_at DESC, n.id DESC
        LIMIT $3
        """,
        user_id,
        unread_only,
        limit,
    )


async def count_unread(user_id: int) -> int:
    value = await db.fetch_val(
        "SELECT count(*) FROM notifications WHERE recipient_user_id = $1 AND read_at IS NULL",
        user_id,
    )
    return int(value or 0)


async def mark_read(notification_id: int, *, user_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        UPDATE notifications
        SET read_at = COALESCE(read_at, now())
        WHERE id = $1
          AND recipient_user_id = $2
        RETURNING id, read_at
        """,
        notification_id,
        user_id,
    )


async def mark_all_read(user_id: int) -> int:
    value = await db.fetch_val(
        """
        WITH updated AS (
          UPDATE notifications
          SET read_at = now()
          WHERE recipient_user_id = $1
            AND read_at IS NULL
          RETURNING 1
        )
        SELECT count(*) FROM updated
        """,
        user_id,
    )
    return int(value or 0)
