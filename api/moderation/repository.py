"""
Moderation persistence: status transitions on contributions.

Decision queries run on the connection of an open transaction and expect the
row to have been locked with `lock_contribution` first.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from contributions import repository as contributions_repository
from core import db

OPEN_STATUSES = ("pending", "in_review")


async def lock_contribution(conn: asyncpg.Connection, contribution_id: int) -> dict[str, Any] | None:
    row = await db.fetch_one(
        """
        SELECT id, user_id, contributable_type, contributable_id, contribution_type, status,
               contribution_data, proposed_changes
        FROM contributions
        WHERE id = $1
          AND deleted_at IS NULL
        FOR UPDATE
        """,
        contribution_id,
        conn=conn,
    )
    if row is None:
        return None
    row["contribution_data"] = db.json_value(row["contribution_data"]) or {}
    row["proposed_changes"] = db.json_value(row["proposed_changes"])
    return row


async def mark_approved(
    conn: asyncpg.Connection,
    contribution_id: int,
    *,
    reviewer_id: int,
    contributable_id: int | None,
    awarded_points: int,
) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        UPDATE contributions
        SET status = 'approved',
            contributable_id = COALESCE($3, contributable_id),
            awarded_points = $4,
            reviewed_by = $2,
            reviewed_at = now(),
            updated_at = now()
        WHERE id = $1
          AND status IN ('pending', 'in_review')
        RETURNING id, status, contributable_id, awarded_points, reviewed_at
        """,
        contribution_id,
        reviewer_id,
        contributable_id,
        awarded_points,
        conn=conn,
    )
    if row is None:
        raise RuntimeError(f"Contribution {contribution_id} changed while locked.")
    return row


async def mark_rejected(
    conn: asyncpg.Connection,
    contribution_id: int,
    *,
    reviewer_id: int,
    rejection_reason: str,
) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        UPDATE contributions
        SET status = 'rejected',
            rejection_reason = $3,
            reviewed_by = $2,
            reviewed_at = now(),
            updated_at = now()
        WHERE id = $1
          AND status IN ('pending', 'in_review')
        RETURNING id, status, rejection_reason, reviewed_at
        """,
        contribution_id,
        reviewer_id,
        rejection_reason,
        conn=conn,
    )
    if row is None:
        raise RuntimeError(f"Contribution {contribution_id} changed while locked.")
    return row


async def assign(contribution_id: int, *, moderator_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        UPDATE contributions
        SET status = 'in_review',
            assigned_to_user_id = $2,
            assigned_at = now(),
            updated_at = now()
        WHERE id = $1
          AND deleted_at IS NULL
          AND status IN ('pending', 'in_review')
        RETURNING id, status, assigned_to_user_id, assigned_at
        """,
        contribution_id,
        moderator_id,
    )


async def unassign(contribution_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        UPDATE contributions
        SET status = 'pending',
            assigned_to_user_id = NULL,
            assigned_at = NULL,
            updated_at = now()
        WHERE id = $1
          AND deleted_at IS NULL
          AND status IN ('pending', 'in_review')
        RETURNING id, status, assigned_to_user_id, assigned_at
        """,
        contribution_id,
    )


async def get_contribution(contribution_id: int) -> dict[str, Any] | None:
    return await contributions_repository.get_contribution(contribution_id)


async def list_contributions(
    *,
    status: str | None,
    contributable_type: str | None,
    limit: int,
    offset: int,
) -> list[dict[str, Any]]:
    return await contributions_repository.list_contributions(
        status=status,
        contributable_type=contributable_type,
        limit=limit,
        offset=offset,
    )


async def count_by_status() -> dict[str, int]:
    rows = await db.fetch_all(
        """
        SELECT status, count(*) AS n
        FROM contributions
        WHERE deleted_at IS NULL
        GROUP BY status
        """
    )
    return {str(r["status"]): int(r["n"]) for r in rows}
