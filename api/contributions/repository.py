"""
Contribution persistence.

Table names for polymorphic targets come from `registry.table_name`, never
from request input, so interpolating them into SQL is safe.
"""

from __future__ import annotations

from typing import Any

from core import db

from . import registry

SELECT_CONTRIBUTION = """
    SELECT
      c.id, c.user_id, c.contributable_type, c.contributable_id, c.contribution_type,
      c.status, c.contribution_data, c.proposed_changes, c.contribution_notes, c.sources,
      c.moderator_notes, c.assigned_to_user_id, c.assigned_at, c.rejection_reason,
      c.awarded_points, c.reviewed_by, c.reviewed_at, c.created_at, c.updated_at,
      u.username AS user_username,
      u.display_name AS user_display_name,
      u.avatar_url AS user_avatar_url
    FROM contributions c
    JOIN users u ON u.id = c.user_id
"""


def _decode(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    for key in ("contribution_data", "proposed_changes", "sources"):
        if key in row:
            row[key] = db.json_value(row[key])
    return row


async def insert_contribution(
    *,
    user_id: int,
    contributable_type: str,
    contributable_id: int | None,
    contribution_type: str,
    contribution_data: dict[str, Any],
    proposed_changes: dict[str, Any] | None = None,
    contribution_notes: str | None = None,
    sources: Any = None,
) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        INSERT INTO contributions (
          user_id, contributable_type, contributable_id, contribution_type,
          contribution_data, proposed_changes, contribution_notes, sources
        )
        VALUES ($1, $2, $3, $4, $5::jsonb, $6::jsonb, $7, $8::jsonb)
        RETURNING id, status, created_at
        """,
        user_id,
        contributable_type,
        contributable_id,
        contribution_type,
        db.json_arg(contribution_data),
        db.json_arg(proposed_changes),
        contribution_notes,
        db.json_arg(sources),
    )
    if row is None:
        raise RuntimeError("Failed to insert contribution.")
    return row


async def get_contribution(contribution_id: int) -> dict[str, Any] | None:
    row = await db.fetch_one(
        SELECT_CONTRIBUTION + " WHERE c.id = $1 AND c.deleted_at IS NULL",
        contribution_id,
    )
    return _decode(row)


async def list_contributions(
    *,
    status: str | None = None,
    user_id: int | None = None,
    contributable_type: str | None = None,
    edits_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    rows = await db.fetch_all(
        SELECT_CONTRIBUTION
        + """
        WHERE c.deleted_at IS NULL
          AND ($1::text IS NULL OR c.status = $1)
          AND ($2::bigint IS NULL OR c.user_id = $2)
          AND ($3::text IS NULL OR c.contributable_type = $3)
          AND (NOT $4::boolean OR c.contribution_type IN ('add_info', 'modification'))
        ORDER BY c.created_at DESC, c.id DESC
        LIMIT $5
        OFFSET $6
        """,
        status,
        user_id,
        contributable_type,
        edits_only,
        limit,
        offset,
    )
    return [_decode(r) for r in rows]


async def update_moderator_notes(contribution_id: int, notes: str | None) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        UPDATE contributions
        SET moderator_notes = $2, updated_at = now()
        WHERE id = $1 AND deleted_at IS NULL
        RETURNING id, moderator_notes, updated_at
        """,
        contribution_id,
        notes,
    )


async def soft_delete_pending(contribution_id: int) -> dict[str, Any] | None:
    """
    Soft-delete a contribution that nobody has decided on yet.
    Returns None when the row is missing, deleted, or already past pending.
    """
    return await db.fetch_one(
        """
        UPDATE contributions
        SET deleted_at = now(), updated_at = now()
        WHERE id = $1
          AND deleted_at IS NULL
          AND status = 'pending'
        RETURNING id, deleted_at
        """,
        contribution_id,
    )


async def get_target_row(contributable_type: str, contributable_id: int) -> dict[str, Any] | None:
    """
    Current scalar columns of an existing entity (None when it does not exist).
    """
    columns = ", ".join(registry.column_names(contributable_type))
    table = registry.table_name(contributable_type)
    deleted_filter = " AND deleted_at IS NULL" if registry.is_media(contributable_type) else ""
    return await db.fetch_one(
        f"SELECT id, {columns} FROM {table} WHERE id = $1{deleted_filter}",
        contributable_id,
    )
