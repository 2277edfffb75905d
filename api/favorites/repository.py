"""
Favorite persistence.

`favorites_count` on the target row is kept in step with the favorites
table inside the same transaction.
"""

from __future__ import annotations

from typing import Any

from contributions import registry
from core import db


async def list_favorites(*, user_id: int, favoritable_type: str | None, limit: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, favoritable_type, favoritable_id, created_at
        FROM favorites
        WHERE user_id = $1
          AND ($2::text IS NULL OR favoritable_type = $2)
        ORDER BY created_at DESC, id DESC
        LIMIT $3
        """,
        user_id,
        favoritable_type,
        limit,
    )


async def target_exists(favoritable_type: str, favoritable_id: int) -> bool:
    table = registry.table_name(favoritable_type)
    return bool(await db.fetch_val(f"SELECT EXISTS (SELECT 1 FROM {table} WHERE id = $1)", favoritable_id))


async def add_favorite(*, user_id: int, favoritable_type: str, favoritable_id: int) -> bool:
    """Returns False when the favorite already existed."""
    table = registry.table_name(favoritable_type)
    async with db.transaction() as conn:
        inserted = await db.fetch_val(
            """
            INSERT INTO favorites (user_id, favoritable_type, favoritable_id)
            VALUES ($1, $2, $3)
            ON CONFLICT (user_id, favoritable_type, favoritable_id) DO NOTHING
            RETURNING id
            """,
            user_id,
            favoritable_type,
            favoritable_id,
            conn=conn,
        )
        if inserted is None:
            return False
        await db.execute(
            f"UPDATE {table} SET favorites_count = favorites_count + 1 WHERE id = $1",
            favoritable_id,
            conn=conn,
        )
    return True


async def remove_favorite(*, user_id: int, favoritable_type: str, favoritable_id: int) -> bool:
    table = registry.table_name(favoritable_type)
    async with db.transaction() as conn:
        deleted = await db.fetch_val(
            """
            DELETE FROM favorites
            WHERE user_id = $1 AND favoritable_type = $2 AND favoritable_id = $3
            RETURNING id
            """,
            user_id,
            favoritable_type,
            favoritable_id,
            conn=conn,
        )
        if deleted is None:
            return False
        await db.execute(
            f"UPDATE {table} SET favorites_count = GREATEST(favorites_count - 1, 0) WHERE id = $1",
            favoritable_id,
            conn=conn,
        )
    return True
