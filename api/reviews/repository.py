"""
Review persistence.

One live review per (user, reviewable) is a partial unique index on
`reviews`; soft-deleted reviews do not count.
"""

from __future__ import annotations

from typing import Any

from core import db

_COLUMNS = """
    r.id, r.user_id, r.reviewable_type, r.reviewable_id, r.content, r.overall_score,
    r.helpful_votes, r.created_at, r.updated_at
"""


async def list_reviews(
    *,
    user_id: int | None,
    reviewable_type: str | None,
    reviewable_id: int | None,
    limit: int,
    offset: int,
) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_COLUMNS}, u.username, u.display_name, u.avatar_url
        FROM reviews r
        JOIN users u ON u.id = r.user_id
        WHERE r.deleted_at IS NULL
          AND ($1::bigint IS NULL OR r.user_id = $1)
          AND ($2::text IS NULL OR r.reviewable_type = $2)
          AND ($3::bigint IS NULL OR r.reviewable_id = $3)
        ORDER BY r.helpful_votes DESC, r.created_at DESC, r.id DESC
        LIMIT $4
        OFFSET $5
        """,
        user_id,
        reviewable_type,
        reviewable_id,
        limit,
        offset,
    )


async def get_review(review_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"SELECT {_COLUMNS} FROM reviews r WHERE r.id = $1 AND r.deleted_at IS NULL",
        review_id,
    )


async def insert_review(
    *,
    user_id: int,
    reviewable_type: str,
    reviewable_id: int,
    content: str,
    overall_score: int,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO reviews AS r (user_id, reviewable_type, reviewable_id, content, overall_score)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING {_COLUMNS}
        """,
        user_id,
        reviewable_type,
        reviewable_id,
        content,
        overall_score,
    )
    if row is None:
        raise RuntimeError("Failed to insert review.")
    return row


async def update_review(review_id: int, *, content: str | None, overall_score: int | None) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        UPDATE reviews AS r
        SET content = COALESCE($2, r.content),
            overall_score = COALESCE($3, r.overall_score),
            updated_at = now()
        WHERE r.id = $1 AND r.deleted_at IS NULL
        RETURNING {_COLUMNS}
        """,
        review_id,
        content,
        overall_score,
    )


async def soft_delete_review(review_id: int) -> bool:
    row = await db.fetch_one(
        """
        UPDATE reviews
        SET deleted_at = now(), updated_at = now()
        WHERE id = $1 AND deleted_at IS NULL
        RETURNING id
        """,
        review_id,
    )
    return row is not None


async def add_helpful_vote(review_id: int, *, user_id: int) -> int | None:
    """
    Record a helpful vote. Returns the new vote count, or None when this user
    already voted.
    """
    async with db.transaction() as conn:
        inserted = await db.fetch_val(
            """
            INSERT INTO review_votes (review_id, user_id)
            VALUES ($1, $2)
            ON CONFLICT DO NOTHING
            RETURNING review_id
            """,
            review_id,
            user_id,
            conn=conn,
        )
        if inserted is None:
            return None
        return await db.fetch_val(
            "UPDATE reviews SET helpful_votes = helpful_votes + 1 WHERE id = $1 RETURNING helpful_votes",
            review_id,
            conn=conn,
        )
