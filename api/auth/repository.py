"""
User, role and refresh-token persistence.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core import db

_USER_COLUMNS = """
    u.id, u.email, u.username, u.display_name, u.avatar_url, u.password_hash,
    u.is_active, u.points, u.created_at, u.updated_at,
    COALESCE(
        (SELECT array_agg(r.role ORDER BY r.role) FROM user_roles r WHERE r.user_id = u.id),
        ARRAY[]::text[]
    ) AS roles
"""


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _with_role_list(row: dict | None) -> dict | None:
    if row is None:
        return None
    row["roles"] = list(row.get("roles") or [])
    return row


async def create_user(
    *,
    email: str,
    username: str,
    password_hash: str,
    display_name: str | None = None,
) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO users (email, username, display_name, password_hash)
        VALUES ($1, $2, $3, $4)
        RETURNING id
        """,
        normalize_email(email),
        username.strip(),
        display_name,
        password_hash,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    created = await get_user_by_id(int(row["id"]))
    if created is None:
        raise RuntimeError("Created user vanished.")
    return created


async def get_user_by_email(email: str) -> dict | None:
    row = await db.fetch_one(
        f"""
        SELECT {_USER_COLUMNS}
        FROM users u
        WHERE lower(u.email) = lower($1) AND u.deleted_at IS NULL
        """,
        normalize_email(email),
    )
    return _with_role_list(row)


async def get_user_by_username(username: str) -> dict | None:
    row = await db.fetch_one(
        f"""
        SELECT {_USER_COLUMNS}
        FROM users u
        WHERE lower(u.username) = lower($1) AND u.deleted_at IS NULL
        """,
        (username or "").strip(),
    )
    return _with_role_list(row)


async def get_user_by_id(user_id: int) -> dict | None:
    row = await db.fetch_one(
        f"""
        SELECT {_USER_COLUMNS}
        FROM users u
        WHERE u.id = $1 AND u.deleted_at IS NULL
        """,
        user_id,
    )
    return _with_role_list(row)


async def list_user_ids_with_roles(roles: list[str]) -> list[int]:
    rows = await db.fetch_all(
        """
        SELECT DISTINCT r.user_id
        FROM user_roles r
        JOIN users u ON u.id = r.user_id
        WHERE r.role = ANY($1::text[])
          AND u.is_active
          AND u.deleted_at IS NULL
        ORDER BY r.user_id
        """,
        roles,
    )
    return [int(r["user_id"]) for r in rows]


async def add_points(user_id: int, points: int, *, conn=None) -> None:
    await db.execute(
        "UPDATE users SET points = points + $2, updated_at = now() WHERE id = $1",
        user_id,
        points,
        conn=conn,
    )


async def insert_refresh_token(
    *,
    user_id: int,
    token_hash: str,
    expires_at: datetime,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> dict:
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)

    row = await db.fetch_one(
        """
        INSERT INTO refresh_tokens (user_id, token_hash, expires_at, user_agent, ip_address)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING id, user_id, expires_at, revoked_at, created_at
        """,
        user_id,
        token_hash,
        expires_at,
        user_agent,
        ip_address,
    )
    if row is None:
        raise RuntimeError("Failed to insert refresh token.")
    return row


async def get_refresh_token_by_hash(token_hash: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, user_id, expires_at, revoked_at, replaced_by_token_id
        FROM refresh_tokens
        WHERE token_hash = $1
        """,
        token_hash,
    )


async def rotate_refresh_token(*, old_token_id: int, new_token_id: int) -> None:
    await db.execute(
        """
        UPDATE refresh_tokens
        SET revoked_at = COALESCE(revoked_at, now()),
            last_used_at = now(),
            replaced_by_token_id = $2
        WHERE id = $1
        """,
        old_token_id,
        new_token_id,
    )


async def revoke_refresh_token(*, token_id: int | None = None, token_hash: str | None = None) -> bool:
    row = await db.fetch_one(
        """
        UPDATE refresh_tokens
        SET revoked_at = now()
        WHERE (id = $1 OR token_hash = $2)
          AND revoked_at IS NULL
        RETURNING id
        """,
        token_id,
        token_hash,
    )
    return row is not None


async def revoke_all_refresh_tokens_for_user(user_id: int) -> None:
    await db.execute(
        """
        UPDATE refresh_tokens
        SET revoked_at = now()
        WHERE user_id = $1
          AND revoked_at IS NULL
        """,
        user_id,
    )
