"""
Scanlation persistence: groups, projects, visible links and link requests.
"""

from __future__ import annotations

from typing import Any

from catalog.repository import like_pattern
from core import db

_GROUP_COLUMNS = """
    id, name, slug, description, website_url, discord_url, logo_url,
    owner_user_id, is_verified, created_by, created_at, updated_at
"""

_PROJECT_COLUMNS = """
    p.id, p.user_id, p.group_id, p.media_type, p.media_id, p.group_name, p.website_url,
    p.project_url, p.status, p.language, p.notes, p.last_chapter_at, p.created_at, p.updated_at
"""

_REQUEST_COLUMNS = """
    r.id, r.group_id, r.media_type, r.media_id, r.url, r.language, r.status,
    r.requested_by, r.rejection_reason, r.reviewed_by, r.reviewed_at, r.created_at, r.updated_at
"""


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


async def search_groups(*, search: str | None, limit: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_GROUP_COLUMNS}
        FROM scanlation_groups
        WHERE $1::text IS NULL OR name ILIKE $1
        ORDER BY is_verified DESC, name ASC
        LIMIT $2
        """,
        like_pattern(search) if search else None,
        limit,
    )


async def get_group(group_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(f"SELECT {_GROUP_COLUMNS} FROM scanlation_groups WHERE id = $1", group_id)


async def find_group(*, slug: str, name: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {_GROUP_COLUMNS}
        FROM scanlation_groups
        WHERE slug = $1 OR lower(name) = lower($2)
        ORDER BY id
        LIMIT 1
        """,
        slug,
        name,
    )


async def insert_group(
    *,
    name: str,
    slug: str,
    description: str | None,
    website_url: str | None,
    discord_url: str | None,
    logo_url: str | None,
    created_by: int,
    owner_user_id: int | None,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO scanlation_groups (
          name, slug, description, website_url, discord_url, logo_url, created_by, owner_user_id
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
        RETURNING {_GROUP_COLUMNS}
        """,
        name,
        slug,
        description,
        website_url,
        discord_url,
        logo_url,
        created_by,
        owner_user_id,
    )
    if row is None:
        raise RuntimeError("Failed to insert scanlation group.")
    return row


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


async def list_projects(
    *,
    user_id: int | None,
    media_type: str | None,
    media_id: int | None,
    status: str | None,
    language: str | None,
    limit: int,
) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {_PROJECT_COLUMNS},
               g.name AS group_display_name, g.slug AS group_slug, g.is_verified AS group_is_verified,
               u.username
        FROM scan_projects p
        LEFT JOIN scanlation_groups g ON g.id = p.group_id
        JOIN users u ON u.id = p.user_id
        WHERE ($1::bigint IS NULL OR p.user_id = $1)
          AND ($2::text IS NULL OR p.media_type = $2)
          AND ($3::bigint IS NULL OR p.media_id = $3)
          AND ($4::text IS NULL OR p.status = $4)
          AND ($5::text IS NULL OR p.language = $5)
        ORDER BY p.updated_at DESC, p.id DESC
        LIMIT $6
        """,
        user_id,
        media_type,
        media_id,
        status,
        language,
        limit,
    )


async def get_project(project_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(f"SELECT {_PROJECT_COLUMNS} FROM scan_projects p WHERE p.id = $1", project_id)


async def find_project(*, user_id: int, media_type: str, media_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {_PROJECT_COLUMNS}
        FROM scan_projects p
        WHERE p.user_id = $1 AND p.media_type = $2 AND p.media_id = $3
        """,
        user_id,
        media_type,
        media_id,
    )


async def insert_project(
    *,
    user_id: int,
    group_id: int | None,
    media_type: str,
    media_id: int,
    group_name: str | None,
    website_url: str | None,
    project_url: str,
    status: str,
    language: str,
    notes: str | None,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO scan_projects AS p (
          user_id, group_id, media_type, media_id, group_name, website_url,
          project_url, status, language, notes
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
        RETURNING {_PROJECT_COLUMNS}
        """,
        user_id,
        group_id,
        media_type,
        media_id,
        group_name,
        website_url,
        project_url,
        status,
        language,
        notes,
    )
    if row is None:
        raise RuntimeError("Failed to insert scan project.")
    return row


async def update_project(project_id: int, changes: dict[str, Any]) -> dict[str, Any] | None:
    """
    Apply a partial update. Keys must be column names chosen by the caller.
    """
    if not changes:
        return await get_project(project_id)
    names = list(changes)
    assignments = ", ".join(f"{name} = ${i}" for i, name in enumerate(names, start=2))
    return await db.fetch_one(
        f"""
        UPDATE scan_projects AS p
        SET {assignments}, updated_at = now()
        WHERE p.id = $1
        RETURNING {_PROJECT_COLUMNS}
        """,
        project_id,
        *[changes[name] for name in names],
    )


async def delete_project(project_id: int) -> bool:
    row = await db.fetch_one("DELETE FROM scan_projects WHERE id = $1 RETURNING id", project_id)
    return row is not None


async def drop_stale_projects(*, stale_days: int) -> list[dict[str, Any]]:
    """
    Mark active projects with no chapter (or, lacking one, no edit) in
    `stale_days` days as dropped. Returns the rows that changed.
    """
    return await db.fetch_all(
        f"""
        UPDATE scan_projects AS p
        SET status = 'dropped', updated_at = now()
        WHERE p.status = 'active'
          AND COALESCE(p.last_chapter_at, p.updated_at) < now() - make_interval(days => $1)
        RETURNING {_PROJECT_COLUMNS}
        """,
        stale_days,
    )


# ---------------------------------------------------------------------------
# Links & link requests
# ---------------------------------------------------------------------------


async def upsert_link(
    *,
    group_id: int,
    media_type: str,
    media_id: int,
    url: str,
    language: str,
    added_by: int,
    conn=None,
) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        INSERT INTO scanlation_group_links (group_id, media_type, media_id, url, language, added_by)
        VALUES ($1, $2, $3, $4, $5, $6)
        ON CONFLICT (group_id, media_type, media_id, language)
        DO UPDATE SET url = EXCLUDED.url, updated_at = now()
        RETURNING id, group_id, media_type, media_id, url, language, created_at, updated_at
        """,
        group_id,
        media_type,
        media_id,
        url,
        language,
        added_by,
        conn=conn,
    )
    if row is None:
        raise RuntimeError("Failed to upsert scanlation link.")
    return row


async def find_pending_request(*, group_id: int, media_type: str, media_id: int, requested_by: int) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_REQUEST_COLUMNS}
        FROM scan_link_requests r
        WHERE r.group_id = $1 AND r.media_type = $2 AND r.media_id = $3
          AND r.requested_by = $4 AND r.status = 'pending'
        """,
        group_id,
        media_type,
        media_id,
        requested_by,
    )


async def insert_request(
    *,
    group_id: int,
    media_type: str,
    media_id: int,
    url: str,
    language: str,
    requested_by: int,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO scan_link_requests AS r (group_id, media_type, media_id, url, language, requested_by)
        VALUES ($1, $2, $3, $4, $5, $6)
        RETURNING {_REQUEST_COLUMNS}
        """,
        group_id,
        media_type,
        media_id,
        url,
        language,
        requested_by,
    )
    if row is None:
        raise RuntimeError("Failed to insert link request.")
    return row


async def get_request(request_id: int, *, conn=None, for_update: bool = False) -> dict[str, Any] | None:
    lock = " FOR UPDATE OF r" if for_update else ""
    return await db.fetch_one(
        f"""
        SELECT {_REQUEST_COLUMNS}, g.owner_user_id, g.name AS group_name
        FROM scan_link_requests r
        JOIN scanlation_groups g ON g.id = r.group_id
        WHERE r.id = $1{lock}
        """,
        request_id,
        conn=conn,
    )


async def list_requests_for_owner(*, owner_user_id: int | None, status: str | None, group_id: int | None) -> list[dict]:
    return await db.fetch_all(
        f"""
        SELECT {_REQUEST_COLUMNS}, g.name AS group_name, u.username AS requester_username
        FROM scan_link_requests r
        JOIN scanlation_groups g ON g.id = r.group_id
        JOIN users u ON u.id = r.requested_by
        WHERE ($1::bigint IS NULL OR g.owner_user_id = $1)
          AND ($2::text IS NULL OR r.status = $2)
          AND ($3::bigint IS NULL OR r.group_id = $3)
        ORDER BY r.created_at DESC, r.id DESC
        LIMIT 200
        """,
        owner_user_id,
        status,
        group_id,
    )


async def decide_request(
    request_id: int,
    *,
    status: str,
    reviewer_id: int,
    rejection_reason: str | None,
    conn=None,
) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        UPDATE scan_link_requests AS r
        SET status = $2, reviewed_by = $3, reviewed_at = now(),
            rejection_reason = $4, updated_at = now()
        WHERE r.id = $1 AND r.status = 'pending'
        RETURNING {_REQUEST_COLUMNS}
        """,
        request_id,
        status,
        reviewer_id,
        rejection_reason,
        conn=conn,
    )


async def delete_pending_request(request_id: int, *, requested_by: int) -> bool:
    row = await db.fetch_one(
        """
        DELETE FROM scan_link_requests
        WHERE id = $1 AND requested_by = $2 AND status = 'pending'
        RETURNING id
        """,
        request_id,
        requested_by,
    )
    return row is not None
