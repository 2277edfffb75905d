"""
Catalog persistence: lookups for selectors and the media edit snapshot.
"""

from __future__ import annotations

from typing import Any

from contributions import registry
from core import db


def like_pattern(search: str) -> str:
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# ---------------------------------------------------------------------------
# Genres
# ---------------------------------------------------------------------------


async def search_genres(*, search: str | None, limit: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, code, name_es, name_en, name_ja, description_es, description_en, is_active
        FROM genres
        WHERE is_active
          AND ($1::text IS NULL OR name_es ILIKE $1 OR name_en ILIKE $1 OR code ILIKE $1)
        ORDER BY name_es ASC
        LIMIT $2
        """,
        like_pattern(search) if search else None,
        limit,
    )


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------


async def search_staff(*, search: str | None, limit: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, name_romaji, name_native, image_url, slug
        FROM staff
        WHERE $1::text IS NULL OR name_romaji ILIKE $1 OR name_native ILIKE $1
        ORDER BY name_romaji ASC
        LIMIT $2
        """,
        like_pattern(search) if search else None,
        limit,
    )


async def find_staff_by_name(name_romaji: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, name_romaji, name_native, image_url, slug
        FROM staff
        WHERE lower(name_romaji) = lower($1)
        ORDER BY id
        LIMIT 1
        """,
        name_romaji,
    )


async def insert_staff(*, name_romaji: str, name_native: str | None, image_url: str | None, slug: str) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO staff (name_romaji, name_native, image_url, slug)
        VALUES ($1, $2, $3, $4)
        RETURNING id, name_romaji, name_native, image_url, slug
        """,
        name_romaji,
        name_native,
        image_url,
        slug,
    )
    if row is None:
        raise RuntimeError("Failed to insert staff.")
    return row


# ---------------------------------------------------------------------------
# Studios
# ---------------------------------------------------------------------------


async def search_studios(*, search: str | None, limit: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, name, slug
        FROM studios
        WHERE $1::text IS NULL OR name ILIKE $1
        ORDER BY name ASC
        LIMIT $2
        """,
        like_pattern(search) if search else None,
        limit,
    )


async def find_studio_by_name(name: str) -> dict[str, Any] | None:
    return await db.fetch_one("SELECT id, name, slug FROM studios WHERE lower(name) = lower($1)", name)


async def insert_studio(*, name: str, slug: str) -> dict:
    row = await db.fetch_one(
        "INSERT INTO studios (name, slug) VALUES ($1, $2) RETURNING id, name, slug",
        name,
        slug,
    )
    if row is None:
        raise RuntimeError("Failed to insert studio.")
    return row


# ---------------------------------------------------------------------------
# Characters
# ---------------------------------------------------------------------------


async def search_characters(*, search: str | None, limit: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT c.id, COALESCE(c.name_romaji, c.name, c.name_native) AS name, c.image_url, c.slug,
               c.favorites_count,
               count(DISTINCT (mc.media_type, mc.media_id)) AS appearances_count
        FROM characters c
        LEFT JOIN media_characters mc ON mc.character_id = c.id
        WHERE $1::text IS NULL OR c.name ILIKE $1 OR c.name_romaji ILIKE $1 OR c.name_native ILIKE $1
        GROUP BY c.id
        ORDER BY c.favorites_count DESC, c.id ASC
        LIMIT $2
        """,
        like_pattern(search) if search else None,
        limit,
    )


async def list_characters_for_media(*, media_type: str, media_id: int, limit: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT c.id, COALESCE(c.name_romaji, c.name, c.name_native) AS name, c.image_url, c.slug,
               c.favorites_count, mc.role,
               va.id AS voice_actor_id,
               COALESCE(va.name_romaji, va.name_native) AS voice_actor_name,
               va.image_url AS voice_actor_image,
               cva.language AS voice_actor_language
        FROM media_characters mc
        JOIN characters c ON c.id = mc.character_id
        LEFT JOIN character_voice_actors cva
          ON cva.character_id = c.id AND cva.media_type = mc.media_type AND cva.media_id = mc.media_id
        LEFT JOIN voice_actors va ON va.id = cva.voice_actor_id
        WHERE mc.media_type = $1 AND mc.media_id = $2
        ORDER BY CASE mc.role WHEN 'main' THEN 1 ELSE 2 END, c.favorites_count DESC, c.id
        LIMIT $3
        """,
        media_type,
        media_id,
        limit,
    )


async def find_character_by_name(name: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, name, name_romaji, name_native, image_url, slug
        FROM characters
        WHERE lower(name) = lower($1)
        ORDER BY id
        LIMIT 1
        """,
        name,
    )


async def insert_character(
    *,
    name: str,
    name_romaji: str | None,
    name_native: str | None,
    image_url: str | None,
    slug: str,
) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO characters (name, name_romaji, name_native, image_url, slug)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING id, name, name_romaji, name_native, image_url, slug
        """,
        name,
        name_romaji,
        name_native,
        image_url,
        slug,
    )
    if row is None:
        raise RuntimeError("Failed to insert character.")
    return row


# ---------------------------------------------------------------------------
# Voice actors
# ---------------------------------------------------------------------------


async def search_voice_actors(*, search: str | None, language: str | None, limit: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, name_romaji, name_native, language, image_url, slug
        FROM voice_actors
        WHERE ($1::text IS NULL OR name_romaji ILIKE $1 OR name_native ILIKE $1)
          AND ($2::text IS NULL OR language = $2)
        ORDER BY name_romaji ASC
        LIMIT $3
        """,
        like_pattern(search) if search else None,
        language,
        limit,
    )


async def find_voice_actor(name_romaji: str, language: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, name_romaji, name_native, language, image_url, slug
        FROM voice_actors
        WHERE lower(name_romaji) = lower($1) AND language = $2
        ORDER BY id
        LIMIT 1
        """,
        name_romaji,
        language,
    )


async def insert_voice_actor(
    *,
    name_romaji: str,
    name_native: str | None,
    language: str,
    image_url: str | None,
    slug: str,
) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO voice_actors (name_romaji, name_native, language, image_url, slug)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING id, name_romaji, name_native, language, image_url, slug
        """,
        name_romaji,
        name_native,
        language,
        image_url,
        slug,
    )
    if row is None:
        raise RuntimeError("Failed to insert voice actor.")
    return row


# ---------------------------------------------------------------------------
# Media edit snapshot
# ---------------------------------------------------------------------------


async def get_media_row(media_type: str, id_or_slug: str) -> dict[str, Any] | None:
    table = registry.table_name(media_type)
    columns = ", ".join(["id", "slug", *registry.column_names(media_type), "created_at", "updated_at"])
    if id_or_slug.isdigit():
        row = await db.fetch_one(
            f"SELECT {columns} FROM {table} WHERE id = $1 AND deleted_at IS NULL",
            int(id_or_slug),
        )
        if row is not None:
            return row
    return await db.fetch_one(
        f"SELECT {columns} FROM {table} WHERE slug = $1 AND deleted_at IS NULL",
        id_or_slug,
    )


async def media_exists(media_type: str, media_id: int) -> bool:
    table = registry.table_name(media_type)
    return bool(
        await db.fetch_val(
            f"SELECT EXISTS (SELECT 1 FROM {table} WHERE id = $1 AND deleted_at IS NULL)",
            media_id,
        )
    )


async def media_genre_ids(media_type: str, media_id: int) -> list[int]:
    rows = await db.fetch_all(
        "SELECT genre_id FROM media_genres WHERE media_type = $1 AND media_id = $2 ORDER BY genre_id",
        media_type,
        media_id,
    )
    return [int(r["genre_id"]) for r in rows]


async def media_studios(media_type: str, media_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT s.id, s.name, ms.is_main_studio
        FROM media_studios ms
        JOIN studios s ON s.id = ms.studio_id
        WHERE ms.media_type = $1 AND ms.media_id = $2
        ORDER BY ms.is_main_studio DESC, s.name
        """,
        media_type,
        media_id,
    )


async def media_staff(media_type: str, media_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT st.id, st.name_romaji AS name, ms.role
        FROM media_staff ms
        JOIN staff st ON st.id = ms.staff_id
        WHERE ms.media_type = $1 AND ms.media_id = $2
        ORDER BY ms.role, st.name_romaji
        """,
        media_type,
        media_id,
    )


async def media_character_rows(media_type: str, media_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT c.id, COALESCE(c.name_romaji, c.name) AS name, mc.role,
               cva.language, cva.voice_actor_id
        FROM media_characters mc
        JOIN characters c ON c.id = mc.character_id
        LEFT JOIN character_voice_actors cva
          ON cva.character_id = c.id AND cva.media_type = mc.media_type AND cva.media_id = mc.media_id
        WHERE mc.media_type = $1 AND mc.media_id = $2
        ORDER BY CASE mc.role WHEN 'main' THEN 1 ELSE 2 END, c.id
        """,
        media_type,
        media_id,
    )


async def media_links(media_type: str, media_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT id, category, site_name, url, status, group_id
        FROM external_links
        WHERE media_type = $1 AND media_id = $2
        ORDER BY id
        """,
        media_type,
        media_id,
    )


async def media_episodes(media_type: str, media_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT season_number, episode_number, title, air_date, duration
        FROM episodes
        WHERE media_type = $1 AND media_id = $2
        ORDER BY season_number, episode_number
        """,
        media_type,
        media_id,
    )
