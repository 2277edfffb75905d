"""
Materialize an approved contribution into the canonical entity tables.

- full: INSERT the entity (scalar columns + slug) and its relation sets
- add_info / modification: UPDATE the changed columns and replace each
  changed relation set wholesale
- report: nothing to write

Everything runs on the caller's transaction connection. Table names come
from the registry, not from the contribution row's free-form data.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Awaitable, Callable

import asyncpg

from contributions import registry
from core.slugs import slugify

logger = logging.getLogger(__name__)

POINTS = {
    ("full", "media"): 20,
    ("full", "entity"): 10,
    ("add_info", None): 5,
    ("modification", None): 5,
    ("report", None): 2,
}

SLUGGED_ENTITIES = ("character", "staff", "voice_actor", "studio")

LINK_CATEGORIES = {
    "official_sites": "official",
    "streaming_platforms": "streaming",
    "reading_platforms": "streaming",
    "fan_translations": "fan_translation",
}


class TargetMissing(LookupError):
    pass


def points_for(contribution_type: str, contributable_type: str) -> int:
    if contribution_type == "full":
        bucket = "media" if registry.is_media(contributable_type) else "entity"
        return POINTS[("full", bucket)]
    return POINTS.get((contribution_type, None), 0)


def _db_value(field: registry.Field, value: Any) -> Any:
    if field.kind == "date" and isinstance(value, str):
        return date.fromisoformat(value)
    return value


async def _unique_slug(conn: asyncpg.Connection, table: str, base: str, fallback_suffix: int) -> str:
    taken = await conn.fetchval(f"SELECT EXISTS (SELECT 1 FROM {table} WHERE slug = $1)", base)
    return f"{base}-{fallback_suffix}" if taken else base


# ---------------------------------------------------------------------------
# Relation writers: (conn, media_type, media_id, items) -> None
# Each one replaces the whole set for the media row.
# ---------------------------------------------------------------------------


async def _write_genres(conn, media_type: str, media_id: int, items: list) -> None:
    await conn.execute("DELETE FROM media_genres WHERE media_type = $1 AND media_id = $2", media_type, media_id)
    for genre_id in dict.fromkeys(items):
        await conn.execute(
            "INSERT INTO media_genres (media_type, media_id, genre_id) VALUES ($1, $2, $3)",
            media_type,
            media_id,
            genre_id,
        )


async def _write_studios(conn, media_type: str, media_id: int, items: list) -> None:
    await conn.execute("DELETE FROM media_studios WHERE media_type = $1 AND media_id = $2", media_type, media_id)
    for item in items:
        await conn.execute(
            """
            INSERT INTO media_studios (media_type, media_id, studio_id, is_main_studio)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (media_type, media_id, studio_id) DO NOTHING
            """,
            media_type,
            media_id,
            item["id"],
            bool(item.get("is_main_studio")),
        )


async def _write_staff(conn, media_type: str, media_id: int, items: list) -> None:
    await conn.execute("DELETE FROM media_staff WHERE media_type = $1 AND media_id = $2", media_type, media_id)
    for item in items:
        await conn.execute(
            """
            INSERT INTO media_staff (media_type, media_id, staff_id, role)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT DO NOTHING
            """,
            media_type,
            media_id,
            item["id"],
            item["role"],
        )


async def _write_characters(conn, media_type: str, media_id: int, items: list) -> None:
    await conn.execute(
        "DELETE FROM character_voice_actors WHERE media_type = $1 AND media_id = $2", media_type, media_id
    )
    await conn.execute("DELETE FROM media_characters WHERE media_type = $1 AND media_id = $2", media_type, media_id)
    for item in items:
        await conn.execute(
            """
            INSERT INTO media_characters (media_type, media_id, character_id, role)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT DO NOTHING
            """,
            media_type,
            media_id,
            item["id"],
            item.get("role") or "supporting",
        )
        for language, voice_actor_id in (item.get("voice_actors") or {}).items():
            if voice_actor_id is None:
                continue
            await conn.execute(
                """
                INSERT INTO character_voice_actors (character_id, voice_actor_id, media_type, media_id, language)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT DO NOTHING
                """,
                item["id"],
                voice_actor_id,
                media_type,
                media_id,
                language,
            )


def _link_writer(category: str) -> Callable[..., Awaitable[None]]:
    async def _write(conn, media_type: str, media_id: int, items: list) -> None:
        await conn.execute(
            "DELETE FROM external_links WHERE media_type = $1 AND media_id = $2 AND category = $3",
            media_type,
            media_id,
            category,
        )
        for item in items:
            await conn.execute(
                """
                INSERT INTO external_links (media_type, media_id, category, site_name, url, status, group_id)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                """,
                media_type,
                media_id,
                category,
                item["site_name"],
                item["url"],
                item.get("status"),
                item.get("group_id"),
            )

    return _write


async def _write_episodes(conn, media_type: str, media_id: int, items: list) -> None:
    await conn.execute("DELETE FROM episodes WHERE media_type = $1 AND media_id = $2", media_type, media_id)
    for item in items:
        await conn.execute(
            """
            INSERT INTO episodes (media_type, media_id, season_number, episode_number, title, air_date, duration)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            ON CONFLICT (media_type, media_id, season_number, episode_number)
            DO UPDATE SET title = EXCLUDED.title, air_date = EXCLUDED.air_date, duration = EXCLUDED.duration
            """,
            media_type,
            media_id,
            item.get("season_number") or 1,
            item["episode_number"],
            item.get("title"),
            date.fromisoformat(item["air_date"]) if item.get("air_date") else None,
            item.get("duration"),
        )


RELATION_WRITERS: dict[str, Callable[..., Awaitable[None]]] = {
    "genre_ids": _write_genres,
    "studios": _write_studios,
    "staff": _write_staff,
    "characters": _write_characters,
    "episodes": _write_episodes,
    **{name: _link_writer(category) for name, category in LINK_CATEGORIES.items()},
}


async def _write_relations(conn, contributable_type: str, target_id: int, values: dict[str, Any]) -> None:
    for name, items in values.items():
        writer = RELATION_WRITERS.get(name)
        if writer is None:
            continue
        await writer(conn, contributable_type, target_id, items or [])


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


async def create_entity(conn: asyncpg.Connection, contribution: dict[str, Any]) -> int:
    contributable_type = contribution["contributable_type"]
    data = registry.coerce(contributable_type, contribution.get("contribution_data") or {})
    table = registry.table_name(contributable_type)
    fields = [f for f in registry.get_schema(contributable_type) if f.column]

    columns = [f.name for f in fields]
    values = [_db_value(f, data.get(f.name)) for f in fields]
    if contributable_type == "voice_actor" and values[columns.index("language")] is None:
        values[columns.index("language")] = "japanese"
    if registry.is_media(contributable_type) or contributable_type in SLUGGED_ENTITIES:
        base = slugify(registry.display_name(contributable_type, data))
        columns.append("slug")
        values.append(await _unique_slug(conn, table, base, int(contribution["id"])))
    if "is_nsfw" in columns:
        values[columns.index("is_nsfw")] = bool(values[columns.index("is_nsfw")])

    placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
    new_id = await conn.fetchval(
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING id",
        *values,
    )
    relations = {name: data.get(name) for name in registry.relation_names(contributable_type)}
    await _write_relations(conn, contributable_type, int(new_id), relations)
    logger.info("entity_created type=%s id=%s contribution_id=%s", contributable_type, new_id, contribution["id"])
    return int(new_id)


async def update_entity(conn: asyncpg.Connection, contribution: dict[str, Any]) -> int:
    contributable_type = contribution["contributable_type"]
    target_id = int(contribution["contributable_id"])
    table = registry.table_name(contributable_type)
    changes = contribution.get("proposed_changes") or {}

    scalar: list[tuple[str, Any]] = []
    relations: dict[str, Any] = {}
    for name, change in changes.items():
        field = registry.get_field(contributable_type, name)
        if field is None:
            logger.warning("unknown_change_dropped contribution_id=%s field=%s", contribution["id"], name)
            continue
        new_value = registry.coerce_value(field, change.get("new"))
        if field.column:
            scalar.append((name, _db_value(field, new_value)))
        else:
            relations[name] = new_value

    assignments = ", ".join(f"{name} = ${i}" for i, (name, _) in enumerate(scalar, start=2))
    set_clause = f"{assignments}, updated_at = now()" if assignments else "updated_at = now()"
    updated = await conn.fetchval(
        f"UPDATE {table} SET {set_clause} WHERE id = $1 RETURNING id",
        target_id,
        *[value for _, value in scalar],
    )
    if updated is None:
        raise TargetMissing(f"{contributable_type} {target_id} no longer exists.")

    await _write_relations(conn, contributable_type, target_id, relations)
    logger.info(
        "entity_updated type=%s id=%s fields=%s contribution_id=%s",
        contributable_type,
        target_id,
        ",".join(changes),
        contribution["id"],
    )
    return target_id


async def materialize(conn: asyncpg.Connection, contribution: dict[str, Any]) -> int | None:
    """
    Apply the contribution. Returns the id of the created/updated entity, or
    None for reports.
    """
    contribution_type = contribution["contribution_type"]
    if contribution_type == "full":
        return await create_entity(conn, contribution)
    if contribution_type in ("add_info", "modification"):
        return await update_entity(conn, contribution)
    return None
