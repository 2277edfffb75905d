"""
Catalog lookups and inline creation for the entity selectors, plus the
edit snapshot consumed by the edit dialog.

Inline creation is idempotent by name: posting a name that already exists
(case-insensitive) returns the existing row instead of a duplicate.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import asyncpg

from contributions import registry
from core.errors import NotFound, ValidationFailed
from core.slugs import slugify

from . import repository, schemas

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


def _search_term(search: str | None) -> str | None:
    term = (search or "").strip()
    return term or None


def _listing(key: str, rows: list[dict[str, Any]]) -> dict:
    return {"success": True, key: rows, "total": len(rows)}


async def list_genres(*, search: str | None, limit: int) -> dict:
    rows = await repository.search_genres(search=_search_term(search), limit=limit)
    return _listing("genres", rows)


async def list_staff(*, search: str | None, limit: int) -> dict:
    rows = await repository.search_staff(search=_search_term(search), limit=limit)
    return _listing("staff", [{**r, "name": r["name_romaji"]} for r in rows])


async def list_studios(*, search: str | None, limit: int) -> dict:
    rows = await repository.search_studios(search=_search_term(search), limit=limit)
    return _listing("studios", rows)


async def list_characters(
    *,
    search: str | None,
    limit: int,
    media_type: str | None = None,
    media_id: int | None = None,
) -> dict:
    if media_type is None and media_id is None:
        rows = await repository.search_characters(search=_search_term(search), limit=limit)
        return _listing("characters", rows)

    if media_type not in registry.MEDIA_TYPES or media_id is None:
        raise ValidationFailed("mediaType and mediaId must be given together.")
    rows = await repository.list_characters_for_media(media_type=media_type, media_id=media_id, limit=limit)
    characters = [
        {
            "id": r["id"],
            "name": r["name"],
            "image_url": r["image_url"],
            "slug": r["slug"],
            "favorites_count": r["favorites_count"],
            "role": r["role"],
            "voice_actor": (
                {
                    "id": r["voice_actor_id"],
                    "name": r["voice_actor_name"],
                    "image_url": r["voice_actor_image"],
                    "language": r["voice_actor_language"],
                }
                if r["voice_actor_id"] is not None
                else None
            ),
        }
        for r in rows
    ]
    return {**_listing("characters", characters), "mediaType": media_type, "mediaId": media_id}


async def list_voice_actors(*, search: str | None, language: str | None, limit: int) -> dict:
    term = _search_term(search)
    if term is not None and len(term) < MIN_SEARCH_LENGTH:
        return _listing("voiceActors", [])
    rows = await repository.search_voice_actors(search=term, language=language or None, limit=limit)
    return _listing("voiceActors", [{**r, "name": r["name_romaji"]} for r in rows])


async def _create_or_existing(find, insert) -> tuple[dict, bool]:
    existing = await find()
    if existing is not None:
        return existing, False
    try:
        return await insert(), True
    except asyncpg.UniqueViolationError:
        # Lost a race with an identical insert; the other row is the answer.
        existing = await find()
        if existing is None:
            raise
        return existing, False


async def create_staff(payload: schemas.CreateStaffRequest) -> dict:
    name = payload.name_romaji.strip()
    if not name:
        raise ValidationFailed("Staff name is required.")
    row, created = await _create_or_existing(
        lambda: repository.find_staff_by_name(name),
        lambda: repository.insert_staff(
            name_romaji=name,
            name_native=(payload.name_native or "").strip() or None,
            image_url=(payload.image_url or "").strip() or None,
            slug=slugify(name),
        ),
    )
    if created:
        logger.info("staff_created id=%s", row["id"])
    return {
        "success": True,
        "staff": {**row, "name": row["name_romaji"]},
        "created": created,
        "message": "Staff member created." if created else "Staff member already exists.",
    }


async def create_studio(payload: schemas.CreateStudioRequest) -> dict:
    name = payload.name.strip()
    if not name:
        raise ValidationFailed("Studio name is required.")
    row, created = await _create_or_existing(
        lambda: repository.find_studio_by_name(name),
        lambda: repository.insert_studio(name=name, slug=slugify(name)),
    )
    if created:
        logger.info("studio_created id=%s", row["id"])
    return {
        "success": True,
        "studio": row,
        "created": created,
        "message": "Studio created." if created else "Studio already exists.",
    }


async def create_character(payload: schemas.CreateCharacterRequest) -> dict:
    name = payload.name.strip()
    if not name:
        raise ValidationFailed("Character name is required.")
    row, created = await _create_or_existing(
        lambda: repository.find_character_by_name(name),
        lambda: repository.insert_character(
            name=name,
            name_romaji=(payload.name_romaji or "").strip() or None,
            name_native=(payload.name_native or "").strip() or None,
            image_url=(payload.image_url or "").strip() or None,
            slug=slugify(name),
        ),
    )
    if created:
        logger.info("character_created id=%s", row["id"])
    return {
        "success": True,
        "character": row,
        "created": created,
        "message": "Character created." if created else "Character already exists.",
    }


async def create_voice_actor(payload: schemas.CreateVoiceActorRequest) -> dict:
    name = payload.name_romaji.strip()
    language = payload.language.strip().lower()
    if not name:
        raise ValidationFailed("Voice actor name is required.")
    if language not in registry.VOICE_ACTOR_LANGUAGES:
        raise ValidationFailed(f"Language must be one of: {', '.join(registry.VOICE_ACTOR_LANGUAGES)}.")
    row, created = await _create_or_existing(
        lambda: repository.find_voice_actor(name, language),
        lambda: repository.insert_voice_actor(
            name_romaji=name,
            name_native=(payload.name_native or "").strip() or None,
            language=language,
            image_url=(payload.image_url or "").strip() or None,
            slug=slugify(f"{name}-{language}"),
        ),
    )
    if created:
        logger.info("voice_actor_created id=%s language=%s", row["id"], language)
    return {
        "success": True,
        "voiceActor": {**row, "name": row["name_romaji"]},
        "created": created,
        "message": "Voice actor created." if created else "Voice actor already exists.",
    }


# ---------------------------------------------------------------------------
# Edit snapshot
# ---------------------------------------------------------------------------


def _snapshot_value(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _group_characters(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    by_id: dict[int, dict[str, Any]] = {}
    for r in rows:
        entry = by_id.setdefault(
            int(r["id"]),
            {"id": int(r["id"]), "name": r["name"], "role": r["role"], "voice_actors": {}},
        )
        if r.get("voice_actor_id") is not None:
            entry["voice_actors"][r["language"]] = int(r["voice_actor_id"])
    return list(by_id.values())


async def get_media_for_edit(media_type: str | None, id_or_slug: str | None) -> dict:
    """
    Current state of a media row, keyed by registry field names, with each
    relation in the same shape the contribution forms submit.
    """
    if not media_type or not id_or_slug:
        raise ValidationFailed("Parameters type and id are required.")
    media_type = media_type.replace("-", "_")
    if media_type not in registry.MEDIA_TYPES:
        raise ValidationFailed(f"Invalid content type: {media_type}.")

    row = await repository.get_media_row(media_type, id_or_slug.strip())
    if row is None:
        raise NotFound("Content not found.")
    media_id = int(row["id"])

    content = {key: _snapshot_value(value) for key, value in row.items()}
    relations = set(registry.relation_names(media_type))

    content["genre_ids"] = await repository.media_genre_ids(media_type, media_id)
    content["staff"] = [
        {"id": int(r["id"]), "name": r["name"], "role": r["role"]}
        for r in await repository.media_staff(media_type, media_id)
    ]
    content["characters"] = _group_characters(await repository.media_character_rows(media_type, media_id))
    if "studios" in relations:
        content["studios"] = [
            {"id": int(r["id"]), "name": r["name"], "is_main_studio": bool(r["is_main_studio"])}
            for r in await repository.media_studios(media_type, media_id)
        ]
    if "episodes" in relations:
        content["episodes"] = [
            {k: _snapshot_value(v) for k, v in r.items()}
            for r in await repository.media_episodes(media_type, media_id)
        ]

    links = await repository.media_links(media_type, media_id)
    content["external_links"] = [{k: _snapshot_value(v) for k, v in r.items()} for r in links]
    streaming_key = "streaming_platforms" if "streaming_platforms" in relations else "reading_platforms"
    content["official_sites"] = [
        {"site_name": l["site_name"], "url": l["url"]} for l in links if l["category"] == "official"
    ]
    content[streaming_key] = [
        {"site_name": l["site_name"], "url": l["url"]} for l in links if l["category"] == "streaming"
    ]
    if "fan_translations" in relations:
        content["fan_translations"] = [
            {"site_name": l["site_name"], "url": l["url"], "status": l["status"] or "active", "group_id": l["group_id"]}
            for l in links
            if l["category"] == "fan_translation"
        ]

    return {"success": True, "type": media_type, "content": content}
