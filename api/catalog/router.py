"""
Catalog lookup endpoints used by the entity selectors and the edit dialog.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/api")


@router.get("/genres")
async def list_genres(
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=100, ge=1, le=200),
) -> dict:
    return await service.list_genres(search=search, limit=limit)


@router.get("/staff")
async def list_staff(
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=50, ge=1, le=100),
) -> dict:
    return await service.list_staff(search=search, limit=limit)


@router.post("/staff")
async def create_staff(
    payload: schemas.CreateStaffRequest,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.create_staff(payload)


@router.get("/studios")
async def list_studios(
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=50, ge=1, le=100),
) -> dict:
    return await service.list_studios(search=search, limit=limit)


@router.post("/studios")
async def create_studio(
    payload: schemas.CreateStudioRequest,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.create_studio(payload)


@router.get("/characters")
async def list_characters(
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=20, ge=1, le=100),
    media_type: str | None = Query(default=None, alias="mediaType"),
    media_id: int | None = Query(default=None, alias="mediaId"),
) -> dict:
    return await service.list_characters(search=search, limit=limit, media_type=media_type, media_id=media_id)


@router.post("/characters")
async def create_character(
    payload: schemas.CreateCharacterRequest,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.create_character(payload)


@router.get("/voice-actors")
async def list_voice_actors(
    search: str | None = Query(default=None, max_length=200),
    language: str | None = Query(default=None, max_length=32),
    limit: int = Query(default=20, ge=1, le=100),
) -> dict:
    return await service.list_voice_actors(search=search, language=language, limit=limit)


@router.post("/voice-actors")
async def create_voice_actor(
    payload: schemas.CreateVoiceActorRequest,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.create_voice_actor(payload)


@router.get("/get-media-for-edit")
async def get_media_for_edit(
    type: str | None = Query(default=None, max_length=32),
    id: str | None = Query(default=None, max_length=200),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.get_media_for_edit(type, id)
