"""
Scanlation business logic.

Scope:
- groups: search, get, create-or-return-existing
- projects: one per (user, media), owner or admin may edit/delete
- stale projects: a daily cron drops active projects that stopped updating
- link requests: how a non-owner proposes linking a group to a title

Link request routing:
- requester owns the group -> the link is published directly
- group is unverified or has no owner -> published directly, marked unverified
- otherwise -> a pending request the group owner approves or rejects
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from auth import service as auth_service
from catalog import repository as catalog_repository
from contributions import registry
from core import db, settings
from core.errors import AuthorizationDenied, Conflict, NotFound, ValidationFailed
from core.slugs import slugify
from notifications import service as notifications_service
from rankings import service as rankings_service

from . import repository, schemas

logger = logging.getLogger(__name__)

ALREADY_REGISTERED = "You have already registered a project for this title."


def _blank_to_none(value: str | None) -> str | None:
    return (value or "").strip() or None


async def _ensure_media(media_type: str, media_id: int) -> None:
    if media_type not in registry.MEDIA_TYPES:
        raise ValidationFailed(f"Invalid media type: {media_type}.")
    if not await catalog_repository.media_exists(media_type, media_id):
        raise NotFound(f"{media_type} {media_id} not found.")


def _can_manage(user: dict, owner_id: int | None) -> bool:
    return (owner_id is not None and int(owner_id) == int(user["id"])) or auth_service.has_any_role(
        user, auth_service.ROLE_ADMIN
    )


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


async def search_groups(*, search: str | None, limit: int) -> dict:
    rows = await repository.search_groups(search=_blank_to_none(search), limit=limit)
    return {"success": True, "groups": rows, "total": len(rows)}


async def get_group(group_id: int) -> dict:
    row = await repository.get_group(group_id)
    if row is None:
        raise NotFound("Scanlation group not found.")
    return {"success": True, "group": row}


async def create_group(current_user: dict, payload: schemas.CreateGroupRequest) -> dict:
    name = payload.name.strip()
    slug = slugify(name)
    existing = await repository.find_group(slug=slug, name=name)
    if existing is not None:
        return {"success": True, "group": existing, "created": False, "message": "Group already exists."}

    # Users with the scan role own the groups they register.
    owner_id = int(current_user["id"]) if auth_service.has_any_role(current_user, auth_service.ROLE_SCAN) else None
    try:
        row = await repository.insert_group(
            name=name,
            slug=slug,
            description=_blank_to_none(payload.description),
            website_url=_blank_to_none(payload.website_url),
            discord_url=_blank_to_none(payload.discord_url),
            logo_url=_blank_to_none(payload.logo_url),
            created_by=int(current_user["id"]),
            owner_user_id=owner_id,
        )
    except asyncpg.UniqueViolationError:
        existing = await repository.find_group(slug=slug, name=name)
        if existing is None:
            raise
        return {"success": True, "group": existing, "created": False, "message": "Group already exists."}

    logger.info("scan_group_created id=%s owner=%s", row["id"], owner_id)
    return {"success": True, "group": row, "created": True, "message": "Group created."}


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


async def list_projects(
    *,
    user_id: int | None = None,
    media_type: str | None = None,
    media_id: int | None = None,
    status: str | None = None,
    language: str | None = None,
    limit: int = 50,
) -> dict:
    rows = await repository.list_projects(
        user_id=user_id,
        media_type=media_type,
        media_id=media_id,
        status=status,
        language=language,
        limit=limit,
    )
    return {"success": True, "projects": rows, "total": len(rows)}


async def get_project(project_id: int) -> dict:
    row = await repository.get_project(project_id)
    if row is None:
        raise NotFound("Project not found.")
    return {"success": True, "project": row}


async def create_project(current_user: dict, payload: schemas.CreateProjectRequest) -> dict:
    if not auth_service.has_any_role(current_user, auth_service.ROLE_SCAN, auth_service.ROLE_ADMIN):
        raise AuthorizationDenied("Only scanlators can register projects.")
    await _ensure_media(payload.media_type, payload.media_id)
    if payload.group_id is not None and await repository.get_group(payload.group_id) is None:
        raise NotFound("Scanlation group not found.")

    user_id = int(current_user["id"])
    # Fast path for the common case; the unique constraint is what actually guarantees it.
    if await repository.find_project(user_id=user_id, media_type=payload.media_type, media_id=payload.media_id):
        raise Conflict(ALREADY_REGISTERED)
    try:
        row = await repository.insert_project(
            user_id=user_id,
            group_id=payload.group_id,
            media_type=payload.media_type,
            media_id=payload.media_id,
            group_name=_blank_to_none(payload.group_name),
            website_url=_blank_to_none(payload.website_url),
            project_url=payload.project_url.strip(),
            status=payload.status,
            language=payload.language.strip().lower(),
            notes=_blank_to_none(payload.notes),
        )
    except asyncpg.UniqueViolationError as exc:
        raise Conflict(ALREADY_REGISTERED) from exc

    logger.info(
        "scan_project_created id=%s user_id=%s media=%s:%s",
        row["id"],
        user_id,
        payload.media_type,
        payload.media_id,
    )
    return {"success": True, "project": row, "message": "Project registered."}


async def _managed_project(current_user: dict, project_id: int) -> dict[str, Any]:
    row = await repository.get_project(project_id)
    if row is None:
        raise NotFound("Project not found.")
    if not _can_manage(current_user, row["user_id"]):
        raise AuthorizationDenied("You cannot modify this project.")
    return row


async def update_project(current_user: dict, project_id: int, payload: schemas.UpdateProjectRequest) -> dict:
    await _managed_project(current_user, project_id)
    changes = payload.model_dump(exclude_unset=True, by_alias=False)
    for key in ("group_name", "website_url", "notes"):
        if key in changes:
            changes[key] = _blank_to_none(changes[key])
    if "project_url" in changes and changes["project_url"] is None:
        raise ValidationFailed("projectUrl cannot be empty.")
    if "status" in changes and changes["status"] is None:
        del changes["status"]

    row = await repository.update_project(project_id, changes)
    if row is None:
        raise NotFound("Project not found.")
    return {"success": True, "project": row, "message": "Project updated."}


async def delete_project(current_user: dict, project_id: int) -> dict:
    await _managed_project(current_user, project_id)
    if not await repository.delete_project(project_id):
        raise NotFound("Project not found.")
    logger.info("scan_project_deleted id=%s by=%s", project_id, current_user["id"])
    return {"success": True, "message": "Project deleted."}


async def drop_stale_projects(authorization: str | None) -> dict:
    rankings_service.check_cron_secret(authorization)
    stale_days = settings.scan_stale_days()
    rows = await repository.drop_stale_projects(stale_days=stale_days)

    for row in rows:
        await notifications_service.create_notification(
            recipient_user_id=int(row["user_id"]),
            action_type=notifications_service.SCAN_PROJECT_STALE,
            notifiable_type="scan_project",
            notifiable_id=int(row["id"]),
        )

    project_ids = [int(row["id"]) for row in rows]
    logger.info("scan_projects_dropped count=%s stale_days=%s ids=%s", len(project_ids), stale_days, project_ids)
    return {
        "success": True,
        "message": f"Dropped {len(project_ids)} inactive projects." if project_ids else "No inactive projects.",
        "processed": len(project_ids),
        "projectIds": project_ids,
        "notificationsSent": len(rows),
    }


# ---------------------------------------------------------------------------
# Link requests
# ---------------------------------------------------------------------------


async def list_link_requests(current_user: dict, *, status: str | None, group_id: int | None) -> dict:
    owner_filter = None if auth_service.has_any_role(current_user, auth_service.ROLE_ADMIN) else int(current_user["id"])
    rows = await repository.list_requests_for_owner(owner_user_id=owner_filter, status=status, group_id=group_id)
    return {"success": True, "requests": rows, "total": len(rows)}


async def get_link_request(current_user: dict, request_id: int) -> dict:
    row = await repository.get_request(request_id)
    if row is None:
        raise NotFound("Link request not found.")
    is_requester = int(row["requested_by"]) == int(current_user["id"])
    if not is_requester and not _can_manage(current_user, row["owner_user_id"]):
        raise AuthorizationDenied("You cannot view this link request.")
    return {"success": True, "request": row}


async def create_link_request(current_user: dict, payload: schemas.CreateLinkRequest) -> dict:
    await _ensure_media(payload.media_type, payload.media_id)
    group = await repository.get_group(payload.group_id)
    if group is None:
        raise NotFound("Scanlation group not found.")

    user_id = int(current_user["id"])
    url = payload.url.strip()
    language = payload.language.strip().lower()
    owner_id = group["owner_user_id"]

    if (owner_id is not None and int(owner_id) == user_id) or not group["is_verified"] or owner_id is None:
        link = await repository.upsert_link(
            group_id=payload.group_id,
            media_type=payload.media_type,
            media_id=payload.media_id,
            url=url,
            language=language,
            added_by=user_id,
        )
        verified = owner_id is not None and int(owner_id) == user_id and bool(group["is_verified"])
        logger.info("scan_link_published group_id=%s media=%s:%s", payload.group_id, payload.media_type, payload.media_id)
        return {
            "success": True,
            "direct": True,
            "verified": verified,
            "link": link,
            "message": "Link published." if verified else "Link published (group not verified).",
        }

    if await repository.find_pending_request(
        group_id=payload.group_id,
        media_type=payload.media_type,
        media_id=payload.media_id,
        requested_by=user_id,
    ):
        raise Conflict("You already have a pending request for this group and title.")
    try:
        request_row = await repository.insert_request(
            group_id=payload.group_id,
            media_type=payload.media_type,
            media_id=payload.media_id,
            url=url,
            language=language,
            requested_by=user_id,
        )
    except asyncpg.UniqueViolationError as exc:
        raise Conflict("You already have a pending request for this group and title.") from exc

    await notifications_service.create_notification(
        recipient_user_id=int(owner_id),
        actor_user_id=user_id,
        action_type=notifications_service.LINK_REQUEST_RECEIVED,
        notifiable_type="scan_link_request",
        notifiable_id=int(request_row["id"]),
    )
    logger.info("scan_link_requested id=%s group_id=%s by=%s", request_row["id"], payload.group_id, user_id)
    return {
        "success": True,
        "direct": False,
        "request": request_row,
        "message": "Request sent to the group owner.",
    }


async def decide_link_request(current_user: dict, request_id: int, payload: schemas.LinkDecisionRequest) -> dict:
    reason = _blank_to_none(payload.rejection_reason)
    if payload.action == "reject" and reason is None:
        raise ValidationFailed("A rejection reason is required.")

    reviewer_id = int(current_user["id"])
    async with db.transaction() as conn:
        row = await repository.get_request(request_id, conn=conn, for_update=True)
        if row is None:
            raise NotFound("Link request not found.")
        if not _can_manage(current_user, row["owner_user_id"]):
            raise AuthorizationDenied("Only the group owner can decide this request.")
        if row["status"] != "pending":
            raise Conflict(f"Link request was already {row['status']}.")

        status = "approved" if payload.action == "approve" else "rejected"
        updated = await repository.decide_request(
            request_id,
            status=status,
            reviewer_id=reviewer_id,
            rejection_reason=reason if status == "rejected" else None,
            conn=conn,
        )
        link = None
        if status == "approved":
            link = await repository.upsert_link(
                group_id=int(row["group_id"]),
                media_type=row["media_type"],
                media_id=int(row["media_id"]),
                url=row["url"],
                language=row["language"],
                added_by=int(row["requested_by"]),
                conn=conn,
            )
        await notifications_service.create_notification(
            recipient_user_id=int(row["requested_by"]),
            actor_user_id=reviewer_id,
            action_type=(
                notifications_service.LINK_REQUEST_APPROVED
                if status == "approved"
                else notifications_service.LINK_REQUEST_REJECTED
            ),
            notifiable_type="scan_link_request",
            notifiable_id=request_id,
            conn=conn,
        )

    logger.info("scan_link_request_decided id=%s status=%s by=%s", request_id, status, reviewer_id)
    return {
        "success": True,
        "request": updated,
        "link": link,
        "message": "Request approved." if status == "approved" else "Request rejected.",
    }


async def cancel_link_request(current_user: dict, request_id: int) -> dict:
    if not await repository.delete_pending_request(request_id, requested_by=int(current_user["id"])):
        raise NotFound("Pending link request not found.")
    return {"success": True, "message": "Request cancelled."}
