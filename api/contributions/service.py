"""
Contribution submission business logic.

Scope:
- full contributions (propose a new media/entity) from the web forms
- edit contributions (add_info/modification) from the edit dialog
- reports against existing content
- listing, detail, notes and withdrawal of contributions

Client-side validation is not trusted: every payload is re-validated here
against the same field-schema registry the forms use.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

from auth import service as auth_service
from core.errors import AuthorizationDenied, Conflict, NotFound, ValidationFailed
from notifications import service as notifications_service

from . import diff, registry, repository, schemas

logger = logging.getLogger(__name__)

FULL = "full"
ADD_INFO = "add_info"
MODIFICATION = "modification"
REPORT = "report"
EDIT_TYPES = (ADD_INFO, MODIFICATION)
CONTRIBUTION_TYPES = (FULL, ADD_INFO, MODIFICATION, REPORT)
USER_CONTRIBUTION_TYPES = (FULL, MODIFICATION, REPORT)
STATUSES = ("pending", "in_review", "approved", "rejected")


def _iso(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _format_errors(errors: dict[str, str]) -> str:
    return "; ".join(f"{path}: {message}" for path, message in errors.items())


def serialize(row: dict[str, Any]) -> dict[str, Any]:
    """API representation of a contribution row (camelCase keys)."""
    return {
        "id": int(row["id"]),
        "userId": int(row["user_id"]),
        "contributableType": row["contributable_type"],
        "contributableId": row["contributable_id"],
        "contributionType": row["contribution_type"],
        "status": row["status"],
        "contributionData": row.get("contribution_data") or {},
        "proposedChanges": row.get("proposed_changes"),
        "contributionNotes": row.get("contribution_notes"),
        "sources": row.get("sources"),
        "moderatorNotes": row.get("moderator_notes"),
        "assignedToUserId": row.get("assigned_to_user_id"),
        "rejectionReason": row.get("rejection_reason"),
        "awardedPoints": int(row.get("awarded_points") or 0),
        "reviewedBy": row.get("reviewed_by"),
        "reviewedAt": row.get("reviewed_at"),
        "createdAt": row["created_at"],
        "updatedAt": row.get("updated_at"),
        "user": {
            "id": int(row["user_id"]),
            "username": row.get("user_username"),
            "displayName": row.get("user_display_name"),
            "avatarUrl": row.get("user_avatar_url"),
        },
    }


def _check_type(contributable_type: str, allowed: tuple[str, ...], *, what: str) -> None:
    if contributable_type not in allowed:
        raise ValidationFailed(f"Invalid {what}: {contributable_type}. Allowed: {', '.join(allowed)}.")


async def _record(
    current_user: dict,
    *,
    contributable_type: str,
    contributable_id: int | None,
    contribution_type: str,
    contribution_data: dict[str, Any],
    proposed_changes: dict[str, Any] | None = None,
    contribution_notes: str | None = None,
    sources: Any = None,
) -> dict[str, Any]:
    # contributable_id is set exactly for edit-style contributions.
    if (contribution_type in EDIT_TYPES) != (contributable_id is not None):
        raise ValidationFailed(
            "An existing target id is required for edits and must be omitted otherwise."
        )

    user_id = int(current_user["id"])
    row = await repository.insert_contribution(
        user_id=user_id,
        contributable_type=contributable_type,
        contributable_id=contributable_id,
        contribution_type=contribution_type,
        contribution_data=contribution_data,
        proposed_changes=proposed_changes,
        contribution_notes=contribution_notes,
        sources=sources,
    )
    contribution_id = int(row["id"])
    logger.info(
        "contribution_created id=%s user_id=%s type=%s target=%s:%s",
        contribution_id,
        user_id,
        contribution_type,
        contributable_type,
        contributable_id,
    )
    await notifications_service.notify_moderators(
        action_type=notifications_service.CONTRIBUTION_SUBMITTED,
        notifiable_type="contribution",
        notifiable_id=contribution_id,
        actor_user_id=user_id,
    )
    return {
        "success": True,
        "message": "Contribution submitted for review.",
        "contribution": {
            "id": contribution_id,
            "status": row["status"],
            "contributableId": contributable_id,
            "createdAt": row["created_at"],
        },
    }


def _full_payload(contributable_type: str, data: dict[str, Any]) -> dict[str, Any]:
    errors = registry.validate(contributable_type, data)
    if errors:
        raise ValidationFailed(f"Invalid contribution data: {_format_errors(errors)}")
    payload = registry.coerce(contributable_type, data)
    payload["contentType"] = contributable_type
    payload["submittedAt"] = datetime.now(timezone.utc).isoformat()
    return payload


async def _target_snapshot(contributable_type: str, contributable_id: int) -> dict[str, Any]:
    row = await repository.get_target_row(contributable_type, contributable_id)
    if row is None:
        raise NotFound(f"{contributable_type} {contributable_id} not found.")
    return {key: _iso(value) for key, value in row.items()}


async def submit_full(current_user: dict, contributable_type: str, data: dict[str, Any]) -> dict:
    _check_type(contributable_type, registry.CONTRIBUTABLE_TYPES, what="contributable type")
    return await _record(
        current_user,
        contributable_type=contributable_type,
        contributable_id=None,
        contribution_type=FULL,
        contribution_data=_full_payload(contributable_type, data),
    )


async def submit_media(current_user: dict, media_type: str, data: dict[str, Any]) -> dict:
    _check_type(media_type, registry.MEDIA_TYPES, what="media type")
    return await submit_full(current_user, media_type, data)


async def submit_entity(current_user: dict, entity_type: str, data: dict[str, Any]) -> dict:
    _check_type(entity_type, registry.ENTITY_TYPES, what="entity type")
    return await submit_full(current_user, entity_type, data)


async def submit_user_contribution(current_user: dict, payload: schemas.UserContributionRequest) -> dict:
    _check_type(payload.contribution_type, USER_CONTRIBUTION_TYPES, what="contribution type")
    _check_type(payload.media_type, registry.MEDIA_TYPES, what="media type")

    if payload.contribution_type == FULL:
        if payload.media_id is not None:
            raise ValidationFailed("mediaId must be null for a new media contribution.")
        return await submit_full(current_user, payload.media_type, payload.contribution_data)

    if payload.contribution_type == REPORT:
        if not payload.contribution_data:
            raise ValidationFailed("A report needs a description of the problem.")
        return await _record(
            current_user,
            contributable_type=payload.media_type,
            contributable_id=None,
            contribution_type=REPORT,
            contribution_data={
                **payload.contribution_data,
                "contentType": payload.media_type,
                "submittedAt": datetime.now(timezone.utc).isoformat(),
            },
        )

    # modification: contributionData holds the new values of the changed fields.
    if payload.media_id is None:
        raise ValidationFailed("mediaId is required for a modification.")
    current = await _target_snapshot(payload.media_type, payload.media_id)
    proposed = {
        name: {"old": current.get(name), "new": value}
        for name, value in payload.contribution_data.items()
    }
    return await _submit_changes(
        current_user,
        contributable_type=payload.media_type,
        contributable_id=payload.media_id,
        contribution_type=MODIFICATION,
        proposed_changes=proposed,
    )


async def _submit_changes(
    current_user: dict,
    *,
    contributable_type: str,
    contributable_id: int,
    contribution_type: str,
    proposed_changes: dict[str, Any],
    contribution_notes: str | None = None,
    sources: Any = None,
) -> dict:
    errors = registry.validate_changes(contributable_type, proposed_changes)
    if errors:
        if set(errors) == {"proposedChanges"}:
            raise Conflict(errors["proposedChanges"])
        raise ValidationFailed(f"Invalid proposed changes: {_format_errors(errors)}")

    coerced = registry.coerce_changes(contributable_type, proposed_changes)
    effective = {
        name: change for name, change in coerced.items() if not diff.deep_equal(change["old"], change["new"])
    }
    if not effective:
        raise Conflict("No changes to submit.")

    return await _record(
        current_user,
        contributable_type=contributable_type,
        contributable_id=contributable_id,
        contribution_type=contribution_type,
        contribution_data={"contentType": contributable_type, "target_id": contributable_id},
        proposed_changes=effective,
        contribution_notes=(contribution_notes or "").strip() or None,
        sources=sources,
    )


async def submit_content_contribution(current_user: dict, payload: schemas.ContentContributionRequest) -> dict:
    if payload.user_id is not None and payload.user_id != int(current_user["id"]):
        raise AuthorizationDenied("Cannot submit a contribution on behalf of another user.")
    _check_type(payload.contributable_type, registry.CONTRIBUTABLE_TYPES, what="contributable type")
    _check_type(payload.contribution_type, EDIT_TYPES, what="contribution type")

    await _target_snapshot(payload.contributable_type, payload.contributable_id)
    return await _submit_changes(
        current_user,
        contributable_type=payload.contributable_type,
        contributable_id=payload.contributable_id,
        contribution_type=payload.contribution_type,
        proposed_changes=payload.proposed_changes,
        contribution_notes=payload.contribution_notes,
        sources=payload.sources,
    )


async def list_contributions(
    current_user: dict,
    *,
    status: str | None = None,
    user_id: int | None = None,
    contributable_type: str | None = None,
    edits_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    if status is not None:
        _check_type(status, STATUSES, what="status")
    if not auth_service.is_staff(current_user):
        if user_id is not None and user_id != int(current_user["id"]):
            raise AuthorizationDenied("You can only list your own contributions.")
        user_id = int(current_user["id"])

    rows = await repository.list_contributions(
        status=status,
        user_id=user_id,
        contributable_type=contributable_type,
        edits_only=edits_only,
        limit=limit,
        offset=offset,
    )
    contributions = [serialize(r) for r in rows]
    return {"success": True, "contributions": contributions, "count": len(contributions)}


async def get_contribution(current_user: dict, contribution_id: int) -> dict:
    row = await repository.get_contribution(contribution_id)
    if row is None:
        raise NotFound("Contribution not found.")
    if int(row["user_id"]) != int(current_user["id"]) and not auth_service.is_staff(current_user):
        raise AuthorizationDenied("You cannot view this contribution.")
    return {"success": True, "contribution": serialize(row)}


async def update_notes(contribution_id: int, notes: str | None) -> dict:
    row = await repository.update_moderator_notes(contribution_id, (notes or "").strip() or None)
    if row is None:
        raise NotFound("Contribution not found.")
    return {"success": True, "id": int(row["id"]), "moderatorNotes": row["moderator_notes"]}


async def withdraw(current_user: dict, contribution_id: int) -> dict:
    row = await repository.get_contribution(contribution_id)
    if row is None:
        raise NotFound("Contribution not found.")
    if int(row["user_id"]) != int(current_user["id"]) and not auth_service.is_staff(current_user):
        raise AuthorizationDenied("You cannot delete this contribution.")

    deleted = await repository.soft_delete_pending(contribution_id)
    if deleted is None:
        raise Conflict("Only pending contributions can be deleted.")
    logger.info("contribution_withdrawn id=%s by=%s", contribution_id, current_user["id"])
    return {"success": True, "id": contribution_id, "deletedAt": deleted["deleted_at"]}
