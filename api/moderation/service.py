"""
Moderation business logic.

A decision (approve/reject) is one transaction over the locked contribution
row: the status check, the materialization, the points award and the
contributor notification commit together or not at all. Only pending and
in_review rows can be decided, so repeating a decision fails with 409
instead of applying it twice.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from auth import repository as auth_repository
from contributions import registry
from contributions import service as contributions_service
from core import db
from core.errors import Conflict, NotFound, ValidationFailed
from notifications import service as notifications_service

from . import apply, repository, schemas

logger = logging.getLogger(__name__)


def _fields_for(row: dict[str, Any]) -> list[dict[str, Any]]:
    contributable_type = row["contributable_type"]
    if row["contribution_type"] in contributions_service.EDIT_TYPES:
        return registry.changes_view(contributable_type, row.get("proposed_changes") or {})
    if row["contribution_type"] == contributions_service.FULL:
        return registry.detail_view(contributable_type, row.get("contribution_data") or {})
    data = row.get("contribution_data") or {}
    return [
        {"name": key, "label": key.replace("_", " ").capitalize(), "kind": "text", "value": value}
        for key, value in data.items()
        if key not in ("contentType", "submittedAt")
    ]


async def list_contributions(
    *,
    status: str | None = "pending",
    contributable_type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    if status is not None and status not in contributions_service.STATUSES:
        raise ValidationFailed(f"Invalid status: {status}.")
    rows = await repository.list_contributions(
        status=status,
        contributable_type=contributable_type,
        limit=limit,
        offset=offset,
    )
    contributions = [contributions_service.serialize(r) for r in rows]
    return {
        "success": True,
        "contributions": contributions,
        "count": len(contributions),
        "counts": await repository.count_by_status(),
    }


async def get_detail(contribution_id: int) -> dict:
    row = await repository.get_contribution(contribution_id)
    if row is None:
        raise NotFound("Contribution not found.")
    contribution = contributions_service.serialize(row)
    contribution["fields"] = _fields_for(row)
    return {"success": True, "contribution": contribution}


async def assign(contribution_id: int, moderator: dict) -> dict:
    row = await repository.assign(contribution_id, moderator_id=int(moderator["id"]))
    if row is None:
        raise NotFound("Contribution not found or already processed.")
    logger.info("contribution_assigned id=%s moderator=%s", contribution_id, moderator["id"])
    return {
        "success": True,
        "id": int(row["id"]),
        "status": row["status"],
        "assignedToUserId": row["assigned_to_user_id"],
        "assignedAt": row["assigned_at"],
    }


async def unassign(contribution_id: int, moderator: dict) -> dict:
    row = await repository.unassign(contribution_id)
    if row is None:
        raise NotFound("Contribution not found or already processed.")
    logger.info("contribution_unassigned id=%s moderator=%s", contribution_id, moderator["id"])
    return {"success": True, "id": int(row["id"]), "status": row["status"], "assignedToUserId": None}


def _ensure_open(row: dict[str, Any] | None, contribution_id: int) -> dict[str, Any]:
    if row is None:
        raise NotFound("Contribution not found.")
    if row["status"] not in repository.OPEN_STATUSES:
        raise Conflict(f"Contribution {contribution_id} was already {row['status']}.")
    return row


async def approve(contribution_id: int, moderator: dict) -> dict:
    reviewer_id = int(moderator["id"])
    try:
        async with db.transaction() as conn:
            row = _ensure_open(await repository.lock_contribution(conn, contribution_id), contribution_id)
            target_id = await apply.materialize(conn, row)
            points = apply.points_for(row["contribution_type"], row["contributable_type"])
            updated = await repository.mark_approved(
                conn,
                contribution_id,
                reviewer_id=reviewer_id,
                contributable_id=target_id,
                awarded_points=points,
            )
            await auth_repository.add_points(int(row["user_id"]), points, conn=conn)
            await notifications_service.create_notification(
                recipient_user_id=int(row["user_id"]),
                actor_user_id=reviewer_id,
                action_type=notifications_service.CONTRIBUTION_APPROVED,
                notifiable_type="contribution",
                notifiable_id=contribution_id,
                conn=conn,
            )
    except apply.TargetMissing as exc:
        raise NotFound(str(exc)) from exc
    except asyncpg.ForeignKeyViolationError as exc:
        raise ValidationFailed(f"Contribution references a record that does not exist: {exc.detail or exc}") from exc
    except asyncpg.UniqueViolationError as exc:
        raise Conflict(f"Contribution conflicts with existing data: {exc.detail or exc}") from exc

    logger.info(
        "contribution_approved id=%s moderator=%s target=%s:%s points=%s",
        contribution_id,
        reviewer_id,
        row["contributable_type"],
        updated["contributable_id"],
        points,
    )
    return {
        "success": True,
        "message": "Contribution approved.",
        "contribution": {
            "id": contribution_id,
            "status": updated["status"],
            "contributableId": updated["contributable_id"],
            "awardedPoints": int(updated["awarded_points"]),
            "reviewedAt": updated["reviewed_at"],
        },
    }


async def reject(contribution_id: int, moderator: dict, rejection_reason: str | None) -> dict:
    reason = (rejection_reason or "").strip()
    if not reason:
        raise ValidationFailed("A rejection reason is required.")

    reviewer_id = int(moderator["id"])
    async with db.transaction() as conn:
        row = _ensure_open(await repository.lock_contribution(conn, contribution_id), contribution_id)
        updated = await repository.mark_rejected(
            conn,
            contribution_id,
            reviewer_id=reviewer_id,
            rejection_reason=reason,
        )
        await notifications_service.create_notification(
            recipient_user_id=int(row["user_id"]),
            actor_user_id=reviewer_id,
            action_type=notifications_service.CONTRIBUTION_REJECTED,
            notifiable_type="contribution",
            notifiable_id=contribution_id,
            conn=conn,
        )

    logger.info("contribution_rejected id=%s moderator=%s", contribution_id, reviewer_id)
    return {
        "success": True,
        "message": "Contribution rejected.",
        "contribution": {
            "id": contribution_id,
            "status": updated["status"],
            "rejectionReason": updated["rejection_reason"],
            "reviewedAt": updated["reviewed_at"],
        },
    }


async def decide(contribution_id: int, moderator: dict, payload: schemas.DecisionRequest) -> dict:
    if payload.action == "approve":
        return await approve(contribution_id, moderator)
    return await reject(contribution_id, moderator, payload.rejection_reason)
