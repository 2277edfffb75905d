"""
Moderator-side review of contributions.

Local state only changes after the server confirms a decision.
"""

from __future__ import annotations

import logging
from typing import Any

from .http import CatalogClient, CatalogClientError
from .notices import Notifier

logger = logging.getLogger(__name__)

MODERATION_LIST = "/moderation"
BASE_PATH = "/api/moderation/contributions"


class ModerationReview:
    def __init__(self, client: CatalogClient, notifier: Notifier | None = None) -> None:
        self.client = client
        self.notifier = notifier or Notifier()
        self.contributions: list[dict[str, Any]] = []
        self.counts: dict[str, int] = {}
        self.current: dict[str, Any] | None = None
        self.redirect_to: str | None = None

    async def list(self, *, status: str = "pending", limit: int = 50) -> list[dict[str, Any]]:
        try:
            data = await self.client.get_json(BASE_PATH, status=status, limit=limit)
        except CatalogClientError as exc:
            self.notifier.error("Could not load contributions", exc.message)
            return self.contributions
        self.contributions = list(data.get("contributions") or [])
        self.counts = dict(data.get("counts") or {})
        return self.contributions

    async def open(self, contribution_id: int) -> dict[str, Any] | None:
        try:
            data = await self.client.get_json(f"{BASE_PATH}/{contribution_id}")
        except CatalogClientError as exc:
            self.notifier.error("Could not load contribution", exc.message)
            if exc.status_code == 404:
                self.redirect_to = MODERATION_LIST
            return None
        self.current = data.get("contribution")
        return self.current

    def _apply_result(self, contribution_id: int, result: dict[str, Any]) -> None:
        updated = result.get("contribution") or {}
        status = updated.get("status")
        if self.current is not None and self.current.get("id") == contribution_id and status:
            self.current = {**self.current, **updated}
        self.contributions = [c for c in self.contributions if c.get("id") != contribution_id]

    async def _decide(self, contribution_id: int, body: dict[str, Any], *, title: str) -> dict[str, Any] | None:
        try:
            data = await self.client.patch_json(f"{BASE_PATH}/{contribution_id}", body)
        except CatalogClientError as exc:
            logger.warning("moderation_decision_failed id=%s action=%s", contribution_id, body.get("action"))
            self.notifier.error(f"Could not {body['action']} contribution", exc.message)
            return None
        self._apply_result(contribution_id, data)
        self.notifier.success(title, data.get("message") or "")
        self.redirect_to = MODERATION_LIST
        return data

    async def approve(self, contribution_id: int) -> dict[str, Any] | None:
        return await self._decide(contribution_id, {"action": "approve"}, title="Contribution approved")

    async def reject(self, contribution_id: int, rejection_reason: str | None) -> dict[str, Any] | None:
        reason = (rejection_reason or "").strip()
        if not reason:
            self.notifier.error("Rejection reason required", "Explain why the contribution is rejected.")
            return None
        return await self._decide(
            contribution_id,
            {"action": "reject", "rejectionReason": reason},
            title="Contribution rejected",
        )

    async def assign(self, contribution_id: int) -> dict[str, Any] | None:
        try:
            data = await self.client.post_json(f"{BASE_PATH}/{contribution_id}/assign", {})
        except CatalogClientError as exc:
            self.notifier.error("Could not assign contribution", exc.message)
            return None
        if self.current is not None and self.current.get("id") == contribution_id:
            self.current = {**self.current, "status": data.get("status"), "assignedToUserId": data.get("assignedToUserId")}
        return data
