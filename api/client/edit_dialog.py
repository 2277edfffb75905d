"""
Edit dialog for an existing media record.

The snapshot loaded on open is kept untouched as `original`; the user edits
`current`. Submission sends only the field-level diff as `proposedChanges`.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from contributions import registry
from contributions.diff import compute_diff, dedupe_by_id

from .http import CatalogClient, CatalogClientError
from .notices import Notifier

logger = logging.getLogger(__name__)

DEDUPED_LISTS = ("characters", "staff", "studios", "external_links")


class NoChangesError(ValueError):
    pass


class EditDialog:
    def __init__(
        self,
        client: CatalogClient,
        user: dict[str, Any] | None,
        content_type: str,
        content_id: int | str,
        notifier: Notifier | None = None,
    ) -> None:
        self.client = client
        self.user = user
        self.content_type = content_type
        self.content_id = content_id
        self.notifier = notifier or Notifier()
        self.original: dict[str, Any] | None = None
        self.current: dict[str, Any] | None = None
        self.submitted: dict[str, Any] | None = None

    @property
    def is_open(self) -> bool:
        return self.original is not None

    async def open(self) -> dict[str, Any] | None:
        try:
            data = await self.client.get_json(
                "/api/get-media-for-edit",
                type=self.content_type,
                id=self.content_id,
            )
        except CatalogClientError as exc:
            self.notifier.error("Could not load content", exc.message)
            return None

        content = dict(data.get("content") or {})
        for key in DEDUPED_LISTS:
            if isinstance(content.get(key), list):
                content[key] = dedupe_by_id(content[key], label=key)
        self.original = copy.deepcopy(content)
        self.current = copy.deepcopy(content)
        return self.current

    def set_field(self, name: str, value: Any) -> None:
        if self.current is None:
            raise RuntimeError("Edit dialog is not open.")
        if registry.get_field(self.content_type, name) is None:
            raise KeyError(f"Unknown field for {self.content_type}: {name}")
        self.current[name] = copy.deepcopy(value)

    def changes(self) -> dict[str, dict[str, Any]]:
        if self.original is None or self.current is None:
            return {}
        return compute_diff(self.original, self.current)

    def proposed_changes(self) -> dict[str, dict[str, Any]]:
        changes = self.changes()
        if not changes:
            raise NoChangesError("No changes to submit.")
        return changes

    async def submit(self, notes: str | None = None, sources: list[str] | None = None) -> dict[str, Any] | None:
        if self.user is None or not self.client.is_authenticated:
            self.notifier.error("Access denied", "You must be logged in to suggest changes.")
            return None
        try:
            proposed = self.proposed_changes()
        except NoChangesError as exc:
            self.notifier.warning("No changes", str(exc))
            return None

        body = {
            "userId": self.user.get("id"),
            "contributableType": self.content_type,
            "contributableId": (self.original or {}).get("id"),
            "contributionType": "add_info",
            "proposedChanges": proposed,
            "contributionNotes": notes or None,
            "sources": sources or [],
        }
        try:
            data = await self.client.post_json("/api/content-contributions", body)
        except CatalogClientError as exc:
            logger.warning("edit_submit_failed type=%s id=%s", self.content_type, self.content_id)
            self.notifier.error("Submission failed", exc.message)
            return None

        self.submitted = data
        self.notifier.success(
            "Changes submitted",
            data.get("message") or f"{len(proposed)} field(s) sent for review.",
        )
        return data
