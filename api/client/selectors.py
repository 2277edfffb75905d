"""
Search-and-select widgets for related entities (studios, staff, characters,
voice actors, scanlation groups).

A selector owns its selected list and reports changes through `on_change`.
Searches are debounced; a search superseded by a newer one returns [] and
its results are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from .http import CatalogClient, CatalogClientError
from .notices import Notifier

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
DEBOUNCE_S = 0.3


def display_name(entity: dict[str, Any]) -> str:
    for key in ("name", "name_romaji", "title_romaji"):
        value = entity.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return f"#{entity.get('id')}"


class EntitySelector:
    path: str = ""
    result_key: str = ""
    create_path: str = ""
    create_key: str = ""
    limit: int = 10
    label: str = "Entity"

    def __init__(
        self,
        client: CatalogClient,
        notifier: Notifier | None = None,
        *,
        on_change: Callable[[list[dict[str, Any]]], None] | None = None,
        debounce_s: float = DEBOUNCE_S,
        selected: list[dict[str, Any]] | None = None,
    ) -> None:
        self.client = client
        self.notifier = notifier or Notifier()
        self.on_change = on_change
        self.debounce_s = debounce_s
        self.selected: list[dict[str, Any]] = [dict(item) for item in selected or []]
        self.results: list[dict[str, Any]] = []
        self.loading = False
        self._generation = 0

    def _search_params(self, query: str) -> dict[str, Any]:
        return {"search": query, "limit": self.limit}

    async def search(self, query: str) -> list[dict[str, Any]]:
        query = (query or "").strip()
        self._generation += 1
        generation = self._generation
        if len(query) < MIN_QUERY_LENGTH:
            self.results = []
            return []

        if self.debounce_s > 0:
            await asyncio.sleep(self.debounce_s)
        if generation != self._generation:
            return []

        self.loading = True
        try:
            data = await self.client.get_json(self.path, **self._search_params(query))
        except CatalogClientError as exc:
            logger.warning("selector_search_failed path=%s error=%s", self.path, exc.message)
            self.notifier.error(f"Could not search {self.label.lower()}", exc.message)
            return []
        finally:
            if generation == self._generation:
                self.loading = False

        if generation != self._generation:
            logger.debug("selector_stale_results path=%s query=%s", self.path, query)
            return []
        self.results = list(data.get(self.result_key) or [])
        return self.results

    def is_selected(self, entity_id: Any, role: Any = None) -> bool:
        return any(item.get("id") == entity_id and item.get("role") == role for item in self.selected)

    def _emit(self) -> None:
        if self.on_change is not None:
            self.on_change(list(self.selected))

    def select(self, candidate: dict[str, Any], role: Any = None) -> bool:
        if self.is_selected(candidate.get("id"), role):
            suffix = f" as {role}" if role not in (None, "") else ""
            self.notifier.warning("Already added", f"{display_name(candidate)} is already selected{suffix}.")
            return False
        self.selected.append({**candidate, "role": role})
        self._emit()
        return True

    def remove(self, entity_id: Any, role: Any = None) -> bool:
        kept = [item for item in self.selected if not (item.get("id") == entity_id and item.get("role") == role)]
        if len(kept) == len(self.selected):
            return False
        self.selected = kept
        self._emit()
        return True

    async def create_new(self, fields: dict[str, Any], role: Any = None) -> dict[str, Any] | None:
        """Create the entity server-side (or reuse an existing match) and select it."""
        if not any(isinstance(fields.get(k), str) and fields[k].strip() for k in ("name", "name_romaji")):
            self.notifier.error("Name is required", f"Enter a name to create a new {self.label.lower()}.")
            return None

        try:
            data = await self.client.post_json(self.create_path or self.path, fields)
        except CatalogClientError as exc:
            logger.warning("selector_create_failed path=%s error=%s", self.create_path or self.path, exc.message)
            self.notifier.error(f"Could not create {self.label.lower()}", exc.message)
            return None

        row = data.get(self.create_key)
        if not isinstance(row, dict):
            self.notifier.error(f"Could not create {self.label.lower()}", "Unexpected response from server.")
            return None
        if data.get("message"):
            self.notifier.success(data["message"])
        self.select(row, role)
        return row


class StudioSelector(EntitySelector):
    path = "/api/studios"
    result_key = "studios"
    create_key = "studio"
    limit = 10
    label = "Studio"

    # A studio is selected once; at most one carries is_main_studio.

    def is_selected(self, entity_id: Any, role: Any = None) -> bool:
        return any(item.get("id") == entity_id for item in self.selected)

    def select(self, candidate: dict[str, Any], role: Any = None, *, main: bool = False) -> bool:
        main = main or role == "main"
        if self.is_selected(candidate.get("id")):
            self.notifier.warning("Already added", f"{display_name(candidate)} is already selected.")
            return False
        kept = [{**item, "is_main_studio": False} for item in self.selected] if main else self.selected
        self.selected = kept + [{**candidate, "is_main_studio": main}]
        self._emit()
        return True

    def remove(self, entity_id: Any, role: Any = None) -> bool:
        kept = [item for item in self.selected if item.get("id") != entity_id]
        if len(kept) == len(self.selected):
            return False
        self.selected = kept
        self._emit()
        return True

    def toggle_main(self, entity_id: Any) -> bool:
        """Flip the main flag on one studio and clear it on every other."""
        if not self.is_selected(entity_id):
            return False
        self.selected = [
            {**item, "is_main_studio": (not item.get("is_main_studio")) if item.get("id") == entity_id else False}
            for item in self.selected
        ]
        self._emit()
        return True

    async def create_new(self, fields: dict[str, Any], role: Any = None) -> dict[str, Any] | None:
        # The first studio created for a title becomes its main studio.
        return await super().create_new(fields, "main" if not self.selected else role)


class StaffSelector(EntitySelector):
    path = "/api/staff"
    result_key = "staff"
    create_key = "staff"
    limit = 10
    label = "Staff"


class CharacterSelector(EntitySelector):
    path = "/api/characters"
    result_key = "characters"
    create_key = "character"
    limit = 20
    label = "Character"


class VoiceActorSelector(EntitySelector):
    path = "/api/voice-actors"
    result_key = "voiceActors"
    create_key = "voiceActor"
    limit = 10
    label = "Voice actor"

    def __init__(self, client: CatalogClient, notifier: Notifier | None = None, *, language: str | None = None, **kwargs: Any) -> None:
        super().__init__(client, notifier, **kwargs)
        self.language = language

    def _search_params(self, query: str) -> dict[str, Any]:
        return {**super()._search_params(query), "language": self.language}


class ScanlationGroupSelector(EntitySelector):
    path = "/api/scan/groups"
    result_key = "groups"
    create_key = "group"
    limit = 5
    label = "Group"
