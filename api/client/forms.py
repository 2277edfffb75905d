"""
Contribution forms driven by the field-schema registry.

The whole payload lives in one `FormState` value. Changes go through pure
reducers addressed by dotted paths (`official_sites.0.url`), so every edit
produces a new state with a bumped version and nothing is mutated in place.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from contributions import registry

from .http import CatalogClient, CatalogClientError
from .notices import Notifier

logger = logging.getLogger(__name__)

CONTRIBUTION_CENTER = "/contribution-center"


class FormValidationError(ValueError):
    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


@dataclass(frozen=True)
class FormState:
    values: dict[str, Any] = field(default_factory=dict)
    version: int = 0


def _split(path: str) -> list[str | int]:
    parts: list[str | int] = []
    for raw in path.split("."):
        if not raw:
            raise ValueError(f"Invalid field path: {path!r}")
        parts.append(int(raw) if raw.isdigit() else raw)
    return parts


def _container(values: Any, parts: list[str | int], path: str) -> Any:
    node = values
    for part in parts:
        try:
            node = node[part]
        except (KeyError, IndexError, TypeError):
            raise KeyError(f"No such field path: {path!r}") from None
    return node


def update(state: FormState, path: str, value: Any) -> FormState:
    parts = _split(path)
    values = copy.deepcopy(state.values)
    parent = _container(values, parts[:-1], path)
    last = parts[-1]
    if isinstance(parent, list):
        if not isinstance(last, int) or last >= len(parent):
            raise KeyError(f"No such field path: {path!r}")
    elif not isinstance(parent, dict):
        raise KeyError(f"No such field path: {path!r}")
    parent[last] = value
    return FormState(values=values, version=state.version + 1)


def append_item(state: FormState, path: str, item: Any) -> FormState:
    values = copy.deepcopy(state.values)
    target = _container(values, _split(path), path)
    if not isinstance(target, list):
        raise KeyError(f"Field path is not a list: {path!r}")
    target.append(copy.deepcopy(item))
    return FormState(values=values, version=state.version + 1)


def remove_item(state: FormState, path: str, index: int) -> FormState:
    values = copy.deepcopy(state.values)
    target = _container(values, _split(path), path)
    if not isinstance(target, list):
        raise KeyError(f"Field path is not a list: {path!r}")
    if index < 0 or index >= len(target):
        raise IndexError(f"{path}: index {index} out of range")
    del target[index]
    return FormState(values=values, version=state.version + 1)


class ContributionForm:
    """
    Form for a brand-new media or entity record.

    Media types submit a `full` contribution through `/api/user/contributions`;
    entity types go through `/api/contributions/submit-entity`.
    """

    def __init__(
        self,
        contributable_type: str,
        client: CatalogClient,
        user: dict[str, Any] | None,
        notifier: Notifier | None = None,
    ) -> None:
        self.contributable_type = contributable_type
        self.client = client
        self.user = user
        self.notifier = notifier or Notifier()
        self.state = FormState(values=registry.defaults(contributable_type))
        self.errors: dict[str, str] = {}
        self.redirect_to: str | None = None
        self.submitting = False

    @property
    def is_accessible(self) -> bool:
        return self.user is not None and self.client.is_authenticated

    @property
    def values(self) -> dict[str, Any]:
        return self.state.values

    def set(self, path: str, value: Any) -> FormState:
        self.state = update(self.state, path, value)
        self.errors.pop(path, None)
        return self.state

    def append(self, path: str, item: Any) -> FormState:
        self.state = append_item(self.state, path, item)
        return self.state

    def remove(self, path: str, index: int) -> FormState:
        self.state = remove_item(self.state, path, index)
        return self.state

    def bind_selection(self, name: str, selected: list[dict[str, Any]]) -> FormState:
        """Replace a relation list with what a selector currently holds."""
        return self.set(name, [dict(item) for item in selected])

    def validate(self) -> dict[str, str]:
        self.errors = registry.validate(self.contributable_type, self.state.values)
        return self.errors

    def payload(self) -> dict[str, Any]:
        errors = self.validate()
        if errors:
            raise FormValidationError(errors)
        return registry.coerce(self.contributable_type, self.state.values)

    def request_body(self) -> tuple[str, dict[str, Any]]:
        data = self.payload()
        if registry.is_media(self.contributable_type):
            return "/api/user/contributions", {
                "contributionType": "full",
                "mediaType": self.contributable_type,
                "mediaId": None,
                "contributionData": data,
            }
        return "/api/contributions/submit-entity", {
            "entityType": self.contributable_type,
            "contributionData": data,
        }

    async def submit(self) -> dict[str, Any] | None:
        if not self.is_accessible:
            self.notifier.error("Access denied", "You must be logged in to contribute.")
            return None

        try:
            path, body = self.request_body()
        except FormValidationError as exc:
            first = next(iter(exc.errors.values()))
            self.notifier.error("Please fix the highlighted fields", first)
            return None

        self.submitting = True
        try:
            data = await self.client.post_json(path, body)
        except CatalogClientError as exc:
            logger.warning("contribution_submit_failed type=%s status=%s", self.contributable_type, exc.status_code)
            self.notifier.error("Submission failed", exc.message)
            return None
        finally:
            self.submitting = False

        self.notifier.success(
            "Contribution submitted",
            data.get("message") or "Your contribution is pending review.",
        )
        self.redirect_to = CONTRIBUTION_CENTER
        return data
