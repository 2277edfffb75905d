"""
Request bodies for contribution submission endpoints.

Bodies use the camelCase keys the web client sends; Python code uses the
snake_case attribute names.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UserContributionRequest(_Body):
    contribution_type: str = Field(..., alias="contributionType", max_length=32)
    media_type: str = Field(..., alias="mediaType", max_length=32)
    media_id: int | None = Field(default=None, alias="mediaId", ge=1)
    contribution_data: dict[str, Any] = Field(default_factory=dict, alias="contributionData")


class SubmitMediaRequest(_Body):
    media_type: str = Field(..., alias="mediaType", max_length=32)
    contribution_data: dict[str, Any] = Field(..., alias="contributionData")


class SubmitEntityRequest(_Body):
    entity_type: str = Field(..., alias="entityType", max_length=32)
    contribution_data: dict[str, Any] = Field(..., alias="contributionData")


class ContentContributionRequest(_Body):
    user_id: int | None = Field(default=None, alias="userId")
    contributable_type: str = Field(..., alias="contributableType", max_length=32)
    contributable_id: int = Field(..., alias="contributableId", ge=1)
    contribution_type: str = Field(default="add_info", alias="contributionType", max_length=32)
    proposed_changes: dict[str, Any] = Field(..., alias="proposedChanges")
    contribution_notes: str | None = Field(default=None, alias="contributionNotes", max_length=5000)
    sources: list[str] | str | None = None


class ContentContributionUpdate(_Body):
    moderator_notes: str | None = Field(default=None, alias="moderatorNotes", max_length=5000)
    assign_to_me: bool | None = Field(default=None, alias="assignToMe")
