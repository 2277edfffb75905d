"""
Pydantic schemas for scanlation endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ProjectStatus = Literal["active", "hiatus", "completed", "dropped", "licensed"]


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateGroupRequest(_Body):
    name: str = Field(..., min_length=2, max_length=120)
    description: str | None = Field(default=None, max_length=2000)
    website_url: str | None = Field(default=None, alias="websiteUrl", max_length=1000)
    discord_url: str | None = Field(default=None, alias="discordUrl", max_length=1000)
    logo_url: str | None = Field(default=None, alias="logoUrl", max_length=1000)


class CreateProjectRequest(_Body):
    group_id: int | None = Field(default=None, alias="groupId", ge=1)
    media_type: str = Field(..., alias="mediaType", max_length=32)
    media_id: int = Field(..., alias="mediaId", ge=1)
    group_name: str | None = Field(default=None, alias="groupName", max_length=120)
    website_url: str | None = Field(default=None, alias="websiteUrl", max_length=1000)
    project_url: str = Field(..., alias="projectUrl", min_length=1, max_length=1000)
    status: ProjectStatus = "active"
    language: str = Field(default="es", min_length=2, max_length=8)
    notes: str | None = Field(default=None, max_length=2000)


class UpdateProjectRequest(_Body):
    group_name: str | None = Field(default=None, alias="groupName", max_length=120)
    website_url: str | None = Field(default=None, alias="websiteUrl", max_length=1000)
    project_url: str | None = Field(default=None, alias="projectUrl", min_length=1, max_length=1000)
    status: ProjectStatus | None = None
    language: str | None = Field(default=None, min_length=2, max_length=8)
    notes: str | None = Field(default=None, max_length=2000)
    last_chapter_at: datetime | None = Field(default=None, alias="lastChapterAt")


class CreateLinkRequest(_Body):
    group_id: int = Field(..., alias="groupId", ge=1)
    media_type: str = Field(..., alias="mediaType", max_length=32)
    media_id: int = Field(..., alias="mediaId", ge=1)
    url: str = Field(..., min_length=1, max_length=1000)
    language: str = Field(default="es", min_length=2, max_length=8)


class LinkDecisionRequest(_Body):
    action: Literal["approve", "reject"]
    rejection_reason: str | None = Field(default=None, alias="rejectionReason", max_length=2000)
