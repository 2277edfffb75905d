"""
Pydantic schemas for review endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CreateReviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int | None = Field(default=None, alias="userId")
    reviewable_type: str = Field(..., alias="reviewableType", max_length=32)
    reviewable_id: int = Field(..., alias="reviewableId", ge=1)
    content: str = Field(..., min_length=1, max_length=20000)
    overall_score: int = Field(..., alias="overallScore", ge=1, le=10)


class UpdateReviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str | None = Field(default=None, min_length=1, max_length=20000)
    overall_score: int | None = Field(default=None, alias="overallScore", ge=1, le=10)
