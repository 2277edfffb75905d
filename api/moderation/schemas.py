"""
Pydantic schemas for moderation endpoints.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DecisionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["approve", "reject"]
    rejection_reason: str | None = Field(default=None, alias="rejectionReason", max_length=2000)
