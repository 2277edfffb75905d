"""
Account models: sign-up, sign-in, token rotation and the profile a
contributor sees about themselves.

Email and username are matched case-insensitively by the repository, so the
models only trim them. Passwords need upper case, lower case and a digit.
"""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    # Shown on reviews, contributions and scan projects.
    username: str = Field(..., min_length=3, max_length=40, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str | None = Field(default=None, max_length=80)

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value: str) -> str:
        value = value.strip()
        if not _EMAIL_RE.match(value):
            raise ValueError("Invalid email address.")
        return value

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        if not (re.search(r"[A-Z]", value) and re.search(r"[a-z]", value) and re.search(r"[0-9]", value)):
            raise ValueError("Password must mix upper case, lower case and digits.")
        return value

    @field_validator("display_name")
    @classmethod
    def _blank_display_name(cls, value: str | None) -> str | None:
        return (value or "").strip() or None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=20)


class LogoutRequest(BaseModel):
    # Without a token every session of the caller is revoked.
    refresh_token: str | None = Field(default=None, min_length=20)


class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    roles: list[str] = []
    # Contribution points; approved moderation decisions add to it.
    points: int = 0
    is_active: bool
    created_at: datetime


class TokenPairResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(BaseModel):
    user: UserResponse
    tokens: TokenPairResponse
