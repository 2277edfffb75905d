"""
Auth dependencies for protected FastAPI routes.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Depends, Header

from core.errors import AuthenticationRequired, AuthorizationDenied

from . import service


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise AuthenticationRequired("Authentication required.")

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise AuthenticationRequired("Invalid Authorization header format.")

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise AuthenticationRequired("Authorization must be: Bearer <token>.")
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return _extract_bearer_token(authorization)


async def get_current_user(access_token: str = Depends(get_bearer_token)) -> dict:
    return await service.get_user_from_access_token(access_token)


async def get_optional_user(authorization: str | None = Header(default=None)) -> dict | None:
    """
    Resolve the caller when a bearer token is present; anonymous otherwise.

    A token that is present but invalid still fails with 401.
    """
    if not (authorization or "").strip():
        return None
    return await service.get_user_from_access_token(_extract_bearer_token(authorization))


def require_roles(*roles: str) -> Callable[..., Awaitable[dict]]:
    allowed = set(roles)

    async def _dependency(current_user: dict = Depends(get_current_user)) -> dict:
        if not service.has_any_role(current_user, *allowed):
            raise AuthorizationDenied("Insufficient permissions.")
        return current_user

    return _dependency


require_staff = require_roles(*service.STAFF_ROLES)
