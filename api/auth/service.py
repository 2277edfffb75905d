"""
Auth business logic.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from core.errors import AuthenticationRequired, AuthorizationDenied, Conflict, ValidationFailed

from . import repository, schemas, security

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_MODERATOR = "moderator"
ROLE_SCAN = "scan"
STAFF_ROLES = (ROLE_ADMIN, ROLE_MODERATOR)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def has_any_role(user: dict | None, *roles: str) -> bool:
    if not user:
        return False
    return bool(set(user.get("roles") or []) & set(roles))


def is_staff(user: dict | None) -> bool:
    return has_any_role(user, *STAFF_ROLES)


def public_user(user_row: dict) -> dict:
    """Fields safe to embed in other resources (never the password hash)."""
    return {
        "id": int(user_row["id"]),
        "username": user_row.get("username"),
        "display_name": user_row.get("display_name"),
        "avatar_url": user_row.get("avatar_url"),
    }


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(user_row["id"]),
        email=str(user_row["email"]),
        username=str(user_row["username"]),
        display_name=user_row.get("display_name"),
        avatar_url=user_row.get("avatar_url"),
        roles=list(user_row.get("roles") or []),
        points=int(user_row.get("points") or 0),
        is_active=bool(user_row["is_active"]),
        created_at=user_row["created_at"],
    )


async def _issue_token_pair(
    *,
    user_row: dict,
    user_agent: str | None = None,
    ip_address: str | None = None,
    replaced_token_id: int | None = None,
) -> schemas.TokenPairResponse:
    user_id = int(user_row["id"])
    access_token = security.build_access_token(
        user_id=user_id,
        username=str(user_row["username"]),
        roles=user_row.get("roles") or [],
    )
    raw_refresh_token = security.build_refresh_token()
    refresh_row = await repository.insert_refresh_token(
        user_id=user_id,
        token_hash=security.hash_refresh_token(raw_refresh_token),
        expires_at=_utc_now() + timedelta(days=security.refresh_token_expire_days()),
        user_agent=user_agent,
        ip_address=ip_address,
    )
    if replaced_token_id is not None:
        await repository.rotate_refresh_token(
            old_token_id=replaced_token_id,
            new_token_id=int(refresh_row["id"]),
        )
    return schemas.TokenPairResponse(access_token=access_token, refresh_token=raw_refresh_token)


async def register(
    payload: schemas.RegisterRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.AuthResponse:
    if await repository.get_user_by_email(payload.email) is not None:
        raise Conflict("Email is already registered.")
    if await repository.get_user_by_username(payload.username) is not None:
        raise Conflict("Username is already taken.")

    user_row = await repository.create_user(
        email=payload.email,
        username=payload.username,
        display_name=payload.display_name,
        password_hash=security.hash_password(payload.password),
    )
    logger.info("user_registered user_id=%s", user_row["id"])
    tokens = await _issue_token_pair(user_row=user_row, user_agent=user_agent, ip_address=ip_address)
    return schemas.AuthResponse(user=_to_user_response(user_row), tokens=tokens)


async def login(
    payload: schemas.LoginRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.AuthResponse:
    user_row = await repository.get_user_by_email(payload.email)
    if user_row is None:
        raise AuthenticationRequired("Invalid email or password.")
    if not bool(user_row.get("is_active", False)):
        raise AuthorizationDenied("User is inactive.")
    if not security.verify_password(payload.password, str(user_row.get("password_hash") or "")):
        raise AuthenticationRequired("Invalid email or password.")

    tokens = await _issue_token_pair(user_row=user_row, user_agent=user_agent, ip_address=ip_address)
    return schemas.AuthResponse(user=_to_user_response(user_row), tokens=tokens)


async def refresh_tokens(
    payload: schemas.RefreshRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.TokenPairResponse:
    incoming = (payload.refresh_token or "").strip()
    if not incoming:
        raise ValidationFailed("refresh_token is required.")

    old_row = await repository.get_refresh_token_by_hash(security.hash_refresh_token(incoming))
    if old_row is None:
        raise AuthenticationRequired("Invalid refresh token.")
    if old_row.get("revoked_at") is not None:
        # A rotated token presented again means it leaked; end every session.
        if old_row.get("replaced_by_token_id") is not None:
            logger.warning("refresh_token_reuse user_id=%s token_id=%s", old_row["user_id"], old_row["id"])
            await repository.revoke_all_refresh_tokens_for_user(int(old_row["user_id"]))
        raise AuthenticationRequired("Refresh token is revoked.")

    expires_at = old_row.get("expires_at")
    if not isinstance(expires_at, datetime) or expires_at <= _utc_now():
        await repository.revoke_refresh_token(token_id=int(old_row["id"]))
        raise AuthenticationRequired("Refresh token is expired.")

    user_row = await repository.get_user_by_id(int(old_row["user_id"]))
    if user_row is None or not bool(user_row.get("is_active", False)):
        await repository.revoke_refresh_token(token_id=int(old_row["id"]))
        raise AuthenticationRequired("Invalid refresh token owner.")

    return await _issue_token_pair(
        user_row=user_row,
        user_agent=user_agent,
        ip_address=ip_address,
        replaced_token_id=int(old_row["id"]),
    )


async def logout(payload: schemas.LogoutRequest, *, current_user_id: int | None = None) -> dict[str, bool]:
    refresh_token = (payload.refresh_token or "").strip()
    if refresh_token:
        await repository.revoke_refresh_token(token_hash=security.hash_refresh_token(refresh_token))
        return {"ok": True}

    if current_user_id is not None:
        await repository.revoke_all_refresh_tokens_for_user(current_user_id)
        return {"ok": True}

    raise ValidationFailed("Provide refresh_token or authenticated user.")


async def get_user_from_access_token(access_token: str) -> dict:
    try:
        payload = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise AuthenticationRequired(str(exc)) from exc

    subject = str(payload.get("sub") or "").strip()
    if not subject.isdigit():
        raise AuthenticationRequired("Invalid access token subject.")

    # Roles come from the database, not the token, so revocation applies immediately.
    user_row = await repository.get_user_by_id(int(subject))
    if user_row is None:
        raise AuthenticationRequired("User not found.")
    if not bool(user_row.get("is_active", False)):
        raise AuthorizationDenied("User is inactive.")
    return user_row


def me(user_row: dict) -> schemas.UserResponse:
    return _to_user_response(user_row)
