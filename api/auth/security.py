"""
Credentials for catalog accounts.

- passwords: bcrypt
- access tokens: HS256 JWTs naming the user, their username and roles
  (roles in the token are informational; requests re-read them from users)
- refresh tokens: opaque, and only their sha256 digest reaches the database
"""

from __future__ import annotations

import hashlib
import secrets
import time
from typing import Any, Iterable

import bcrypt
import jwt

from core import settings

DEV_JWT_SECRET = "dev-change-this-secret-before-any-deployment"
ACCESS = "access"


class AuthSecurityError(RuntimeError):
    pass


def jwt_secret() -> str:
    return settings.env_str("JWT_SECRET", DEV_JWT_SECRET)


def jwt_algorithm() -> str:
    return settings.env_str("JWT_ALG", "HS256")


def access_token_expire_minutes() -> int:
    return settings.env_int("ACCESS_TOKEN_EXPIRE_MIN", 15)


def refresh_token_expire_days() -> int:
    return settings.env_int("REFRESH_TOKEN_EXPIRE_DAYS", 30)


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise AuthSecurityError("Password is empty.")
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """False for an empty password, a missing hash or a hash bcrypt cannot read."""
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def build_access_token(*, user_id: int, username: str, roles: Iterable[str] = ()) -> str:
    now = int(time.time())
    claims = {
        "sub": str(user_id),
        "username": username,
        "roles": sorted(set(roles)),
        "type": ACCESS,
        "iat": now,
        "exp": now + access_token_expire_minutes() * 60,
    }
    return jwt.encode(claims, jwt_secret(), algorithm=jwt_algorithm())


def decode_access_token(token: str) -> dict[str, Any]:
    raw = (token or "").strip()
    if not raw:
        raise AuthSecurityError("Access token is empty.")

    try:
        claims = jwt.decode(raw, jwt_secret(), algorithms=[jwt_algorithm()])
    except jwt.ExpiredSignatureError as exc:
        raise AuthSecurityError("Access token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthSecurityError("Invalid access token.") from exc

    if claims.get("type") != ACCESS:
        raise AuthSecurityError("Token is not an access token.")
    return claims


def build_refresh_token() -> str:
    return secrets.token_urlsafe(48)


def hash_refresh_token(raw_refresh_token: str) -> str:
    if not raw_refresh_token:
        raise AuthSecurityError("Refresh token is empty.")
    return hashlib.sha256(raw_refresh_token.encode("utf-8")).hexdigest()
