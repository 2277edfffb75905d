"""Bearer-token auth: token primitives and role checks on real tokens."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from auth import security

USER_ROW = {
    "id": 2,
    "email": "mod@example.com",
    "username": "mod",
    "display_name": "Mod",
    "avatar_url": None,
    "roles": ["moderator"],
    "points": 40,
    "is_active": True,
    "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
}


def test_access_token_round_trip():
    token = security.build_access_token(user_id=2, username="mod", roles=["moderator", "moderator"])
    payload = security.decode_access_token(token)

    assert payload["sub"] == "2"
    assert payload["roles"] == ["moderator"]
    assert payload["type"] == "access"


def test_tampered_token_is_rejected(monkeypatch):
    token = security.build_access_token(user_id=2, username="mod")
    monkeypatch.setenv("JWT_SECRET", "a-different-secret-that-is-long-enough-for-hs256")

    with pytest.raises(security.AuthSecurityError):
        security.decode_access_token(token)


def test_password_hashing():
    hashed = security.hash_password("correct horse")
    assert security.verify_password("correct horse", hashed)
    assert not security.verify_password("wrong horse", hashed)
    assert not security.verify_password("correct horse", "not-a-bcrypt-hash")


def test_refresh_tokens_are_stored_as_digests():
    raw = security.build_refresh_token()
    assert security.hash_refresh_token(raw) != raw
    assert len(security.hash_refresh_token(raw)) == 64


async def test_me_with_real_token(api_client):
    token = security.build_access_token(user_id=2, username="mod", roles=["moderator"])
    with patch("auth.repository.get_user_by_id", AsyncMock(return_value=USER_ROW)):
        resp = await api_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200
    assert resp.json()["roles"] == ["moderator"]


async def test_roles_come_from_the_database(api_client):
    # The token still claims moderator, but the role was revoked.
    token = security.build_access_token(user_id=2, username="mod", roles=["moderator"])
    demoted = {**USER_ROW, "roles": []}
    with patch("auth.repository.get_user_by_id", AsyncMock(return_value=demoted)):
        resp = await api_client.get(
            "/api/moderation/contributions",
            headers={"Authorization": f"Bearer {token}"},
        )

    assert resp.status_code == 403


async def test_malformed_authorization_header(api_client):
    resp = await api_client.get("/api/auth/me", headers={"Authorization": "Token abc"})

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Authorization must be: Bearer <token>."}


async def test_register_duplicate_email_conflicts(api_client):
    with patch("auth.repository.get_user_by_email", AsyncMock(return_value=USER_ROW)):
        resp = await api_client.post(
            "/api/auth/register",
            json={"email": "mod@example.com", "username": "another", "password": "Long enough 1"},
        )

    assert resp.status_code == 409
    assert resp.json()["error"] == "Email is already registered."


def test_expired_token_says_so(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MIN", "-1")
    token = security.build_access_token(user_id=2, username="mod")

    with pytest.raises(security.AuthSecurityError, match="expired"):
        security.decode_access_token(token)


@pytest.mark.parametrize(
    ("body", "field"),
    [
        ({"email": "not-an-email", "username": "reader", "password": "Long enough 1"}, "email"),
        ({"email": "r@example.com", "username": "reader", "password": "long enough password"}, "password"),
        ({"email": "r@example.com", "username": "no spaces", "password": "Long enough 1"}, "username"),
    ],
)
async def test_register_rejects_bad_credentials(api_client, body, field):
    with patch("auth.repository.create_user", AsyncMock()) as create:
        resp = await api_client.post("/api/auth/register", json=body)

    assert resp.status_code == 400
    assert resp.json()["error"].startswith(f"{field}: ")
    create.assert_not_awaited()


async def test_blank_display_name_is_stored_as_none(api_client):
    new_row = {**USER_ROW, "id": 30, "email": "r@example.com", "username": "reader", "roles": []}
    with (
        patch("auth.repository.get_user_by_email", AsyncMock(return_value=None)),
        patch("auth.repository.get_user_by_username", AsyncMock(return_value=None)),
        patch("auth.repository.create_user", AsyncMock(return_value=new_row)) as create,
        patch("auth.repository.insert_refresh_token", AsyncMock(return_value={"id": 1})),
    ):
        resp = await api_client.post(
            "/api/auth/register",
            json={"email": " r@example.com ", "username": "reader", "password": "Long enough 1", "display_name": "  "},
        )

    assert resp.status_code == 200
    assert create.await_args.kwargs["display_name"] is None
    assert create.await_args.kwargs["email"] == "r@example.com"
