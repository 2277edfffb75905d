"""Catalog lookups, inline creation, favorites and notifications."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import asyncpg

from conftest import MODERATOR, READER
from notifications import service as notifications_service


async def test_staff_listing_exposes_display_name(api_client):
    rows = [{"id": 8, "name_romaji": "Hayao Miyazaki", "slug": "hayao-miyazaki"}]
    with patch("catalog.repository.search_staff", AsyncMock(return_value=rows)) as search:
        resp = await api_client.get("/api/staff", params={"search": "miya", "limit": 10})

    assert resp.status_code == 200
    assert resp.json()["staff"][0]["name"] == "Hayao Miyazaki"
    assert search.await_args.kwargs == {"search": "miya", "limit": 10}


async def test_voice_actor_search_needs_two_characters(api_client):
    with patch("catalog.repository.search_voice_actors", AsyncMock(return_value=[])) as search:
        resp = await api_client.get("/api/voice-actors", params={"search": "m"})

    assert resp.json() == {"success": True, "voiceActors": [], "total": 0}
    search.assert_not_awaited()


async def test_create_studio_returns_existing_match(api_client, login):
    login(READER)
    existing = {"id": 5, "name": "Bones", "slug": "bones"}
    with (
        patch("catalog.repository.find_studio_by_name", AsyncMock(return_value=existing)),
        patch("catalog.repository.insert_studio", AsyncMock()) as insert,
    ):
        resp = await api_client.post("/api/studios", json={"name": " bones "})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "studio": existing, "created": False, "message": "Studio already exists."}
    insert.assert_not_awaited()


async def test_create_studio_race_returns_winner(api_client, login):
    login(READER)
    winner = {"id": 6, "name": "Trigger", "slug": "trigger"}
    with (
        patch("catalog.repository.find_studio_by_name", AsyncMock(side_effect=[None, winner])),
        patch("catalog.repository.insert_studio", AsyncMock(side_effect=asyncpg.UniqueViolationError("studios_slug_key"))),
    ):
        resp = await api_client.post("/api/studios", json={"name": "Trigger"})

    assert resp.status_code == 200
    assert resp.json()["studio"] == winner
    assert resp.json()["created"] is False


async def test_create_studio_requires_login(api_client):
    resp = await api_client.post("/api/studios", json={"name": "Trigger"})
    assert resp.status_code == 401


async def test_media_for_edit_validates_type(api_client, login):
    login(READER)

    resp = await api_client.get("/api/get-media-for-edit", params={"type": "podcast", "id": "1"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid content type: podcast."


async def test_media_for_edit_not_found(api_client, login):
    login(READER)
    with patch("catalog.repository.get_media_row", AsyncMock(return_value=None)):
        resp = await api_client.get("/api/get-media-for-edit", params={"type": "anime", "id": "missing-slug"})

    assert resp.status_code == 404


async def test_add_favorite_checks_type_and_target(api_client, login):
    login(READER)

    resp = await api_client.post("/api/user/favorites", json={"type": "studio", "id": 1})
    assert resp.status_code == 400

    with (
        patch("favorites.repository.target_exists", AsyncMock(return_value=True)),
        patch("favorites.repository.add_favorite", AsyncMock(return_value=False)) as add,
    ):
        resp = await api_client.post("/api/user/favorites", json={"type": "anime", "id": 4})

    assert resp.json() == {"success": True, "isFavorite": True, "created": False}
    assert add.await_args.kwargs == {"user_id": 7, "favoritable_type": "anime", "favoritable_id": 4}


async def test_removing_missing_favorite_is_not_found(api_client, login):
    login(READER)
    with patch("favorites.repository.remove_favorite", AsyncMock(return_value=False)):
        resp = await api_client.delete("/api/user/favorites/anime/4")

    assert resp.status_code == 404


async def test_moderators_are_notified_except_the_actor():
    with (
        patch("auth.repository.list_user_ids_with_roles", AsyncMock(return_value=[2, 3])),
        patch("notifications.repository.insert_notification", AsyncMock()) as insert,
    ):
        targeted = await notifications_service.notify_moderators(
            action_type=notifications_service.CONTRIBUTION_SUBMITTED,
            notifiable_type="contribution",
            notifiable_id=11,
            actor_user_id=MODERATOR["id"],
        )

    assert targeted == 2
    # The moderator who submitted does not notify themselves.
    assert [c.kwargs["recipient_user_id"] for c in insert.await_args_list] == [3]


async def test_notification_failure_does_not_propagate(caplog):
    with patch("notifications.repository.insert_notification", AsyncMock(side_effect=RuntimeError("db down"))):
        await notifications_service.create_notification(
            recipient_user_id=7,
            actor_user_id=2,
            action_type=notifications_service.CONTRIBUTION_APPROVED,
            notifiable_type="contribution",
            notifiable_id=11,
        )

    assert "notification_failed recipient=7" in caplog.text


async def test_unread_notifications(api_client, login):
    login(READER)
    with (
        patch("notifications.repository.list_for_user", AsyncMock(return_value=[])) as listing,
        patch("notifications.repository.count_unread", AsyncMock(return_value=0)),
    ):
        resp = await api_client.get("/api/user/notifications", params={"unreadOnly": "true"})

    assert resp.json() == {"success": True, "notifications": [], "unread_count": 0}
    assert listing.await_args.kwargs == {"user_id": 7, "unread_only": True, "limit": 20}
