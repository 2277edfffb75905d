"""Contribution submission endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from conftest import MODERATOR, READER

SCENARIO_A = {
    "title_romaji": "Test Anime",
    "synopsis": "A" * 20,
    "genre_ids": [1],
    "type": "TV",
    "status": "ongoing",
}

CREATED_AT = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    with (
        patch(
            "contributions.repository.insert_contribution",
            AsyncMock(return_value={"id": 11, "status": "pending", "created_at": CREATED_AT}),
        ) as insert,
        patch("contributions.repository.get_target_row", AsyncMock(return_value=None)) as target,
        patch("notifications.service.notify_moderators", AsyncMock()) as notify,
    ):
        yield {"insert": insert, "target": target, "notify": notify}


async def test_submit_new_anime_creates_pending_contribution(api_client, login, store):
    login(READER)

    resp = await api_client.post(
        "/api/user/contributions",
        json={"contributionType": "full", "mediaType": "anime", "mediaId": None, "contributionData": SCENARIO_A},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["contribution"]["status"] == "pending"
    assert body["contribution"]["contributableId"] is None

    kwargs = store["insert"].await_args.kwargs
    assert kwargs["user_id"] == 7
    assert kwargs["contributable_id"] is None
    assert kwargs["contribution_type"] == "full"
    data = kwargs["contribution_data"]
    assert data["title_romaji"] == "Test Anime"
    assert data["genre_ids"] == [1]
    assert data["contentType"] == "anime"
    assert data["type"] == "TV"
    assert "submittedAt" in data
    store["notify"].assert_awaited_once()


async def test_submit_requires_authentication(api_client, store):
    resp = await api_client.post(
        "/api/user/contributions",
        json={"contributionType": "full", "mediaType": "anime", "contributionData": SCENARIO_A},
    )

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Authentication required."}
    store["insert"].assert_not_awaited()


async def test_server_revalidates_contribution_data(api_client, login, store):
    login(READER)

    resp = await api_client.post(
        "/api/user/contributions",
        json={
            "contributionType": "full",
            "mediaType": "anime",
            "contributionData": {**SCENARIO_A, "synopsis": "short"},
        },
    )

    assert resp.status_code == 400
    assert "Synopsis must be at least 20 characters." in resp.json()["error"]
    store["insert"].assert_not_awaited()


async def test_malformed_character_entry_is_a_validation_error(api_client, login, store):
    login(READER)

    resp = await api_client.post(
        "/api/user/contributions",
        json={
            "contributionType": "full",
            "mediaType": "anime",
            "contributionData": {**SCENARIO_A, "characters": [5]},
        },
    )

    assert resp.status_code == 400
    assert resp.json() == {
        "success": False,
        "error": "Invalid contribution data: characters.0: Each entry must be an object with an id.",
    }
    store["insert"].assert_not_awaited()


async def test_full_contribution_must_not_target_existing_media(api_client, login, store):
    login(READER)

    resp = await api_client.post(
        "/api/user/contributions",
        json={"contributionType": "full", "mediaType": "anime", "mediaId": 4, "contributionData": SCENARIO_A},
    )

    assert resp.status_code == 400
    store["insert"].assert_not_awaited()


async def test_unknown_media_type_is_rejected(api_client, login, store):
    login(READER)

    resp = await api_client.post(
        "/api/user/contributions",
        json={"contributionType": "full", "mediaType": "podcast", "contributionData": SCENARIO_A},
    )

    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Invalid media type: podcast.")


async def test_submit_entity(api_client, login, store):
    login(READER)

    resp = await api_client.post(
        "/api/contributions/submit-entity",
        json={"entityType": "studio", "contributionData": {"name": "Bones"}},
    )

    assert resp.status_code == 200
    kwargs = store["insert"].await_args.kwargs
    assert kwargs["contributable_type"] == "studio"
    assert kwargs["contribution_data"]["name"] == "Bones"


async def test_edit_contribution_stores_effective_changes(api_client, login, store):
    login(READER)
    store["target"].return_value = {"id": 5, "title_romaji": "Old", "episode_count": 12}

    resp = await api_client.post(
        "/api/content-contributions",
        json={
            "userId": 7,
            "contributableType": "anime",
            "contributableId": 5,
            "contributionType": "add_info",
            "proposedChanges": {
                "title_romaji": {"old": "Old", "new": "New"},
                "episode_count": {"old": 12, "new": "12"},
            },
            "contributionNotes": "  checked the official site  ",
            "sources": ["https://example.com"],
        },
    )

    assert resp.status_code == 200
    assert resp.json()["contribution"]["contributableId"] == 5
    kwargs = store["insert"].await_args.kwargs
    assert kwargs["contributable_id"] == 5
    assert kwargs["contribution_type"] == "add_info"
    # "12" coerces to 12, so only the title is an actual change.
    assert kwargs["proposed_changes"] == {"title_romaji": {"old": "Old", "new": "New"}}
    assert kwargs["contribution_notes"] == "checked the official site"


async def test_edit_contribution_without_changes_conflicts(api_client, login, store):
    login(READER)
    store["target"].return_value = {"id": 5, "title_romaji": "Old"}

    resp = await api_client.post(
        "/api/content-contributions",
        json={"contributableType": "anime", "contributableId": 5, "proposedChanges": {}},
    )

    assert resp.status_code == 409
    assert resp.json() == {"success": False, "error": "No changes to submit."}
    store["insert"].assert_not_awaited()


async def test_edit_contribution_for_missing_target(api_client, login, store):
    login(READER)

    resp = await api_client.post(
        "/api/content-contributions",
        json={
            "contributableType": "anime",
            "contributableId": 99,
            "proposedChanges": {"title_romaji": {"old": "A", "new": "B"}},
        },
    )

    assert resp.status_code == 404


async def test_cannot_submit_on_behalf_of_another_user(api_client, login, store):
    login(READER)

    resp = await api_client.post(
        "/api/content-contributions",
        json={
            "userId": 8,
            "contributableType": "anime",
            "contributableId": 5,
            "proposedChanges": {"title_romaji": {"old": "A", "new": "B"}},
        },
    )

    assert resp.status_code == 403
    store["insert"].assert_not_awaited()


async def test_readers_only_list_their_own_contributions(api_client, login):
    login(READER)
    with patch("contributions.repository.list_contributions", AsyncMock(return_value=[])) as listing:
        resp = await api_client.get("/api/content-contributions", params={"userId": 8})

    assert resp.status_code == 403
    listing.assert_not_awaited()


async def test_moderators_can_list_any_contributions(api_client, login):
    login(MODERATOR)
    with patch("contributions.repository.list_contributions", AsyncMock(return_value=[])) as listing:
        resp = await api_client.get("/api/content-contributions", params={"userId": 8, "status": "pending"})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "contributions": [], "count": 0}
    assert listing.await_args.kwargs["user_id"] == 8
