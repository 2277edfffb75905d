from __future__ import annotations

import json

import pytest

from client.edit_dialog import EditDialog
from client.notices import Notifier
from conftest import READER

SNAPSHOT = {
    "id": 10,
    "slug": "old-title",
    "title_romaji": "Old Title",
    "episode_count": 12,
    "genre_ids": [1, 2],
    "characters": [
        {"id": 1, "name": "Lead", "role": "main", "voice_actors": {}},
        {"id": 1, "name": "Lead (again)", "role": "main", "voice_actors": {}},
        {"id": 2, "name": "Rival", "role": "supporting", "voice_actors": {}},
    ],
    "staff": [{"id": 8, "name": "Miyazaki", "role": "Director"}],
    "external_links": [{"id": 3, "url": "https://example.com"}, {"id": 3, "url": "https://example.com"}],
    "updated_at": "2025-06-01T00:00:00+00:00",
}


@pytest.fixture
def edit_routes(recorder):
    recorder.on("GET", "/api/get-media-for-edit", json={"success": True, "type": "anime", "content": SNAPSHOT})
    recorder.on(
        "POST",
        "/api/content-contributions",
        json={"success": True, "message": "Contribution submitted for review.", "contribution": {"id": 40}},
    )
    return recorder


async def test_open_loads_snapshot_and_drops_duplicate_ids(catalog_client, edit_routes):
    dialog = EditDialog(catalog_client, READER, "anime", 10)

    content = await dialog.open()

    assert dict(edit_routes.requests[0].url.params) == {"type": "anime", "id": "10"}
    assert [c["name"] for c in content["characters"]] == ["Lead", "Rival"]
    assert len(content["external_links"]) == 1
    assert dialog.original == content
    assert dialog.original is not dialog.current


async def test_unchanged_dialog_does_not_submit(catalog_client, edit_routes):
    notifier = Notifier()
    dialog = EditDialog(catalog_client, READER, "anime", 10, notifier)
    await dialog.open()
    dialog.set_field("title_romaji", "Old Title")

    assert await dialog.submit() is None
    assert [r.method for r in edit_routes.requests] == ["GET"]
    assert notifier.last.title == "No changes"


async def test_submit_sends_only_changed_fields(catalog_client, edit_routes):
    dialog = EditDialog(catalog_client, READER, "anime", 10)
    await dialog.open()
    dialog.set_field("title_romaji", "New Title")
    dialog.set_field("genre_ids", [1, 2])

    result = await dialog.submit(notes="Official site lists the new title.", sources=["https://example.com/news"])

    assert result["contribution"]["id"] == 40
    body = json.loads(edit_routes.requests[-1].content)
    assert body == {
        "userId": 7,
        "contributableType": "anime",
        "contributableId": 10,
        "contributionType": "add_info",
        "proposedChanges": {"title_romaji": {"old": "Old Title", "new": "New Title"}},
        "contributionNotes": "Official site lists the new title.",
        "sources": ["https://example.com/news"],
    }


async def test_editing_a_relation_list(catalog_client, edit_routes):
    dialog = EditDialog(catalog_client, READER, "anime", 10)
    await dialog.open()
    staff = dialog.current["staff"] + [{"id": 9, "name": "Hisaishi", "role": "Music"}]
    dialog.set_field("staff", staff)

    assert dialog.changes() == {
        "staff": {
            "old": [{"id": 8, "name": "Miyazaki", "role": "Director"}],
            "new": [{"id": 8, "name": "Miyazaki", "role": "Director"}, {"id": 9, "name": "Hisaishi", "role": "Music"}],
        }
    }


async def test_unknown_field_is_rejected(catalog_client, edit_routes):
    dialog = EditDialog(catalog_client, READER, "anime", 10)
    await dialog.open()

    with pytest.raises(KeyError):
        dialog.set_field("colour", "red")


async def test_load_failure_is_a_notice(catalog_client, recorder):
    recorder.on("GET", "/api/get-media-for-edit", status_code=404, json={"success": False, "error": "Content not found."})
    notifier = Notifier()
    dialog = EditDialog(catalog_client, READER, "anime", 999, notifier)

    assert await dialog.open() is None
    assert dialog.is_open is False
    assert notifier.last.description == "Content not found."
