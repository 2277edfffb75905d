from __future__ import annotations

import asyncio

import httpx

from client.forms import ContributionForm
from client.notices import Notifier
from client.selectors import CharacterSelector, ScanlationGroupSelector, StaffSelector, StudioSelector
from conftest import READER


async def test_short_query_makes_no_request(catalog_client, recorder):
    selector = StudioSelector(catalog_client, debounce_s=0)

    assert await selector.search("a") == []
    assert await selector.search("  b ") == []
    assert recorder.requests == []


async def test_search_uses_entity_endpoint_and_page_size(catalog_client, recorder):
    recorder.on("GET", "/api/characters", json={"success": True, "characters": [{"id": 1, "name": "Naruto"}]})
    selector = CharacterSelector(catalog_client, debounce_s=0)

    results = await selector.search("nar")

    assert results == [{"id": 1, "name": "Naruto"}]
    assert dict(recorder.requests[0].url.params) == {"search": "nar", "limit": "20"}


async def test_group_selector_reads_groups_key(catalog_client, recorder):
    recorder.on("GET", "/api/scan/groups", json={"success": True, "groups": [{"id": 3, "name": "Lector"}]})
    selector = ScanlationGroupSelector(catalog_client, debounce_s=0)

    assert await selector.search("lec") == [{"id": 3, "name": "Lector"}]
    assert recorder.requests[0].url.params["limit"] == "5"


async def test_superseded_search_is_discarded(catalog_client, recorder):
    recorder.on("GET", "/api/studios", json={"success": True, "studios": [{"id": 2, "name": "Madhouse"}]})
    selector = StudioSelector(catalog_client, debounce_s=0.01)

    stale, fresh = await asyncio.gather(selector.search("ma"), selector.search("madh"))

    assert stale == []
    assert fresh == [{"id": 2, "name": "Madhouse"}]
    assert [r.url.params["search"] for r in recorder.requests] == ["madh"]


async def test_search_failure_is_a_notice_and_selector_stays_usable(catalog_client, recorder):
    recorder.on("GET", "/api/staff", status_code=500, json={"success": False, "error": "Database error: timeout"})
    notifier = Notifier()
    selector = StaffSelector(catalog_client, notifier, debounce_s=0)

    assert await selector.search("miya") == []
    assert notifier.last.variant == "error"
    assert notifier.last.description == "Database error: timeout"

    recorder.on("GET", "/api/staff", json={"success": True, "staff": [{"id": 8, "name": "Miyazaki"}]})
    assert await selector.search("miya") == [{"id": 8, "name": "Miyazaki"}]


def test_duplicate_selection_warns_instead_of_raising(catalog_client):
    notifier = Notifier()
    changes = []
    selector = StaffSelector(catalog_client, notifier, on_change=changes.append)

    assert selector.select({"id": 8, "name": "Miyazaki"}, "Director") is True
    assert selector.select({"id": 8, "name": "Miyazaki"}, "Writer") is True
    assert selector.select({"id": 8, "name": "Miyazaki"}, "Director") is False

    assert [item["role"] for item in selector.selected] == ["Director", "Writer"]
    assert notifier.last.variant == "warning"
    assert "Miyazaki" in notifier.last.description
    assert len(changes) == 2


def test_remove_selection(catalog_client):
    selector = StudioSelector(catalog_client, selected=[{"id": 1, "name": "Bones", "role": None}])

    assert selector.remove(1) is True
    assert selector.remove(1) is False
    assert selector.selected == []


async def test_create_new_posts_and_selects(catalog_client, recorder):
    recorder.on(
        "POST",
        "/api/studios",
        json={"success": True, "studio": {"id": 5, "name": "Bones"}, "created": True, "message": "Studio created."},
    )
    notifier = Notifier()
    selector = StudioSelector(catalog_client, notifier)

    row = await selector.create_new({"name": "Bones"})

    assert row == {"id": 5, "name": "Bones"}
    assert selector.selected == [{"id": 5, "name": "Bones", "is_main_studio": True}]
    assert recorder.requests[0].method == "POST"
    assert notifier.notices[0].title == "Studio created."


async def test_create_new_requires_a_name(catalog_client, recorder):
    notifier = Notifier()
    selector = StudioSelector(catalog_client, notifier)

    assert await selector.create_new({"name": "  "}) is None
    assert recorder.requests == []
    assert notifier.last.title == "Name is required"


async def test_create_failure_keeps_selection(catalog_client, recorder):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"success": False, "error": "Authentication required."})

    recorder.on_call("POST", "/api/staff", handler)
    notifier = Notifier()
    selector = StaffSelector(catalog_client, notifier, selected=[{"id": 1, "name": "Anno", "role": "Director"}])

    assert await selector.create_new({"name": "Someone New"}, role="Writer") is None
    assert selector.selected == [{"id": 1, "name": "Anno", "role": "Director"}]
    assert notifier.last.description == "Authentication required."


def test_only_one_studio_is_main(catalog_client):
    changes = []
    selector = StudioSelector(catalog_client, on_change=changes.append)

    selector.select({"id": 1, "name": "Bones"}, main=True)
    selector.select({"id": 2, "name": "Madhouse"})
    selector.select({"id": 3, "name": "Trigger"}, main=True)

    assert [(s["id"], s["is_main_studio"]) for s in selector.selected] == [(1, False), (2, False), (3, True)]
    assert len(changes) == 3


def test_toggle_main_studio(catalog_client):
    selector = StudioSelector(catalog_client)
    selector.select({"id": 1, "name": "Bones"}, main=True)
    selector.select({"id": 2, "name": "Madhouse"})

    assert selector.toggle_main(2) is True
    assert [s["is_main_studio"] for s in selector.selected] == [False, True]
    assert selector.toggle_main(2) is True
    assert [s["is_main_studio"] for s in selector.selected] == [False, False]
    assert selector.toggle_main(99) is False


def test_same_studio_cannot_be_added_twice(catalog_client):
    notifier = Notifier()
    selector = StudioSelector(catalog_client, notifier)
    selector.select({"id": 1, "name": "Bones"})

    assert selector.select({"id": 1, "name": "Bones"}, main=True) is False
    assert selector.selected == [{"id": 1, "name": "Bones", "is_main_studio": False}]
    assert notifier.last.title == "Already added"


def test_main_studio_reaches_the_contribution_payload(catalog_client):
    form = ContributionForm("anime", catalog_client, READER)
    form.set("title_romaji", "Test Anime")
    form.set("synopsis", "A" * 20)
    form.set("genre_ids", [1])
    form.set("type", "TV")
    form.set("status", "ongoing")
    selector = StudioSelector(catalog_client, on_change=lambda studios: form.bind_selection("studios", studios))

    selector.select({"id": 1, "name": "Bones"}, role="main")

    assert form.payload()["studios"] == [{"id": 1, "name": "Bones", "is_main_studio": True}]
