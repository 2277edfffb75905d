from __future__ import annotations

import json

import pytest

from client import forms
from client.forms import ContributionForm, FormState
from client.notices import Notifier
from conftest import READER


def test_reducers_return_new_versions_without_mutating():
    state = FormState(values={"title_romaji": "", "official_sites": []})

    s1 = forms.update(state, "title_romaji", "Test Anime")
    s2 = forms.append_item(s1, "official_sites", {"site_name": "", "url": ""})
    s3 = forms.update(s2, "official_sites.0.url", "https://example.com")
    s4 = forms.remove_item(s3, "official_sites", 0)

    assert state.values == {"title_romaji": "", "official_sites": []}
    assert s1.version == 1 and s3.version == 3 and s4.version == 4
    assert s3.values["official_sites"] == [{"site_name": "", "url": "https://example.com"}]
    assert s2.values["official_sites"] == [{"site_name": "", "url": ""}]
    assert s4.values["official_sites"] == []


def test_reducers_reject_unknown_paths():
    state = FormState(values={"official_sites": []})

    with pytest.raises(KeyError):
        forms.update(state, "official_sites.3.url", "https://example.com")
    with pytest.raises(KeyError):
        forms.append_item(state, "missing", {})
    with pytest.raises(IndexError):
        forms.remove_item(state, "official_sites", 0)


def _fill_scenario_a(form: ContributionForm) -> None:
    form.set("title_romaji", "Test Anime")
    form.set("synopsis", "A" * 20)
    form.set("genre_ids", [1])
    form.set("type", "TV")
    form.set("status", "ongoing")


async def test_submit_new_anime(catalog_client, recorder):
    recorder.on(
        "POST",
        "/api/user/contributions",
        json={"success": True, "message": "Contribution submitted for review.", "contribution": {"id": 11}},
    )
    notifier = Notifier()
    form = ContributionForm("anime", catalog_client, READER, notifier)
    _fill_scenario_a(form)
    form.set("episode_count", "12")

    result = await form.submit()

    assert result["contribution"]["id"] == 11
    body = json.loads(recorder.requests[0].content)
    assert body["contributionType"] == "full"
    assert body["mediaType"] == "anime"
    assert body["mediaId"] is None
    data = body["contributionData"]
    assert data["title_romaji"] == "Test Anime"
    assert data["episode_count"] == 12
    assert data["cover_image_url"] is None
    assert data["genre_ids"] == [1]
    assert form.redirect_to == "/contribution-center"
    assert notifier.last.variant == "success"


async def test_selected_entities_are_part_of_the_payload(catalog_client, recorder):
    recorder.on("POST", "/api/user/contributions", json={"success": True})
    form = ContributionForm("anime", catalog_client, READER)
    _fill_scenario_a(form)
    form.bind_selection("studios", [{"id": 5, "name": "Bones", "role": None, "is_main_studio": True}])
    form.bind_selection("staff", [{"id": 8, "name": "Miyazaki", "role": "Director"}])

    await form.submit()

    data = json.loads(recorder.requests[0].content)["contributionData"]
    assert data["studios"] == [{"id": 5, "name": "Bones", "is_main_studio": True}]
    assert data["staff"] == [{"id": 8, "name": "Miyazaki", "role": "Director"}]


async def test_unauthenticated_user_cannot_submit(anonymous_client, recorder):
    notifier = Notifier()
    form = ContributionForm("anime", anonymous_client, None, notifier)
    _fill_scenario_a(form)

    assert form.is_accessible is False
    assert await form.submit() is None
    assert recorder.requests == []
    assert notifier.last.title == "Access denied"


async def test_invalid_form_is_blocked_and_annotated(catalog_client, recorder):
    notifier = Notifier()
    form = ContributionForm("anime", catalog_client, READER, notifier)
    form.set("synopsis", "too short")

    assert await form.submit() is None
    assert recorder.requests == []
    assert form.errors["title_romaji"] == "Title (romaji) is required."
    assert form.errors["synopsis"] == "Synopsis must be at least 20 characters."
    assert notifier.last.variant == "error"


async def test_server_failure_keeps_form_intact(catalog_client, recorder):
    recorder.on("POST", "/api/user/contributions", status_code=400, json={"success": False, "error": "Invalid media type: anime."})
    notifier = Notifier()
    form = ContributionForm("anime", catalog_client, READER, notifier)
    _fill_scenario_a(form)
    before = form.state

    assert await form.submit() is None
    assert notifier.last.description == "Invalid media type: anime."
    assert form.state is before
    assert form.redirect_to is None


async def test_entity_form_uses_submit_entity(catalog_client, recorder):
    recorder.on("POST", "/api/contributions/submit-entity", json={"success": True})
    form = ContributionForm("studio", catalog_client, READER)
    form.set("name", "Bones")

    await form.submit()

    body = json.loads(recorder.requests[0].content)
    assert body == {"entityType": "studio", "contributionData": {"name": "Bones"}}


def test_manhwa_defaults_to_korea(catalog_client):
    form = ContributionForm("manhwa", catalog_client, READER)
    assert form.values["country_of_origin"] == "KR"
