"""Field-schema registry: validation, coercion and moderation rendering."""

from __future__ import annotations

import pytest

from contributions import registry

SCENARIO_A = {
    "title_romaji": "Test Anime",
    "synopsis": "A" * 20,
    "genre_ids": [1],
    "type": "TV",
    "status": "ongoing",
}


def test_minimal_anime_is_valid():
    assert registry.validate("anime", SCENARIO_A) == {}


def test_anime_required_fields_are_reported():
    errors = registry.validate("anime", {"synopsis": "too short", "genre_ids": []})

    assert errors["title_romaji"] == "Title (romaji) is required."
    assert errors["synopsis"] == "Synopsis must be at least 20 characters."
    assert errors["genre_ids"] == "Select at least 1 genres."
    assert "type" in errors
    assert "status" in errors


def test_anime_type_must_be_a_known_format():
    errors = registry.validate("anime", {**SCENARIO_A, "type": "Series"})
    assert errors == {"type": "Type must be one of: TV, Movie, OVA, ONA, Special, Music."}


def test_manga_family_requires_format_and_country():
    data = {k: v for k, v in SCENARIO_A.items() if k != "type"}
    errors = registry.validate("manhwa", data)

    assert "format" in errors
    assert "country_of_origin" in errors

    ok = registry.validate("manhwa", {**data, "format": "Webtoon", "country_of_origin": "KR"})
    assert ok == {}


def test_numeric_and_url_fields_are_checked():
    errors = registry.validate(
        "anime",
        {**SCENARIO_A, "episode_count": "twelve", "cover_image_url": "not a url", "mal_id": "-3"},
    )
    assert errors["episode_count"] == "Episodes must be a whole number."
    assert errors["cover_image_url"] == "Cover image must be a valid URL."
    assert errors["mal_id"] == "MyAnimeList id must not be negative."


def test_blank_optional_url_is_allowed():
    assert registry.validate("anime", {**SCENARIO_A, "trailer_url": ""}) == {}


def test_nested_link_errors_use_dotted_paths():
    errors = registry.validate(
        "anime",
        {**SCENARIO_A, "official_sites": [{"site_name": "Home", "url": "https://example.com"}, {"site_name": "", "url": "x"}]},
    )
    assert errors == {
        "official_sites.1.site_name": "Site name is required.",
        "official_sites.1.url": "URL must be a valid URL.",
    }


def test_same_staff_member_with_same_role_is_a_duplicate():
    staff = [
        {"id": 4, "role": "Director"},
        {"id": 4, "role": "Writer"},
        {"id": 4, "role": "Director"},
    ]
    errors = registry.validate("anime", {**SCENARIO_A, "staff": staff})
    assert errors == {"staff.2": "Duplicate entry."}


def test_character_voice_actor_language_is_checked():
    characters = [{"id": 1, "role": "main", "voice_actors": {"klingon": 3}}]
    errors = registry.validate("anime", {**SCENARIO_A, "characters": characters})
    assert errors == {"characters.0.voice_actors.klingon": "Unsupported voice actor language."}


def test_coerce_parses_numbers_and_nulls_blanks():
    data = registry.coerce(
        "anime",
        {
            **SCENARIO_A,
            "episode_count": "12",
            "duration": "",
            "cover_image_url": "",
            "genre_ids": ["1", 2],
            "studios": [{"id": "5", "name": "Bones", "is_main_studio": True}],
            "junk": "dropped",
        },
    )

    assert data["episode_count"] == 12
    assert data["duration"] is None
    assert data["cover_image_url"] is None
    assert data["genre_ids"] == [1, 2]
    assert data["studios"] == [{"id": 5, "name": "Bones", "is_main_studio": True}]
    assert data["title_romaji"] == "Test Anime"
    assert "junk" not in data


def test_defaults_prefill_country_per_type():
    assert registry.defaults("manhwa")["country_of_origin"] == "KR"
    assert registry.defaults("anime")["genre_ids"] == []
    assert registry.defaults("anime")["is_nsfw"] is False


def test_entity_schemas():
    assert registry.validate("studio", {"name": "Bones"}) == {}
    assert registry.validate("character", {"name": "Edward", "description": "short"}) == {
        "description": "Description must be at least 10 characters."
    }
    errors = registry.validate("voice_actor", {"name_romaji": "Romi Park", "bio": "A long enough bio."})
    assert "language" in errors


def test_scalar_fields_map_to_columns():
    columns = registry.column_names("anime")
    assert "title_romaji" in columns
    assert "genre_ids" not in columns
    assert "studios" in registry.relation_names("anime")
    assert registry.table_name("novel") == "novels"


def test_unknown_type_is_rejected():
    with pytest.raises(registry.UnknownContributableType):
        registry.get_schema("podcast")


def test_validate_changes():
    assert registry.validate_changes("anime", {}) == {"proposedChanges": "No changes to submit."}
    assert registry.validate_changes("anime", {"title_romaji": {"old": "A", "new": "B"}}) == {}
    errors = registry.validate_changes("anime", {"colour": {"old": None, "new": "red"}})
    assert errors == {"colour": "Unknown field for anime: colour."}
    errors = registry.validate_changes("anime", {"synopsis": {"old": "x" * 30, "new": "short"}})
    assert errors == {"synopsis": "Synopsis must be at least 20 characters."}


def test_detail_view_skips_blank_values_in_schema_order():
    rows = registry.detail_view("anime", {"synopsis": "A" * 20, "title_romaji": "Test", "background": ""})
    assert [r["name"] for r in rows] == ["title_romaji", "synopsis"]
    assert rows[0]["label"] == "Title (romaji)"


def test_changes_view_lists_old_and_new():
    rows = registry.changes_view("anime", {"episode_count": {"old": 12, "new": 13}})
    assert rows == [{"name": "episode_count", "label": "Episodes", "kind": "int", "old": 12, "new": 13}]


@pytest.mark.parametrize(
    ("field", "value", "path", "message"),
    [
        ("characters", [5], "characters.0", "Each entry must be an object with an id."),
        ("staff", ["4"], "staff.0", "Each entry must be an object with an id."),
        ("episodes", [{"episode_number": 1, "title": 5}], "episodes.0.title", "Episode title must be text."),
    ],
)
def test_malformed_relation_entries_are_rejected(field, value, path, message):
    data = {**SCENARIO_A, field: value}

    assert registry.validate("anime", data) == {path: message}


def test_everything_that_validates_can_be_coerced():
    data = {
        **SCENARIO_A,
        "studios": [5, {"id": "6", "is_main_studio": True}],
        "characters": [{"id": "1", "voice_actors": {"japanese": "3"}}],
        "episodes": [{"episode_number": "1", "title": " Pilot ", "air_date": " 2024-04-01 "}],
    }
    assert registry.validate("anime", data) == {}

    coerced = registry.coerce("anime", data)

    assert coerced["studios"] == [{"id": 5, "is_main_studio": False}, {"id": 6, "is_main_studio": True}]
    assert coerced["characters"] == [{"id": 1, "role": "supporting", "voice_actors": {"japanese": 3}}]
    assert coerced["episodes"] == [
        {"season_number": 1, "episode_number": 1, "title": "Pilot", "air_date": "2024-04-01", "duration": None}
    ]
