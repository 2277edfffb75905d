"""
Declarative field-schema registry, keyed by contributable type.

One table drives everything that depends on the shape of a contribution:
- client forms (defaults, validation, payload coercion)
- submission API re-validation
- moderation detail rendering
- materialization into the entity tables on approval

Field kinds:
- scalar: text, longtext, int, url, date, bool, enum
- relation lists: ids, links, fan_translations, episodes, studios, staff, characters

Scalar fields map 1:1 onto a column of `table_name(type)`; relation kinds are
stored in link tables and never appear in `column_names(type)`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import HttpUrl, TypeAdapter, ValidationError

SCALAR_KINDS = ("text", "longtext", "int", "url", "date", "bool", "enum")
LIST_KINDS = ("ids", "links", "fan_translations", "episodes", "studios", "staff", "characters")

EPISODIC_TYPES = ("anime", "donghua")
WRITTEN_TYPES = ("manga", "manhwa", "manhua", "novel", "fan_comic")
MEDIA_TYPES = EPISODIC_TYPES + WRITTEN_TYPES
ENTITY_TYPES = ("character", "staff", "voice_actor", "studio", "genre")
CONTRIBUTABLE_TYPES = MEDIA_TYPES + ENTITY_TYPES

ANIME_FORMATS = ("TV", "Movie", "OVA", "ONA", "Special", "Music")
EPISODIC_STATUSES = ("finished", "ongoing", "not_yet_aired", "on_hiatus", "discontinued")
WRITTEN_STATUSES = ("finished", "ongoing", "not_yet_released", "on_hiatus", "discontinued")
WRITTEN_FORMATS = {
    "manga": ("Manga", "One-shot", "Doujinshi"),
    "manhwa": ("Webtoon", "Manhwa"),
    "manhua": ("Manhua", "Webtoon"),
    "novel": ("Light Novel", "Web Novel", "Novel"),
    "fan_comic": ("Webtoon", "Fan-made", "Doujinshi"),
}
DEFAULT_COUNTRY = {
    "anime": "JP",
    "donghua": "CN",
    "manga": "JP",
    "manhwa": "KR",
    "manhua": "CN",
}
SEASONS = ("winter", "spring", "summer", "fall")
CHARACTER_ROLES = ("main", "supporting")
VOICE_ACTOR_LANGUAGES = ("japanese", "spanish", "english")
TRANSLATION_STATUSES = ("active", "hiatus", "completed", "dropped", "licensed")

_TABLES = {
    "anime": "anime",
    "donghua": "donghua",
    "manga": "manga",
    "manhwa": "manhwa",
    "manhua": "manhua",
    "novel": "novels",
    "fan_comic": "fan_comics",
    "character": "characters",
    "staff": "staff",
    "voice_actor": "voice_actors",
    "studio": "studios",
    "genre": "genres",
}

_URL = TypeAdapter(HttpUrl)


class UnknownContributableType(ValueError):
    pass


@dataclass(frozen=True)
class Field:
    name: str
    kind: str = "text"
    label: str = ""
    required: bool = False
    min_length: int | None = None
    choices: tuple[str, ...] = ()
    min_items: int = 0

    @property
    def column(self) -> bool:
        return self.kind in SCALAR_KINDS

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").capitalize()


EPISODE_AIR_DATE = Field("air_date", "date", label="Air date")


def _titles() -> list[Field]:
    return [
        Field("title_romaji", label="Title (romaji)", required=True),
        Field("title_english", label="Title (English)"),
        Field("title_spanish", label="Title (Spanish)"),
        Field("title_native", label="Title (native)"),
        Field("synopsis", "longtext", required=True, min_length=20),
        Field("background", "longtext"),
    ]


def _media_common_tail() -> list[Field]:
    return [
        Field("start_date", "date"),
        Field("end_date", "date"),
        Field("cover_image_url", "url", label="Cover image"),
        Field("banner_image_url", "url", label="Banner image"),
        Field("is_nsfw", "bool", label="Adult content"),
        Field("mal_id", "int", label="MyAnimeList id"),
        Field("anilist_id", "int", label="AniList id"),
        Field("genre_ids", "ids", label="Genres", required=True, min_items=1),
        Field("staff", "staff"),
        Field("characters", "characters"),
        Field("official_sites", "links"),
    ]


def _episodic_schema() -> tuple[Field, ...]:
    return tuple(
        _titles()
        + [
            Field("type", "enum", required=True, choices=ANIME_FORMATS),
            Field("status", "enum", required=True, choices=EPISODIC_STATUSES),
            Field("source", label="Source material"),
            Field("season", "enum", choices=SEASONS),
            Field("season_year", "int"),
            Field("episode_count", "int", label="Episodes"),
            Field("duration", "int", label="Episode duration (minutes)"),
            Field("country_of_origin", label="Country of origin"),
            Field("trailer_url", "url", label="Trailer"),
            Field("kitsu_id", "int", label="Kitsu id"),
        ]
        + _media_common_tail()
        + [
            Field("studios", "studios"),
            Field("streaming_platforms", "links"),
            Field("episodes", "episodes"),
        ]
    )


def _written_schema(media_type: str) -> tuple[Field, ...]:
    return tuple(
        _titles()
        + [
            Field("format", "enum", required=True, choices=WRITTEN_FORMATS[media_type]),
            Field("status", "enum", required=True, choices=WRITTEN_STATUSES),
            Field("country_of_origin", label="Country of origin", required=True),
            Field("serialization"),
            Field("chapters", "int"),
            Field("volumes", "int"),
        ]
        + _media_common_tail()
        + [
            Field("reading_platforms", "links"),
            Field("fan_translations", "fan_translations"),
        ]
    )


_PERSON_FIELDS = (
    Field("name_romaji", label="Name (romaji)", required=True),
    Field("name_native", label="Name (native)"),
    Field("image_url", "url", label="Image"),
    Field("bio", "longtext", label="Biography", required=True, min_length=10),
    Field("gender"),
    Field("date_of_birth", "date", label="Date of birth"),
    Field("hometown"),
)

_SCHEMAS: dict[str, tuple[Field, ...]] = {
    "anime": _episodic_schema(),
    "donghua": _episodic_schema(),
    **{t: _written_schema(t) for t in WRITTEN_TYPES},
    "character": (
        Field("name", required=True),
        Field("name_romaji", label="Name (romaji)"),
        Field("name_native", label="Name (native)"),
        Field("image_url", "url", label="Image"),
        Field("description", "longtext", required=True, min_length=10),
        Field("gender"),
        Field("age"),
        Field("blood_type"),
        Field("date_of_birth", label="Birthday"),
    ),
    "staff": _PERSON_FIELDS + (Field("primary_occupations", label="Occupations"),),
    "voice_actor": _PERSON_FIELDS
    + (Field("language", "enum", required=True, choices=VOICE_ACTOR_LANGUAGES),),
    "studio": (Field("name", required=True),),
    "genre": (
        Field("code", required=True),
        Field("name_es", label="Name (Spanish)", required=True),
        Field("name_en", label="Name (English)", required=True),
        Field("name_ja", label="Name (Japanese)"),
        Field("description_es", "longtext", label="Description (Spanish)"),
        Field("description_en", "longtext", label="Description (English)"),
    ),
}


def is_media(contributable_type: str) -> bool:
    return contributable_type in MEDIA_TYPES


def get_schema(contributable_type: str) -> tuple[Field, ...]:
    try:
        return _SCHEMAS[contributable_type]
    except KeyError:
        raise UnknownContributableType(f"Unknown contributable type: {contributable_type!r}") from None


def get_field(contributable_type: str, name: str) -> Field | None:
    for field in get_schema(contributable_type):
        if field.name == name:
            return field
    return None


def table_name(contributable_type: str) -> str:
    get_schema(contributable_type)
    return _TABLES[contributable_type]


def column_names(contributable_type: str) -> list[str]:
    return [f.name for f in get_schema(contributable_type) if f.column]


def relation_names(contributable_type: str) -> list[str]:
    return [f.name for f in get_schema(contributable_type) if not f.column]


def display_name(contributable_type: str, data: dict) -> str:
    for key in ("title_romaji", "name", "name_romaji", "name_en", "code"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return f"{contributable_type} (untitled)"


def defaults(contributable_type: str) -> dict[str, Any]:
    """Initial values for a blank form of this type."""
    values: dict[str, Any] = {}
    for field in get_schema(contributable_type):
        if field.kind in LIST_KINDS:
            values[field.name] = []
        elif field.kind == "bool":
            values[field.name] = False
        else:
            values[field.name] = ""
    if "country_of_origin" in values:
        values["country_of_origin"] = DEFAULT_COUNTRY.get(contributable_type, "")
    return values


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _as_int(value: Any) -> int | None:
    """Numeric strings become ints; anything else that is not an int is rejected."""
    if isinstance(value, bool):
        raise ValueError("bool is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        return int(raw)
    raise ValueError(f"not an integer: {value!r}")


def _valid_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        _URL.validate_python(value.strip())
    except ValidationError:
        return False
    return True


def _valid_date(value: Any) -> bool:
    if isinstance(value, date):
        return True
    if not isinstance(value, str):
        return False
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def _item_id(item: Any) -> int | None:
    raw = item.get("id") if isinstance(item, dict) else item
    try:
        return _as_int(raw)
    except ValueError:
        return None


def _scalar_error(field: Field, value: Any) -> str | None:
    label = field.display_label
    if field.kind in ("text", "longtext"):
        if not isinstance(value, str):
            return f"{label} must be text."
        if field.min_length and len(value.strip()) < field.min_length:
            return f"{label} must be at least {field.min_length} characters."
    elif field.kind == "int":
        try:
            parsed = _as_int(value)
        except ValueError:
            return f"{label} must be a whole number."
        if parsed is not None and parsed < 0:
            return f"{label} must not be negative."
    elif field.kind == "url":
        if not _valid_url(value):
            return f"{label} must be a valid URL."
    elif field.kind == "date":
        if not _valid_date(value):
            return f"{label} must be a date (YYYY-MM-DD)."
    elif field.kind == "bool":
        if not isinstance(value, bool):
            return f"{label} must be true or false."
    elif field.kind == "enum":
        if value not in field.choices:
            return f"{label} must be one of: {', '.join(field.choices)}."
    return None


def _link_errors(field: Field, items: list, *, translation: bool = False) -> dict[str, str]:
    errors: dict[str, str] = {}
    for i, item in enumerate(items):
        path = f"{field.name}.{i}"
        if not isinstance(item, dict):
            errors[path] = "Each entry must be an object."
            continue
        if _is_blank(item.get("site_name")):
            errors[f"{path}.site_name"] = "Site name is required."
        if not _valid_url(item.get("url")):
            errors[f"{path}.url"] = "URL must be a valid URL."
        if translation:
            status = item.get("status") or "active"
            if status not in TRANSLATION_STATUSES:
                errors[f"{path}.status"] = f"Status must be one of: {', '.join(TRANSLATION_STATUSES)}."
            if not _is_blank(item.get("group_id")) and _item_id(item.get("group_id")) is None:
                errors[f"{path}.group_id"] = "Group must be a valid id."
    return errors


def _relation_errors(field: Field, items: list) -> dict[str, str]:
    errors: dict[str, str] = {}
    seen: set[tuple] = set()
    for i, item in enumerate(items):
        path = f"{field.name}.{i}"
        if field.kind == "episodes":
            if not isinstance(item, dict):
                errors[path] = "Each episode must be an object."
                continue
            try:
                number = _as_int(item.get("episode_number"))
            except ValueError:
                number = None
            if number is None or number < 1:
                errors[f"{path}.episode_number"] = "Episode number must be a positive whole number."
            if not _is_blank(item.get("air_date")) and not _valid_date(item.get("air_date")):
                errors[f"{path}.air_date"] = "Air date must be a date (YYYY-MM-DD)."
            if not _is_blank(item.get("title")) and not isinstance(item.get("title"), str):
                errors[f"{path}.title"] = "Episode title must be text."
            continue

        if field.kind in ("staff", "characters") and not isinstance(item, dict):
            errors[path] = "Each entry must be an object with an id."
            continue
        item_id = _item_id(item)
        if item_id is None:
            errors[path] = "Each entry must reference an existing id."
            continue
        role = item.get("role") if isinstance(item, dict) else None
        if field.kind == "staff" and _is_blank(role):
            errors[f"{path}.role"] = "Staff role is required."
        if field.kind == "characters":
            if (role or "supporting") not in CHARACTER_ROLES:
                errors[f"{path}.role"] = f"Character role must be one of: {', '.join(CHARACTER_ROLES)}."
            voices = (item.get("voice_actors") or {}) if isinstance(item, dict) else {}
            if not isinstance(voices, dict):
                errors[f"{path}.voice_actors"] = "Voice actors must map language to id."
            else:
                for language, va in voices.items():
                    if language not in VOICE_ACTOR_LANGUAGES:
                        errors[f"{path}.voice_actors.{language}"] = "Unsupported voice actor language."
                    elif not _is_blank(va) and _item_id(va) is None:
                        errors[f"{path}.voice_actors.{language}"] = "Voice actor must be a valid id."
        key = (item_id, role if field.kind == "staff" else None)
        if key in seen:
            errors[path] = "Duplicate entry."
        seen.add(key)
    return errors


def field_errors(field: Field, value: Any) -> dict[str, str]:
    """
    Errors for one field value, keyed by dotted path (`official_sites.0.url`).
    """
    label = field.display_label
    if _is_blank(value):
        if field.required:
            if field.kind == "ids":
                return {field.name: f"Select at least {max(field.min_items, 1)} {label.lower()}."}
            return {field.name: f"{label} is required."}
        return {}

    if field.column:
        message = _scalar_error(field, value)
        return {field.name: message} if message else {}

    if not isinstance(value, list):
        return {field.name: f"{label} must be a list."}
    if field.kind == "ids":
        if any(_item_id(v) is None for v in value):
            return {field.name: f"{label} must be a list of ids."}
        if len(value) < field.min_items:
            return {field.name: f"Select at least {field.min_items} {label.lower()}."}
        return {}
    if field.kind in ("links", "fan_translations"):
        return _link_errors(field, value, translation=field.kind == "fan_translations")
    return _relation_errors(field, value)


def validate(contributable_type: str, data: dict) -> dict[str, str]:
    """
    Validate a full contribution payload.

    Returns {field_path: message}; empty means valid. Keys not in the schema
    are ignored here and dropped by `coerce`.
    """
    if not isinstance(data, dict):
        return {"contributionData": "Contribution data must be an object."}
    errors: dict[str, str] = {}
    for field in get_schema(contributable_type):
        errors.update(field_errors(field, data.get(field.name)))
    return errors


def validate_changes(contributable_type: str, proposed_changes: Any) -> dict[str, str]:
    """
    Validate a sparse {field: {old, new}} map from the edit dialog.
    """
    if not isinstance(proposed_changes, dict) or not proposed_changes:
        return {"proposedChanges": "No changes to submit."}

    fields = {f.name: f for f in get_schema(contributable_type)}
    errors: dict[str, str] = {}
    for name, change in proposed_changes.items():
        field = fields.get(name)
        if field is None:
            errors[name] = f"Unknown field for {contributable_type}: {name}."
            continue
        if not isinstance(change, dict) or "new" not in change:
            errors[name] = "Each change must be an object with 'old' and 'new'."
            continue
        errors.update(field_errors(field, change["new"]))
    return errors


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def coerce_value(field: Field, value: Any) -> Any:
    """
    Normalize one (already validated) value: numeric strings become ints,
    blank text/URLs/dates become None, list entries get canonical keys.
    """
    if field.kind in ("text", "longtext", "url", "date", "enum"):
        if _is_blank(value):
            return None
        if isinstance(value, date):
            return value.isoformat()
        return value.strip() if isinstance(value, str) else value
    if field.kind == "int":
        try:
            return _as_int(value)
        except ValueError:
            return None
    if field.kind == "bool":
        return bool(value)

    items = value if isinstance(value, list) else []
    if field.kind == "ids":
        return [i for i in (_item_id(v) for v in items) if i is not None]
    if field.kind in ("links", "fan_translations"):
        out = []
        for item in items:
            entry = {
                "site_name": str(item.get("site_name") or "").strip(),
                "url": str(item.get("url") or "").strip(),
            }
            if field.kind == "fan_translations":
                entry["status"] = item.get("status") or "active"
                entry["group_id"] = _item_id(item.get("group_id")) if not _is_blank(item.get("group_id")) else None
            out.append(entry)
        return out
    if field.kind == "episodes":
        return [
            {
                "season_number": _item_id(item.get("season_number")) or 1,
                "episode_number": _item_id(item.get("episode_number")),
                "title": (item.get("title") or "").strip() or None,
                "air_date": coerce_value(EPISODE_AIR_DATE, item.get("air_date")),
                "duration": _item_id(item.get("duration")),
            }
            for item in items
        ]

    out = []
    for item in items:
        entry = {"id": _item_id(item)}
        if isinstance(item, dict) and item.get("name"):
            entry["name"] = item["name"]
        if field.kind == "studios":
            entry["is_main_studio"] = bool(item.get("is_main_studio")) if isinstance(item, dict) else False
        elif field.kind == "staff":
            entry["role"] = str(item.get("role") or "").strip()
        elif field.kind == "characters":
            entry["role"] = item.get("role") or "supporting"
            voices = item.get("voice_actors") or {}
            entry["voice_actors"] = {
                lang: _item_id(va) for lang, va in voices.items() if not _is_blank(va)
            }
        out.append(entry)
    return out


def coerce(contributable_type: str, data: dict) -> dict[str, Any]:
    """
    Coerced copy of `data` restricted to the schema's fields.
    """
    return {
        field.name: coerce_value(field, data.get(field.name))
        for field in get_schema(contributable_type)
    }


def coerce_changes(contributable_type: str, proposed_changes: dict) -> dict[str, dict]:
    fields = {f.name: f for f in get_schema(contributable_type)}
    return {
        name: {"old": change.get("old"), "new": coerce_value(fields[name], change.get("new"))}
        for name, change in proposed_changes.items()
        if name in fields
    }


# ---------------------------------------------------------------------------
# Moderation rendering
# ---------------------------------------------------------------------------


def detail_view(contributable_type: str, data: dict) -> list[dict[str, Any]]:
    """
    Ordered, labelled fields for the moderation detail page. Blank values are skipped.
    """
    data = data or {}
    return [
        {"name": f.name, "label": f.display_label, "kind": f.kind, "value": data.get(f.name)}
        for f in get_schema(contributable_type)
        if not _is_blank(data.get(f.name))
    ]


def changes_view(contributable_type: str, proposed_changes: dict) -> list[dict[str, Any]]:
    """
    Before/after rows for an edit contribution, in schema order.
    """
    proposed_changes = proposed_changes or {}
    return [
        {
            "name": f.name,
            "label": f.display_label,
            "kind": f.kind,
            "old": proposed_changes[f.name].get("old"),
            "new": proposed_changes[f.name].get("new"),
        }
        for f in get_schema(contributable_type)
        if isinstance(proposed_changes.get(f.name), dict)
    ]
