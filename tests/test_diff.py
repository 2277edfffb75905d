from __future__ import annotations

import logging

from contributions.diff import compute_diff, dedupe_by_id, deep_equal


def test_deep_equal_ignores_key_order_but_not_list_order():
    assert deep_equal({"a": 1, "b": [1, {"x": 2, "y": 3}]}, {"b": [1, {"y": 3, "x": 2}], "a": 1})
    assert not deep_equal([1, 2], [2, 1])
    assert not deep_equal({"a": 1}, {"a": 1, "b": None})


def test_deep_equal_keeps_bools_distinct_from_ints():
    assert not deep_equal(True, 1)
    assert not deep_equal(0, False)
    assert deep_equal(False, False)
    assert not deep_equal([], None)


def test_compute_diff_reports_only_changed_fields():
    original = {"id": 3, "title_romaji": "Old", "genre_ids": [1, 2], "updatedAt": "yesterday"}
    current = {"id": 3, "title_romaji": "New", "genre_ids": [1, 2], "updatedAt": "today"}

    assert compute_diff(original, current) == {"title_romaji": {"old": "Old", "new": "New"}}


def test_compute_diff_is_empty_for_equal_snapshots():
    snapshot = {"id": 1, "staff": [{"id": 4, "role": "Director"}], "is_nsfw": False}
    assert compute_diff(snapshot, {"staff": [{"role": "Director", "id": 4}], "is_nsfw": False, "id": 1}) == {}


def test_compute_diff_treats_missing_original_keys_as_none():
    assert compute_diff({}, {"background": "New text"}) == {"background": {"old": None, "new": "New text"}}
    assert compute_diff({}, {"background": None}) == {}


def test_dedupe_by_id_keeps_first_occurrence(caplog):
    items = [{"id": 1, "name": "first"}, {"id": 2}, {"id": 1, "name": "second"}, {"name": "no id"}]

    with caplog.at_level(logging.WARNING, logger="contributions.diff"):
        result = dedupe_by_id(items, label="characters")

    assert result == [{"id": 1, "name": "first"}, {"id": 2}, {"name": "no id"}]
    assert "duplicate_dropped list=characters id=1" in caplog.text


def test_dedupe_by_id_handles_missing_list():
    assert dedupe_by_id(None) == []
