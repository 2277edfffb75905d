"""
Field-level change detection for edit contributions.

`compute_diff(original, current)` yields the sparse `proposedChanges` map
({field: {"old": ..., "new": ...}}) that is sent to the server as-is.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

logger = logging.getLogger(__name__)

IGNORED_KEYS = frozenset({"id", "createdAt", "updatedAt", "created_at", "updated_at"})


def deep_equal(a: Any, b: Any) -> bool:
    """
    Structural equality: dict key order is ignored, list order is not,
    and True/1 or False/0 are different values.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a is b
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, (dict, list, tuple)) or isinstance(b, (dict, list, tuple)):
        return False
    return a == b


def compute_diff(
    original: dict[str, Any],
    current: dict[str, Any],
    *,
    ignored: Iterable[str] = IGNORED_KEYS,
) -> dict[str, dict[str, Any]]:
    skip = set(ignored)
    changes: dict[str, dict[str, Any]] = {}
    for key, new_value in current.items():
        if key in skip:
            continue
        old_value = original.get(key)
        if not deep_equal(old_value, new_value):
            changes[key] = {"old": old_value, "new": new_value}
    return changes


def dedupe_by_id(items: list[Any] | None, *, label: str = "items") -> list[Any]:
    """
    Keep the first element for each id; later duplicates are dropped with a warning.

    Elements without an id are kept as-is.
    """
    seen: set[Any] = set()
    result: list[Any] = []
    for item in items or []:
        item_id = item.get("id") if isinstance(item, dict) else None
        if item_id is not None:
            if item_id in seen:
                logger.warning("duplicate_dropped list=%s id=%s", label, item_id)
                continue
            seen.add(item_id)
        result.append(item)
    return result
