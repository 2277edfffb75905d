"""
Ranking refresh procedures (see db/migrations).
"""

from __future__ import annotations

from typing import Any

from core import db


async def refresh_with_status() -> dict[str, Any]:
    """
    Throttled refresh. The procedure decides whether the views are stale and
    reports what it did as JSON.
    """
    result = db.json_value(await db.fetch_val("SELECT refresh_rankings_with_status() AS result"))
    return result if isinstance(result, dict) else {"success": True, "result": result}


async def refresh_all() -> None:
    await db.execute("SELECT refresh_all_ranking_views()")
