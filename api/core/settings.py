"""
Environment-driven settings.

Every value is read at call time so tests can monkeypatch os.environ.
"""

from __future__ import annotations

import os

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def cors_allow_origins() -> list[str]:
    return env_list("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS)


def log_level() -> str:
    return env_str("LOG_LEVEL", "INFO").upper()


def cron_secret() -> str | None:
    # Unset and blank are the same thing: the refresh endpoints stay closed.
    return env_str("CRON_SECRET") or None


def scan_stale_days() -> int:
    return env_int("SCAN_STALE_DAYS", 90)
