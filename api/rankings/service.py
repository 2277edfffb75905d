"""
Secret-gated ranking refresh.

Both endpoints require `Authorization: Bearer <CRON_SECRET>`. When the
secret is not configured the endpoints answer 500 with a generic message,
whatever header was sent.
"""

from __future__ import annotations

import hmac
import logging
import time
from datetime import datetime, timezone

from fastapi import status
from fastapi.responses import JSONResponse

from core import settings
from core.errors import AuthenticationRequired, UpstreamFailure

from . import repository

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def check_cron_secret(authorization: str | None) -> None:
    secret = settings.cron_secret()
    if secret is None:
        logger.error("ranking_refresh_misconfigured reason=CRON_SECRET_unset")
        raise UpstreamFailure("Server configuration error")

    expected = f"Bearer {secret}".encode("utf-8")
    presented = (authorization or "").strip().encode("utf-8")
    if not hmac.compare_digest(presented, expected):
        logger.warning("ranking_refresh_unauthorized")
        raise AuthenticationRequired("Unauthorized")


def _failure(exc: Exception, started: float, *, message: str) -> JSONResponse:
    duration = round(time.perf_counter() - started, 3)
    logger.exception("ranking_refresh_failed duration_s=%s", duration)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": str(exc) or exc.__class__.__name__,
            "message": message,
            "duration_seconds": duration,
            "timestamp": _now_iso(),
        },
    )


async def scheduled_refresh(authorization: str | None) -> dict | JSONResponse:
    check_cron_secret(authorization)
    started = time.perf_counter()
    try:
        result = await repository.refresh_with_status()
    except Exception as exc:
        return _failure(exc, started, message="Ranking refresh failed")

    duration = round(time.perf_counter() - started, 3)
    logger.info("ranking_refresh_scheduled refreshed=%s duration_s=%s", result.get("refreshed"), duration)
    return {**result, "api_duration_seconds": duration}


async def manual_refresh(authorization: str | None) -> dict | JSONResponse:
    # TODO: also require an admin session here; the shared secret is the only gate today.
    check_cron_secret(authorization)
    started = time.perf_counter()
    try:
        await repository.refresh_all()
    except Exception as exc:
        return _failure(exc, started, message="Manual ranking refresh failed")

    duration = round(time.perf_counter() - started, 3)
    logger.info("ranking_refresh_manual duration_s=%s", duration)
    return {
        "success": True,
        "message": "Rankings refreshed",
        "timestamp": _now_iso(),
        "duration_seconds": duration,
        "type": "manual",
    }
