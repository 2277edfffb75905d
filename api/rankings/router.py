"""
Cron endpoint for ranking materialized-view refresh.
"""

from __future__ import annotations

from fastapi import APIRouter, Header

from . import service

router = APIRouter(prefix="/api/cron")


@router.get("/refresh-rankings", response_model=None)
async def scheduled_refresh(authorization: str | None = Header(default=None)):
    return await service.scheduled_refresh(authorization)


@router.post("/refresh-rankings", response_model=None)
async def manual_refresh(authorization: str | None = Header(default=None)):
    return await service.manual_refresh(authorization)
