"""Secret-gated ranking refresh endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

SECRET = "cron-test-secret"


@pytest.fixture
def cron_secret(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", SECRET)
    return SECRET


async def test_missing_header_is_unauthorized(api_client, cron_secret):
    with patch("rankings.repository.refresh_with_status", AsyncMock()) as refresh:
        resp = await api_client.get("/api/cron/refresh-rankings")

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Unauthorized"}
    refresh.assert_not_awaited()


async def test_wrong_secret_is_unauthorized(api_client, cron_secret):
    resp = await api_client.get("/api/cron/refresh-rankings", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


@pytest.mark.parametrize("headers", [{}, {"Authorization": f"Bearer {SECRET}"}])
async def test_unset_secret_is_a_generic_server_error(api_client, monkeypatch, headers):
    monkeypatch.delenv("CRON_SECRET", raising=False)

    resp = await api_client.get("/api/cron/refresh-rankings", headers=headers)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Server configuration error"}


async def test_scheduled_refresh_passes_procedure_status_through(api_client, cron_secret):
    status = {
        "success": True,
        "refreshed": False,
        "message": "Rankings are fresh; skipped.",
        "timestamp": "2025-06-01T00:00:00+00:00",
        "duration_seconds": 0,
        "next_refresh": "2025-06-01T05:00:00+00:00",
    }
    with patch("rankings.repository.refresh_with_status", AsyncMock(return_value=status)):
        resp = await api_client.get("/api/cron/refresh-rankings", headers={"Authorization": f"Bearer {cron_secret}"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["refreshed"] is False
    assert body["next_refresh"] == status["next_refresh"]
    assert isinstance(body["api_duration_seconds"], float)


async def test_procedure_failure_reports_error_and_duration(api_client, cron_secret):
    failing = AsyncMock(side_effect=RuntimeError("relation ranking_media does not exist"))
    with patch("rankings.repository.refresh_with_status", failing):
        resp = await api_client.get("/api/cron/refresh-rankings", headers={"Authorization": f"Bearer {cron_secret}"})

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "relation ranking_media does not exist"
    assert "duration_seconds" in body
    assert "timestamp" in body


async def test_manual_refresh_is_unconditional(api_client, cron_secret):
    with (
        patch("rankings.repository.refresh_all", AsyncMock()) as refresh_all,
        patch("rankings.repository.refresh_with_status", AsyncMock()) as refresh_with_status,
    ):
        resp = await api_client.post("/api/cron/refresh-rankings", headers={"Authorization": f"Bearer {cron_secret}"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["type"] == "manual"
    refresh_all.assert_awaited_once()
    refresh_with_status.assert_not_awaited()
