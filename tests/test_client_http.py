from __future__ import annotations

import httpx
import pytest

from client.http import CatalogClient, CatalogClientError


async def test_sends_bearer_token_and_drops_empty_params(catalog_client, recorder):
    recorder.on("GET", "/api/studios", json={"success": True, "studios": []})

    data = await catalog_client.get_json("/api/studios", search="bon", limit=10, language=None)

    assert data == {"success": True, "studios": []}
    request = recorder.requests[0]
    assert request.headers["Authorization"] == "Bearer test-token"
    assert dict(request.url.params) == {"search": "bon", "limit": "10"}


async def test_anonymous_client_sends_no_authorization(anonymous_client, recorder):
    recorder.on("GET", "/api/genres", json={"success": True, "genres": []})

    await anonymous_client.get_json("/api/genres")

    assert "Authorization" not in recorder.requests[0].headers
    assert anonymous_client.is_authenticated is False


async def test_server_error_message_is_kept_verbatim(catalog_client, recorder):
    recorder.on(
        "POST",
        "/api/scan/projects",
        status_code=409,
        json={"success": False, "error": "You have already registered a project for this title."},
    )

    with pytest.raises(CatalogClientError) as excinfo:
        await catalog_client.post_json("/api/scan/projects", {"mediaType": "manga", "mediaId": 3})

    assert excinfo.value.message == "You have already registered a project for this title."
    assert excinfo.value.status_code == 409


async def test_network_failure_becomes_client_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = CatalogClient("http://catalog.test", transport=httpx.MockTransport(handler))

    with pytest.raises(CatalogClientError) as excinfo:
        await client.get_json("/api/genres")
    assert excinfo.value.status_code is None
    assert "connection refused" in excinfo.value.message


def test_base_url_comes_from_environment(monkeypatch):
    monkeypatch.setenv("CATALOG_API_BASE_URL", "https://catalog.example/")
    assert CatalogClient().base_url == "https://catalog.example"
