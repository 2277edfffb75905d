"""Shared fixtures: an in-process API client and fake authenticated users."""

from __future__ import annotations

from typing import AsyncGenerator, Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

import main
from auth import dependencies as auth_dependencies
from client.http import CatalogClient

READER = {"id": 7, "email": "reader@example.com", "username": "reader", "roles": []}
MODERATOR = {"id": 2, "email": "mod@example.com", "username": "mod", "roles": ["moderator"]}
SCANLATOR = {"id": 9, "email": "scan@example.com", "username": "scanner", "roles": ["scan"]}


@pytest.fixture
def login() -> Callable[[dict], None]:
    """Authenticate every request as the given user (bypasses JWT decoding)."""

    def _login(user: dict) -> None:
        main.app.dependency_overrides[auth_dependencies.get_current_user] = lambda: user

    yield _login
    main.app.dependency_overrides.clear()


@pytest.fixture
async def api_client() -> AsyncGenerator[AsyncClient, None]:
    # ASGITransport does not run the lifespan, so no DB pool is opened.
    transport = ASGITransport(app=main.app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class Recorder:
    """httpx MockTransport handler that records requests and replays canned responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, method: str, path: str, status_code: int = 200, json: object = None) -> None:
        self.routes[(method, path)] = lambda request: httpx.Response(status_code, json=json)

    def on_call(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"success": False, "error": "Not Found"})
        return handler(request)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def catalog_client(recorder: Recorder) -> CatalogClient:
    return CatalogClient(
        "http://catalog.test",
        access_token="test-token",
        transport=httpx.MockTransport(recorder),
    )


@pytest.fixture
def anonymous_client(recorder: Recorder) -> CatalogClient:
    return CatalogClient("http://catalog.test", transport=httpx.MockTransport(recorder))
