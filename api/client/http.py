"""
HTTP client for the catalog API, used by the client-side flows.

Every non-2xx response becomes a CatalogClientError carrying the server's
`error` string verbatim, so callers can show it to the user unchanged.
"""

from __future__ import annotations

from typing import Any

import httpx

from core import settings

DEFAULT_BASE_URL = "http://localhost:8000"


class CatalogClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def default_base_url() -> str:
    return settings.env_str("CATALOG_API_BASE_URL", DEFAULT_BASE_URL)


def _normalize_base_url(base_url: str) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise CatalogClientError("Catalog API base URL is empty.")
    return base_url.rstrip("/")


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("error", "detail", "message"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value
    # Avoid dumping huge bodies; include a small snippet.
    body = resp.text[:300].strip()
    return body or f"Request failed with status {resp.status_code}."


class CatalogClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        access_token: str | None = None,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = _normalize_base_url(base_url or default_base_url())
        self.access_token = access_token
        self.timeout_s = timeout_s
        self._transport = transport

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def _headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_s,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, params=clean_params, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            raise CatalogClientError(f"Network error calling {path}: {exc}") from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            raise CatalogClientError(_error_message(resp), status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise CatalogClientError(f"Invalid JSON from {path}.", status_code=resp.status_code) from exc
        if not isinstance(data, dict):
            raise CatalogClientError(f"Unexpected response shape from {path}.", status_code=resp.status_code)
        if data.get("success") is False:
            raise CatalogClientError(_error_message(resp), status_code=resp.status_code)
        return data

    async def get_json(self, path: str, **params: Any) -> dict[str, Any]:
        return await self.request_json("GET", path, params=params)

    async def post_json(self, path: str, payload: Any) -> dict[str, Any]:
        return await self.request_json("POST", path, json=payload)

    async def put_json(self, path: str, payload: Any) -> dict[str, Any]:
        return await self.request_json("PUT", path, json=payload)

    async def patch_json(self, path: str, payload: Any) -> dict[str, Any]:
        return await self.request_json("PATCH", path, json=payload)

    async def delete_json(self, path: str) -> dict[str, Any]:
        return await self.request_json("DELETE", path)
