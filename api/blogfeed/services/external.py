from __future__ import annotations

from functools import lru_cache
from typing import Any

import httpx

from blogfeed.core.config import get_settings


class ExternalContentError(Exception):
    """Raised when the external content API cannot serve a request."""


class ExternalContentClient:
    """Read-only client for the supplemental posts API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def list_posts(
        self,
        *,
        page: int = 1,
        limit: int = 6,
        category: str | None = None,
        keyword: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if category:
            params["category"] = category
        if keyword:
            params["keyword"] = keyword

        payload = await self._get_json("/posts", params=params)
        if isinstance(payload, list):
            posts = payload
            payload = {}
        elif isinstance(payload, dict):
            posts = payload.get("posts")
        else:
            posts = None
        if not isinstance(posts, list):
            raise ExternalContentError("external posts payload has no post list")

        return {
            "posts": [post for post in posts if isinstance(post, dict)],
            "currentPage": payload.get("currentPage") or page,
            "totalPages": payload.get("totalPages"),
            "totalPosts": payload.get("totalPosts"),
        }

    async def get_post(self, post_id: str) -> dict[str, Any] | None:
        try:
            payload = await self._get_json(f"/posts/{post_id}")
        except _NotFound:
            return None
        if not isinstance(payload, dict):
            raise ExternalContentError("external post payload is not an object")
        # Some deployments wrap single posts as {"data": {...}}.
        data = payload.get("data")
        if isinstance(data, dict) and "id" in data:
            return data
        return payload

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise ExternalContentError(f"external content API unreachable: {exc}") from exc

        if response.status_code == 404:
            raise _NotFound(path)
        if response.status_code >= 400:
            raise ExternalContentError(f"external content API request failed with status {response.status_code}")

        try:
            return response.json()
        except ValueError as exc:
            raise ExternalContentError("external content API returned invalid JSON") from exc


class _NotFound(ExternalContentError):
    pass


@lru_cache
def get_external_client() -> ExternalContentClient:
    settings = get_settings()
    return ExternalContentClient(
        settings.external_api_base_url,
        timeout_seconds=settings.external_api_timeout_seconds,
    )
