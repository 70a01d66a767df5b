"""HTTP adapter for the community recipe backend."""

from typing import Any

import httpx

from recipe_market.adapters.community.base import AbstractCommunityClient
from recipe_market.core.errors import RemoteServiceAppError


class HttpCommunityClient(AbstractCommunityClient):
    """Client for the community backend's REST endpoints.

    Uses a shared ``httpx.AsyncClient`` so connections are pooled across calls.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            base_url: Backend root URL (e.g., "https://community.example.com").
            api_key: Optional bearer token sent with every request.
            timeout_seconds: Timeout for requests in seconds.
            transport: Optional transport override (used by tests).
        """
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self.client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RemoteServiceAppError(
                code="community_backend_error",
                message=f"Community backend returned {exc.response.status_code}",
                details={"upstream_status": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteServiceAppError(
                code="community_backend_unreachable",
                message=f"Community backend request failed: {type(exc).__name__}",
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceAppError(
                code="community_backend_invalid_json",
                message="Community backend returned invalid JSON",
            ) from exc

    async def fetch_listing(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/recipes", params={"published": "true"})
        if not isinstance(data, list):
            raise RemoteServiceAppError(
                code="community_backend_invalid_listing",
                message="Community listing must be a JSON array",
            )
        return data

    async def publish_recipe(self, recipe: dict[str, Any], *, client_id: str) -> dict[str, Any]:
        return await self._request(
            "POST", "/recipes", json={**recipe, "author_id": client_id, "published": True}
        )

    async def toggle_favorite(self, recipe_id: str, *, client_id: str) -> dict[str, Any]:
        return await self._request(
            "POST", f"/recipes/{recipe_id}/favorite", json={"user_id": client_id}
        )

    async def increment_usage(self, recipe_id: str) -> dict[str, Any]:
        return await self._request("POST", f"/recipes/{recipe_id}/usage")

    async def aclose(self) -> None:
        await self.client.aclose()
