"""Tests for HttpCommunityClient using an in-process httpx transport."""

import json

import httpx
import pytest

from recipe_market.adapters.community.http_client import HttpCommunityClient
from recipe_market.core.errors import RemoteServiceAppError


def _client(handler) -> HttpCommunityClient:
    return HttpCommunityClient(
        base_url="http://community.test",
        api_key="secret-token",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_fetch_listing_requests_published_recipes() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": "item1"}])

    client = _client(handler)
    try:
        assert await client.fetch_listing() == [{"id": "item1"}]
    finally:
        await client.aclose()

    assert seen[0].url.path == "/recipes"
    assert seen[0].url.params["published"] == "true"
    assert seen[0].headers["Authorization"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_publish_sends_author_and_published_flag() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(201, json={"id": "r1", **body})

    client = _client(handler)
    try:
        row = await client.publish_recipe({"name": "Poster"}, client_id="client:a")
    finally:
        await client.aclose()

    assert row["author_id"] == "client:a"
    assert row["published"] is True


@pytest.mark.asyncio
async def test_favorite_and_usage_paths() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={"ok": True})

    client = _client(handler)
    try:
        await client.toggle_favorite("app1", client_id="client:a")
        await client.increment_usage("app1")
    finally:
        await client.aclose()

    assert paths == ["/recipes/app1/favorite", "/recipes/app1/usage"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "code"),
    [
        (httpx.Response(503, text="busy"), "community_backend_error"),
        (httpx.Response(200, text="<html>"), "community_backend_invalid_json"),
        (httpx.Response(200, json={"rows": []}), "community_backend_invalid_listing"),
    ],
)
async def test_backend_failures_map_to_remote_errors(response: httpx.Response, code: str) -> None:
    client = _client(lambda request: response)
    try:
        with pytest.raises(RemoteServiceAppError) as exc_info:
            await client.fetch_listing()
    finally:
        await client.aclose()

    assert exc_info.value.code == code


@pytest.mark.asyncio
async def test_transport_error_maps_to_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    try:
        with pytest.raises(RemoteServiceAppError) as exc_info:
            await client.increment_usage("app1")
    finally:
        await client.aclose()

    assert exc_info.value.code == "community_backend_unreachable"
