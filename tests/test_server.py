"""Tests for MCP server tools using FastMCP in-memory testing."""

import json
from collections.abc import AsyncGenerator

import httpx
import pytest
from fastmcp import Client

from quick_search.orchestrator import create_components
from quick_search.transport import FetchTransport

HN_PAYLOAD = {"nbHits": 120, "hits": [{"title": "Show HN", "url": "https://example.com", "author": "pg", "points": 3, "num_comments": 1, "objectID": "9"}]}


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "hn.algolia.com":
        return httpx.Response(200, json=HN_PAYLOAD)
    if request.url.host == "www.reddit.com":
        return httpx.Response(403)
    return httpx.Response(500)


@pytest.fixture
def components(store):
    transport = FetchTransport(credentials=store, http_transport=httpx.MockTransport(_handler))
    return create_components(store=store, transport=transport)


@pytest.fixture
async def client(components) -> AsyncGenerator[Client, None]:
    """Create an in-memory FastMCP client over mocked sources."""
    from quick_search.server import serve

    app = serve(components)

    async with Client(app) as client:
        yield client


def _payload(result):
    assert result.content is not None
    assert len(result.content) > 0
    return json.loads(result.content[0].text)


@pytest.mark.anyio
class TestTools:
    async def test_list_tools(self, client: Client):
        tools = {tool.name for tool in await client.list_tools()}
        assert {"aggregate_search", "search_source", "list_sources", "auth_status", "logout_source", "web_search"} <= tools

    async def test_aggregate_search(self, client: Client):
        data = _payload(await client.call_tool("aggregate_search", {"query": "python"}))

        assert data["ok"] is True
        results = data["results"]
        assert set(results) == {"github", "linuxdo", "x", "stackoverflow", "reddit", "hackernews"}
        assert results["hackernews"]["totalCount"] == 120
        assert results["hackernews"]["results"][0]["snippet"] == "by pg · 3 points · 1 comments"
        assert results["reddit"]["needsLogin"] is True
        assert results["x"]["needsLogin"] is True
        assert results["github"]["error"] == "HTTP 500"
        assert results["github"]["needsLogin"] is False

    async def test_aggregate_search_rejects_blank_query(self, client: Client):
        assert _payload(await client.call_tool("aggregate_search", {"query": "   "})) == {"ok": False, "results": {}}

    async def test_search_source(self, client: Client):
        data = _payload(await client.call_tool("search_source", {"query": "python", "source_id": "hackernews"}))
        assert list(data["results"]) == ["hackernews"]
        assert data["results"]["hackernews"]["error"] is None

    async def test_list_sources(self, client: Client):
        data = _payload(await client.call_tool("list_sources", {}))
        assert [s["id"] for s in data] == ["github", "linuxdo", "x", "stackoverflow", "reddit", "hackernews"]

    async def test_auth_status_and_logout(self, client: Client, store):
        store.merge("reddit", [{"name": "reddit_session", "value": "s", "domain": ".reddit.com", "path": "/"}])

        assert _payload(await client.call_tool("auth_status", {}))["reddit"] is True

        data = _payload(await client.call_tool("logout_source", {"source_id": "reddit"}))
        assert data == {"sourceId": "reddit", "cleared": True}
        assert _payload(await client.call_tool("auth_status", {}))["reddit"] is False

    async def test_logout_unknown_source(self, client: Client):
        data = _payload(await client.call_tool("logout_source", {"source_id": "myspace"}))
        assert data["cleared"] is False

    async def test_web_search(self, client: Client):
        default = _payload(await client.call_tool("web_search", {"query": "a b"}))
        assert default["ok"] is True
        assert default["url"].endswith("a%20b")

        own = _payload(await client.call_tool("web_search", {"query": "a b", "source_id": "github"}))
        assert own["url"] == "https://github.com/search?q=a%20b&type=repositories"

        assert _payload(await client.call_tool("web_search", {"query": ""})) == {"ok": False, "url": None}
