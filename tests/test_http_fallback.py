"""Tests for HttpFallbackClient against httpx.MockTransport."""

import json

import httpx
import pytest

from quotemaker_firestoredb.api.http_fallback import HttpFallbackClient
from quotemaker_firestoredb.utils.error_codes import ErrorCodes


def make_client(handler) -> HttpFallbackClient:
    transport = httpx.MockTransport(handler)
    return HttpFallbackClient(
        base_url="http://api.test", client=httpx.AsyncClient(transport=transport, base_url="http://api.test")
    )


class TestGetCollection:
    @pytest.mark.asyncio
    async def test_bare_list_payload(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json=[{"id": "p1"}, "noise", {"id": "p2"}])

        client = make_client(handler)
        records = await client.get_collection("products")
        await client.aclose()

        assert seen == ["/api/products"]
        assert records == [{"id": "p1"}, {"id": "p2"}]

    @pytest.mark.asyncio
    async def test_wrapped_payload(self):
        client = make_client(lambda request: httpx.Response(200, json={"data": [{"id": "c1"}]}))

        assert await client.get_collection("clients") == [{"id": "c1"}]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unexpected_payload_raises(self):
        client = make_client(lambda request: httpx.Response(200, json="nope"))

        with pytest.raises(ValueError):
            await client.get_collection("clients")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_forbidden_is_a_permission_error(self):
        client = make_client(lambda request: httpx.Response(403, json={"error": "forbidden"}))

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await client.get_collection("products")
        await client.aclose()

        assert ErrorCodes.is_permission_error(exc_info.value)


class TestPostDocument:
    @pytest.mark.asyncio
    async def test_posts_json_and_returns_body(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json={"id": "new-1", "clientName": "Jane"})

        client = make_client(handler)
        saved = await client.post_document("clients", {"clientName": "Jane"})
        await client.aclose()

        assert bodies == [{"clientName": "Jane"}]
        assert saved == {"id": "new-1", "clientName": "Jane"}

    @pytest.mark.asyncio
    async def test_empty_response_echoes_fields(self):
        client = make_client(lambda request: httpx.Response(204))

        assert await client.post_document("clients", {"clientName": "Jane"}) == {"clientName": "Jane"}
        await client.aclose()
