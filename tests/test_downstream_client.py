"""Tests for the httpx downstream client using a mock transport."""

import json

import httpx
import pytest

from app.adapters.downstream import HttpxDownstreamClient, create_downstream_client
from app.core.config import DownstreamSettings
from app.core.errors import DownstreamAppError

URL = "https://api.example.test/v1/data"


def _client(handler, **kwargs) -> HttpxDownstreamClient:
    return HttpxDownstreamClient(URL, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_forwards_json_and_headers() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"result": "ok"})

    client = _client(handler, api_key="downstream-key", user_agent="test-agent/1.0")

    response = await client.forward({"query": "hello"}, identity="anon_x")

    assert response.status_code == 200
    assert response.body["result"] == "ok"
    assert "processedAt" in response.body
    assert seen["url"] == URL
    assert seen["body"] == {"query": "hello"}
    assert seen["headers"]["authorization"] == "Bearer downstream-key"
    assert seen["headers"]["user-agent"] == "test-agent/1.0"
    assert seen["headers"]["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_passes_through_status_code() -> None:
    client = _client(lambda request: httpx.Response(422, json={"error": "bad input"}))

    response = await client.forward({}, identity="anon_x")

    assert response.status_code == 422
    assert response.body["error"] == "bad input"


@pytest.mark.asyncio
async def test_non_object_body_is_not_annotated() -> None:
    client = _client(lambda request: httpx.Response(200, json=[1, 2, 3]))

    response = await client.forward({}, identity="anon_x")

    assert response.body == [1, 2, 3]


@pytest.mark.asyncio
async def test_timeout_raises_downstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler)

    with pytest.raises(DownstreamAppError) as exc_info:
        await client.forward({}, identity="anon_x")

    assert exc_info.value.code == "downstream_timeout"


@pytest.mark.asyncio
async def test_connect_error_raises_downstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)

    with pytest.raises(DownstreamAppError) as exc_info:
        await client.forward({}, identity="anon_x")

    assert exc_info.value.code == "downstream_unavailable"


@pytest.mark.asyncio
async def test_non_json_response_raises_downstream_error() -> None:
    client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(DownstreamAppError) as exc_info:
        await client.forward({}, identity="anon_x")

    assert exc_info.value.code == "downstream_invalid_response"


@pytest.mark.asyncio
async def test_missing_url_raises_downstream_error() -> None:
    client = create_downstream_client(DownstreamSettings(url=None))

    with pytest.raises(DownstreamAppError):
        await client.forward({}, identity="anon_x")

    await client.close()
