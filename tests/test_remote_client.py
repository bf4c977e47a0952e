# tests/test_remote_client.py

from __future__ import annotations

import httpx
import pytest

from taskly.remote.client import RemoteClient
from taskly.remote.errors import RequestFailed, SessionExpired, Unreachable


def _client(handler) -> RemoteClient:
    return RemoteClient("http://taskly.test/api/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_request_sends_json_and_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "tasks": []})

    client = _client(handler)
    data = await client.request("/tasks", "post", {"title": "x"}, token="tok-1")
    await client.aclose()

    assert data == {"success": True, "tasks": []}
    req = seen[0]
    assert req.method == "POST"
    assert str(req.url) == "http://taskly.test/api/tasks"
    assert req.headers["Authorization"] == "Bearer tok-1"
    assert req.headers["Content-Type"] == "application/json"
    assert req.content == b'{"title":"x"}' or req.content == b'{"title": "x"}'


@pytest.mark.asyncio
async def test_no_token_means_no_authorization_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    client = _client(handler)
    await client.request("/login", "POST", {"email": "a@b.co", "password": "p"})
    await client.aclose()

    assert "Authorization" not in seen[0].headers


@pytest.mark.asyncio
async def test_401_raises_session_expired() -> None:
    client = _client(lambda request: httpx.Response(401, json={"error": "expired"}))
    with pytest.raises(SessionExpired):
        await client.request("/profile", token="old")
    await client.aclose()


@pytest.mark.asyncio
async def test_error_status_raises_request_failed_with_server_message() -> None:
    client = _client(lambda request: httpx.Response(422, json={"message": "title required"}))
    with pytest.raises(RequestFailed) as exc:
        await client.request("/tasks", "POST", {})
    await client.aclose()

    assert exc.value.status == 422
    assert exc.value.message == "title required"


@pytest.mark.asyncio
async def test_transport_failure_raises_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(Unreachable):
        await client.request("/tasks")
    await client.aclose()


@pytest.mark.asyncio
async def test_empty_and_malformed_bodies() -> None:
    client = _client(lambda request: httpx.Response(204))
    assert await client.request("/tasks/1", "DELETE", token="t") == {"success": True}
    await client.aclose()

    client = _client(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(RequestFailed):
        await client.request("/tasks")
    await client.aclose()

    client = _client(lambda request: httpx.Response(200, json=[1, 2]))
    with pytest.raises(RequestFailed):
        await client.request("/tasks")
    await client.aclose()
