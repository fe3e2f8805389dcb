# tests/test_http_client.py
from __future__ import annotations

from typing import List

import httpx
import pytest

from remote_deploy.utils.http_client import HttpClient, HttpResponse


@pytest.mark.anyio
async def test_request_returns_status_and_full_body_without_raising_on_error_status() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(503, text="busy")

    http = HttpClient(timeout_seconds=3, transport=httpx.MockTransport(handler))
    resp = await http.request("POST", "http://deploy.test/x", headers={"X-Deploy-Token": "t"}, content="{}")

    assert resp == HttpResponse(status_code=503, body="busy")
    assert seen[0].method == "POST"
    assert seen[0].headers["X-Deploy-Token"] == "t"
    assert seen[0].content == b"{}"


@pytest.mark.anyio
async def test_request_does_not_follow_redirects() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": "http://elsewhere.test/"})

    http = HttpClient(transport=httpx.MockTransport(handler))
    resp = await http.request("GET", "http://deploy.test/x")
    assert resp.status_code == 302


@pytest.mark.anyio
async def test_request_propagates_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    http = HttpClient(transport=httpx.MockTransport(handler))
    with pytest.raises(httpx.ConnectError):
        await http.request("GET", "http://deploy.test/x")


def test_http_response_json_parses_body() -> None:
    assert HttpResponse(status_code=200, body='{"a": 1}').json() == {"a": 1}


@pytest.mark.anyio
async def test_stream_yields_open_response_for_incremental_reads() -> None:
    async def body():
        yield b"event: output\n"
        yield b"data: hi\n\n"

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Accept"] == "text/event-stream"
        return httpx.Response(200, content=body())

    http = HttpClient(transport=httpx.MockTransport(handler))
    chunks: List[str] = []
    async with http.stream("http://deploy.test/s", headers={"Accept": "text/event-stream"}) as resp:
        assert resp.status_code == 200
        async for chunk in resp.aiter_text():
            chunks.append(chunk)

    assert "".join(chunks) == "event: output\ndata: hi\n\n"
