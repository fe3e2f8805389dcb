"""
remote_deploy/utils/http_client.py

WHAT THIS FILE IS FOR
---------------------
This module provides the minimal asynchronous HTTP transport used by
every component that talks to the remote deployment service.

It exists to:
- Centralize outbound HTTP behavior (request/response + streaming GET)
- Standardize timeout handling
- Avoid scattering raw `httpx.AsyncClient(...)` construction across
  the orchestrator layer
- Allow tests to inject an alternative httpx transport
  (httpx.MockTransport / httpx.ASGITransport)

This client is intentionally kept *very thin*.

WHAT THIS FILE IS NOT FOR
-------------------------
This module is NOT responsible for:
- Retry logic (the trigger is never retried; polling retries live in
  CompletionPoller)
- URL templating (see orchestrator/endpoints.py)
- Response validation or error translation

Those responsibilities belong to higher-level components
(DeployTrigger, StatusChecker, EventStreamObserver).

TWO ACCESS PATTERNS
-------------------
- request():
    * one request, body read in full, resolved as HttpResponse
    * bounded by `timeout_seconds` (connect + read)
    * used by trigger and status checks

- stream():
    * async context manager yielding the open httpx.Response
    * connect timeout only; NO read timeout (the stream is long-lived
      and its deadline is enforced by the observer's watchdog)
    * used by the event stream observer only

Redirects are not followed (httpx default).
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional, Union

import httpx

TimeoutType = Union[float, httpx.Timeout]


@dataclass(frozen=True)
class HttpResponse:
    """
    Fully-received response: status code + decoded body text.
    """

    status_code: int
    body: str

    def json(self) -> Any:
        return json.loads(self.body)


class HttpClient:
    """
    Minimal asynchronous HTTP client wrapper over httpx.

    It intentionally:
    - Does NOT add retries
    - Does NOT interpret response payloads
    - Does NOT raise on non-2xx statuses

    Raises:
        httpx.HTTPError:
            Any network-level error (connect failure, timeout, dropped
            connection). Caller is responsible for translating it into
            a domain-specific error.
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self, timeout: TimeoutType) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[str] = None,
    ) -> HttpResponse:
        """
        Perform one request and resolve once the entire body is received.

        `content` is sent verbatim (callers serialize JSON themselves so
        the wire bytes are fully under their control).
        """
        async with self._client(self.timeout_seconds) as client:
            resp = await client.request(method, url, headers=headers or {}, content=content)
            return HttpResponse(status_code=resp.status_code, body=resp.text)

    @asynccontextmanager
    async def stream(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> AsyncIterator[httpx.Response]:
        """
        Open a long-lived GET and yield the response with its body unread.

        Leaving the context (normally, on error, or on cancellation)
        closes the connection.
        """
        timeout = httpx.Timeout(self.timeout_seconds, read=None)
        async with self._client(timeout) as client:
            async with client.stream("GET", url, headers=headers or {}) as resp:
                yield resp
