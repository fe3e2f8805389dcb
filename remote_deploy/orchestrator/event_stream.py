"""
remote_deploy/orchestrator/event_stream.py

WHAT THIS FILE IS FOR
---------------------
This module observes a running execution through its push-based event
stream and resolves with the terminal result.

    GET {base}{prefix}/deploy/{app_id}/stream/{execution_id}
        Accept: text/event-stream

It is responsible for:
- Feeding received text through EventStreamParser
- Forwarding every `output` line to the live console view as it arrives
  and accumulating it for the final result
- Resolving immediately on the `complete` event
- Reconciling with ONE status check when the peer closes the stream
  without a `complete` event
- Enforcing the total timeout with a watchdog task
- Logging (never acting on) idle streams

SESSION MODEL
-------------
One call to observe() == one observation session:

    reader task   : owns the connection, parses, dispatches
    watchdog task : wakes every `stream_check_interval_seconds`,
                    compares elapsed time with the timeout and, on
                    expiry, cancels the reader (closing the connection)

Only the reader appends to the session's output; the session result is
read once, after the reader finished or was cancelled.

TIMEOUT SEMANTICS
-----------------
On expiry the session resolves with
    {status: "timeout", exit_code: -1, output: <accumulated>}
without querying the remote service. Resolution is up to one check
interval late.

ERROR HANDLING RULES
--------------------
Every failure of the session is raised as StreamError (cause chained):
- cannot connect / connection dropped mid-stream
- non-200 initial response
- malformed `complete` payload (ProtocolError)
- failed end-of-stream reconciliation (StatusError)

Deciding to fall back to polling is the caller's job (DeployRunner).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, List

import click
import httpx
import structlog

from remote_deploy.orchestrator.endpoints import TOKEN_HEADER, DeployEndpoints
from remote_deploy.orchestrator.errors import ProtocolError, StatusError, StreamError
from remote_deploy.orchestrator.status_checker import StatusChecker
from remote_deploy.orchestrator.status_normalizer import STATUS_TIMEOUT, TIMEOUT_EXIT_CODE
from remote_deploy.schemas.deploy_schemas import DeployResult
from remote_deploy.utils.http_client import HttpClient
from remote_deploy.utils.settings import Settings
from remote_deploy.utils.sse_parser import (
    CompleteEvent,
    EventStreamParser,
    OutputEvent,
)

logger = structlog.get_logger(__name__)


@dataclass
class _ObservationSession:
    started_at: float
    last_activity_at: float
    output_lines: List[str] = field(default_factory=list)
    timed_out: bool = False

    def joined_output(self) -> str:
        return "\n".join(self.output_lines)


class EventStreamObserver:
    """
    Push-based observer for one execution.

    `on_output` receives each output line as soon as it is parsed
    (defaults to echoing it on stdout).
    """

    def __init__(
        self,
        settings: Settings,
        http: HttpClient,
        status_checker: StatusChecker,
        on_output: Callable[[str], None] = click.echo,
    ):
        self.settings = settings
        self.http = http
        self.status_checker = status_checker
        self.on_output = on_output
        self.endpoints = DeployEndpoints.from_settings(settings)

    async def observe(self, app_id: str, execution_id: str, timeout_seconds: float) -> DeployResult:
        loop = asyncio.get_running_loop()
        now = loop.time()
        session = _ObservationSession(started_at=now, last_activity_at=now)

        reader = asyncio.create_task(self._consume(app_id, execution_id, session))
        watchdog = asyncio.create_task(self._watch(reader, session, timeout_seconds, execution_id))
        try:
            return await reader
        except asyncio.CancelledError:
            if not session.timed_out:
                raise
            logger.warning(
                "stream_timeout",
                execution_id=execution_id,
                timeout_seconds=timeout_seconds,
                lines_received=len(session.output_lines),
            )
            return DeployResult(
                status=STATUS_TIMEOUT,
                exit_code=TIMEOUT_EXIT_CODE,
                output=session.joined_output(),
            )
        finally:
            watchdog.cancel()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    async def _consume(self, app_id: str, execution_id: str, session: _ObservationSession) -> DeployResult:
        loop = asyncio.get_running_loop()
        url = self.endpoints.stream(app_id, execution_id)
        headers = {
            "Accept": "text/event-stream",
            TOKEN_HEADER: self.settings.token,
        }
        parser = EventStreamParser()
        logger.debug("stream_connecting", url=url, execution_id=execution_id)

        try:
            async with self.http.stream(url, headers=headers) as resp:
                if resp.status_code != 200:
                    raise StreamError(f"Stream failed with HTTP {resp.status_code}")

                async for chunk in resp.aiter_text():
                    session.last_activity_at = loop.time()
                    for event in parser.feed(chunk):
                        if isinstance(event, OutputEvent):
                            self.on_output(event.text)
                            session.output_lines.append(event.text)
                        elif isinstance(event, CompleteEvent):
                            logger.info(
                                "stream_complete_event",
                                execution_id=execution_id,
                                status=event.status,
                                exit_code=event.exit_code,
                            )
                            return DeployResult(
                                status=event.status,
                                exit_code=event.exit_code,
                                output=session.joined_output(),
                            )
                        else:
                            logger.debug("stream_event_ignored", event_name=event.name, data=event.data[:200])
        except ProtocolError as exc:
            raise StreamError(str(exc)) from exc
        except httpx.HTTPError as exc:
            raise StreamError(f"Stream connection failed: {exc}") from exc

        return await self._reconcile(app_id, execution_id, session, discarded=parser.pending)

    async def _reconcile(
        self,
        app_id: str,
        execution_id: str,
        session: _ObservationSession,
        discarded: str,
    ) -> DeployResult:
        logger.info(
            "stream_ended_without_complete",
            execution_id=execution_id,
            lines_received=len(session.output_lines),
            discarded_chars=len(discarded),
        )
        try:
            envelope = await self.status_checker.check(app_id, execution_id)
        except StatusError as exc:
            raise StreamError(f"Stream ended and final status check failed: {exc}") from exc

        return DeployResult(
            status=envelope.status,
            exit_code=envelope.exit_code,
            output=envelope.output or session.joined_output(),
        )

    async def _watch(
        self,
        reader: "asyncio.Task[DeployResult]",
        session: _ObservationSession,
        timeout_seconds: float,
        execution_id: str,
    ) -> None:
        loop = asyncio.get_running_loop()
        interval = self.settings.stream_check_interval_seconds
        idle_threshold = self.settings.stream_idle_warning_seconds

        while not reader.done():
            await asyncio.sleep(interval)
            if reader.done():
                return
            now = loop.time()
            elapsed = now - session.started_at
            idle = now - session.last_activity_at

            if elapsed >= timeout_seconds:
                session.timed_out = True
                reader.cancel()
                return
            if idle > idle_threshold:
                # Advisory only: no reconnect.
                logger.info(
                    "stream_idle",
                    execution_id=execution_id,
                    idle_seconds=round(idle),
                    detail="stream might have disconnected",
                )
