"""
remote_deploy/orchestrator/deploy_runner.py

WHAT THIS FILE IS FOR
---------------------
This module sequences one trigger-and-observe cycle and reports its
result to the pipeline.

CALL FLOW
---------
DeployRunner.run()
  1) validate required inputs            (InputError, no network call)
  2) DeployTrigger.trigger()              (fatal on failure)
       -> output `execution-id`
  3) wait == false -> output `status=pending`, stop
  4) EventStreamObserver.observe()
       StreamError -> CompletionPoller.wait()   (same execution id)
  5) truncate output
  6) outputs `status`, `exit-code`, `output`
  7) status -> success / failure of the run

Exactly one observation session runs at a time: the poller only starts
after the stream session has failed.

ERROR HANDLING RULES
--------------------
- Errors before the wait phase (input, trigger, protocol) abort the run:
  sink.set_failed("❌ Action failed: <error>")
- StreamError becomes a fallback to polling, never a run failure
- Poll errors are absorbed by the poller itself
- Timeout / non-success statuses fail the run through
  resolve_run_outcome()
"""

from __future__ import annotations

from typing import Callable, Optional

import click
import structlog

from remote_deploy.orchestrator.completion_poller import CompletionPoller
from remote_deploy.orchestrator.deploy_trigger import DeployTrigger
from remote_deploy.orchestrator.errors import DeployActionError, InputError, StreamError
from remote_deploy.orchestrator.event_stream import EventStreamObserver
from remote_deploy.orchestrator.run_banner import RULE, RunBannerAssembler
from remote_deploy.orchestrator.status_checker import StatusChecker
from remote_deploy.orchestrator.status_normalizer import (
    STATUS_PENDING,
    format_exit_code,
    resolve_run_outcome,
)
from remote_deploy.schemas.deploy_schemas import DeployResult
from remote_deploy.utils.http_client import HttpClient
from remote_deploy.utils.output_shaping import truncate_output
from remote_deploy.utils.result_sink import ResultSink
from remote_deploy.utils.settings import Settings, missing_required_inputs

logger = structlog.get_logger(__name__)


class DeployRunner:
    """
    Orchestrates trigger -> (stream, else poll) -> shaping -> reporting.

    `echo` is the live console view (deployment output and progress lines).
    """

    def __init__(
        self,
        settings: Settings,
        sink: ResultSink,
        http: Optional[HttpClient] = None,
        echo: Callable[[str], None] = click.echo,
    ):
        self.settings = settings
        self.sink = sink
        self.echo = echo
        self.http = http or HttpClient(timeout_seconds=settings.http_timeout_seconds)

        self.trigger = DeployTrigger(settings, self.http)
        self.status_checker = StatusChecker(settings, self.http)
        self.observer = EventStreamObserver(settings, self.http, self.status_checker, on_output=echo)
        self.poller = CompletionPoller(settings, self.status_checker)

    async def run(self) -> Optional[DeployResult]:
        """
        Returns the reported result, or None when the run aborted before
        the wait phase.
        """
        try:
            return await self._run()
        except DeployActionError as exc:
            logger.error("deploy_action_failed", error_type=type(exc).__name__, error=str(exc))
            self.sink.set_failed(f"❌ Action failed: {exc}")
            return None

    async def _run(self) -> DeployResult:
        settings = self.settings

        missing = missing_required_inputs(settings)
        if missing:
            raise InputError(f"Input required and not supplied: {', '.join(missing)}")
        app_id = settings.app_id or ""

        if settings.verbose:
            self.echo(RunBannerAssembler.build(settings))

        # ---------------------------------------------------------------
        # 1) Trigger
        # ---------------------------------------------------------------
        self.echo("\n📦 Triggering deployment...")
        triggered = await self.trigger.trigger(app_id, settings.command_id)
        execution_id = triggered.execution_id

        self.echo("✅ Deployment started!")
        self.echo(f"   Execution ID: {execution_id}")
        self.echo(f"   App: {triggered.app_name or app_id}")
        self.sink.set_output("execution-id", execution_id)

        if not settings.wait:
            self.echo("\n⏭️  Not waiting for completion (wait=false)")
            self.sink.set_output("status", STATUS_PENDING)
            return DeployResult(status=STATUS_PENDING)

        # ---------------------------------------------------------------
        # 2) Wait: stream first, poll as fallback
        # ---------------------------------------------------------------
        self.echo("\n⏳ Streaming deployment output...")
        self.echo(RULE)
        result = await self._wait_for_result(app_id, execution_id)
        self.echo(RULE)

        # ---------------------------------------------------------------
        # 3) Shape + report
        # ---------------------------------------------------------------
        shaped = result.model_copy(
            update={"output": truncate_output(result.output, settings.max_output_length)}
        )
        self.sink.set_output("status", shaped.status)
        self.sink.set_output("exit-code", format_exit_code(shaped.exit_code))
        self.sink.set_output("output", shaped.output)

        succeeded, message = resolve_run_outcome(
            status=shaped.status,
            exit_code=shaped.exit_code,
            timeout_seconds=settings.timeout,
        )
        logger.info(
            "deploy_finished",
            execution_id=execution_id,
            status=shaped.status,
            exit_code=shaped.exit_code,
            succeeded=succeeded,
            output_length=len(result.output),
        )
        if succeeded:
            self.echo(f"\n{message}")
        else:
            self.sink.set_failed(message)
        return shaped

    async def _wait_for_result(self, app_id: str, execution_id: str) -> DeployResult:
        timeout = self.settings.timeout
        try:
            return await self.observer.observe(app_id, execution_id, timeout)
        except StreamError as exc:
            logger.warning(
                "stream_failed_falling_back_to_polling",
                execution_id=execution_id,
                error=str(exc),
            )
            self.echo("\n⏳ Waiting for deployment to complete...")
            return await self.poller.wait(app_id, execution_id, timeout)
