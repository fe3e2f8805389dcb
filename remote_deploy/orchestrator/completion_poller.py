"""
remote_deploy/orchestrator/completion_poller.py

Pull-based fallback: poll the status endpoint on a fixed interval until
the remote reports a terminal status or the timeout elapses.

- terminal status ("success" / "failed")  -> returned as-is
- elapsed >= timeout                       -> {status: "timeout", exit_code: -1, output: ""}
- StatusError (network, non-200, bad body) -> logged, polling continues

A permanently broken status endpoint is therefore only noticed when the
timeout runs out.
"""

from __future__ import annotations

import asyncio

import structlog

from remote_deploy.orchestrator.errors import StatusError
from remote_deploy.orchestrator.status_checker import StatusChecker
from remote_deploy.orchestrator.status_normalizer import (
    STATUS_TIMEOUT,
    TIMEOUT_EXIT_CODE,
    is_terminal_status,
)
from remote_deploy.schemas.deploy_schemas import DeployResult
from remote_deploy.utils.settings import Settings

logger = structlog.get_logger(__name__)


class CompletionPoller:
    def __init__(self, settings: Settings, status_checker: StatusChecker):
        self.settings = settings
        self.status_checker = status_checker

    async def wait(self, app_id: str, execution_id: str, timeout_seconds: float) -> DeployResult:
        loop = asyncio.get_running_loop()
        started_at = loop.time()
        interval = self.settings.poll_interval_seconds
        attempt = 0

        logger.info(
            "polling_started",
            execution_id=execution_id,
            timeout_seconds=timeout_seconds,
            poll_interval_seconds=interval,
        )

        while True:
            elapsed = loop.time() - started_at
            if elapsed >= timeout_seconds:
                logger.warning("polling_timeout", execution_id=execution_id, attempts=attempt)
                return DeployResult(status=STATUS_TIMEOUT, exit_code=TIMEOUT_EXIT_CODE, output="")

            attempt += 1
            try:
                envelope = await self.status_checker.check(app_id, execution_id)
            except StatusError as exc:
                logger.warning(
                    "status_check_failed_retrying",
                    execution_id=execution_id,
                    attempt=attempt,
                    status_code=exc.status_code,
                    error=str(exc),
                )
            else:
                if is_terminal_status(envelope.status):
                    logger.info(
                        "polling_finished",
                        execution_id=execution_id,
                        status=envelope.status,
                        exit_code=envelope.exit_code,
                        attempts=attempt,
                    )
                    return DeployResult.from_envelope(envelope)

                logger.info(
                    "deployment_in_progress",
                    execution_id=execution_id,
                    status=envelope.status,
                    elapsed_seconds=round(elapsed),
                )

            await asyncio.sleep(interval)
