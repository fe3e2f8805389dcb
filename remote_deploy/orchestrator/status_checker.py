"""
remote_deploy/orchestrator/status_checker.py

Point-in-time status snapshot of a running execution:

    GET {base}{prefix}/deploy/{app_id}/status/{execution_id}

Used two ways:
- as the polling primitive (CompletionPoller), where a StatusError is
  logged and retried on the next interval
- as the end-of-stream reconciliation (EventStreamObserver), where a
  StatusError ends the stream session

Every failure (transport, non-200, unparseable envelope) surfaces as
StatusError; deciding whether it is fatal is the caller's job.
"""

from __future__ import annotations

import httpx
import structlog
from pydantic import ValidationError

from remote_deploy.orchestrator.endpoints import TOKEN_HEADER, DeployEndpoints
from remote_deploy.orchestrator.errors import StatusError
from remote_deploy.schemas.deploy_schemas import StatusEnvelope
from remote_deploy.utils.http_client import HttpClient
from remote_deploy.utils.settings import Settings

logger = structlog.get_logger(__name__)


class StatusChecker:
    def __init__(self, settings: Settings, http: HttpClient):
        self.settings = settings
        self.http = http
        self.endpoints = DeployEndpoints.from_settings(settings)

    async def check(self, app_id: str, execution_id: str) -> StatusEnvelope:
        url = self.endpoints.status(app_id, execution_id)
        logger.debug("status_check_started", url=url, execution_id=execution_id)

        try:
            resp = await self.http.request("GET", url, headers={TOKEN_HEADER: self.settings.token})
        except httpx.HTTPError as exc:
            raise StatusError(f"Status check request failed: {exc}") from exc

        if resp.status_code != 200:
            raise StatusError(
                f"Status check failed with HTTP {resp.status_code}: {resp.body}",
                status_code=resp.status_code,
                body=resp.body,
            )

        try:
            envelope = StatusEnvelope.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise StatusError(
                f"Status check returned an invalid envelope: {resp.body[:500]}",
                status_code=resp.status_code,
                body=resp.body,
            ) from exc

        logger.debug(
            "status_check_done",
            execution_id=execution_id,
            status=envelope.status,
            exit_code=envelope.exit_code,
        )
        return envelope
