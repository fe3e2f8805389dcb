"""
remote_deploy/orchestrator/deploy_trigger.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *thin client* that starts a deployment on the
remote service.

It is responsible for:
- Building the trigger request (URL, token header, JSON body)
- Validating the HTTP status (200 / 202 only)
- Validating the response envelope (non-empty execution_id)

CALL FLOW CONTEXT
-----------------
DeployRunner.run()
  -> DeployTrigger.trigger()
      -> POST {base}{prefix}/deploy/{app_id}

REQUEST BEHAVIOR
----------------
- Body is compact JSON: {"command_id":"<id>"} when a command id is given,
  otherwise {}
- Headers: Content-Type: application/json, X-Deploy-Token: <token>

ERROR HANDLING RULES
--------------------
- Transport failure                     -> TriggerError
- HTTP status other than 200/202        -> TriggerError (status + raw body)
- Non-JSON body / missing execution_id  -> ProtocolError
- No retries: a failed trigger aborts the whole run
"""

from __future__ import annotations

import json
from typing import Optional

import httpx
import structlog
from pydantic import ValidationError

from remote_deploy.orchestrator.endpoints import TOKEN_HEADER, DeployEndpoints
from remote_deploy.orchestrator.errors import ProtocolError, TriggerError
from remote_deploy.schemas.deploy_schemas import TriggerResponse
from remote_deploy.utils.http_client import HttpClient
from remote_deploy.utils.settings import Settings

logger = structlog.get_logger(__name__)

ACCEPTED_STATUS_CODES = (200, 202)


class DeployTrigger:
    """
    Thin client for POST /deploy/{app_id}.
    """

    def __init__(self, settings: Settings, http: HttpClient):
        self.settings = settings
        self.http = http
        self.endpoints = DeployEndpoints.from_settings(settings)

    async def trigger(self, app_id: str, command_id: Optional[str] = None) -> TriggerResponse:
        url = self.endpoints.trigger(app_id)
        logger.debug("deploy_trigger_started", url=url, app_id=app_id, command_id=command_id)

        body = "{}"
        if command_id:
            body = json.dumps({"command_id": command_id}, separators=(",", ":"), ensure_ascii=False)
        headers = {
            "Content-Type": "application/json",
            TOKEN_HEADER: self.settings.token,
        }

        try:
            resp = await self.http.request("POST", url, headers=headers, content=body)
        except httpx.HTTPError as exc:
            logger.error("deploy_trigger_transport_error", url=url, error=str(exc))
            raise TriggerError(f"Deployment trigger request failed: {exc}") from exc

        if resp.status_code not in ACCEPTED_STATUS_CODES:
            logger.error(
                "deploy_trigger_rejected",
                url=url,
                status_code=resp.status_code,
                response_snippet=resp.body[:500],
            )
            raise TriggerError(
                f"Deployment trigger failed with HTTP {resp.status_code}: {resp.body}",
                status_code=resp.status_code,
                body=resp.body,
            )

        try:
            result = TriggerResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise ProtocolError("Invalid response: missing execution_id") from exc

        logger.info(
            "deploy_triggered",
            app_id=app_id,
            execution_id=result.execution_id,
            status_code=resp.status_code,
        )
        return result
