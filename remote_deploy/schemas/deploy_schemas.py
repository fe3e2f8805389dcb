# -------------------------------------------------------------------
# remote_deploy/schemas/deploy_schemas.py
#
# WHAT THIS FILE IS FOR
# --------------------
# This module defines the **wire envelopes** exchanged with the remote
# deployment service, plus the single **result shape** that both wait
# paths (event stream and polling) converge on.
#
# Wire envelopes (validated on receipt):
#   - TriggerResponse   POST /deploy/{appId}                -> 200/202
#   - StatusEnvelope    GET  /deploy/{appId}/status/{id}     -> 200
#   - CompletePayload   `complete` event on the stream
#
# Unknown keys are ignored everywhere: the remote service may add fields
# without breaking this client.
#
# NAMING CONVENTION
# -----------------
# Fields are snake_case, matching the remote JSON exactly. The runner
# renders them as the pipeline's kebab-case outputs (status, exit-code,
# output) at the result sink boundary.
#
# WHAT THIS FILE IS NOT FOR
# ------------------------
# This module does NOT:
# - Perform HTTP calls
# - Decide success/failure of the run
# - Truncate output
# -------------------------------------------------------------------

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TriggerResponse(BaseModel):
    """
    Response body of a successful trigger call.

    Numeric execution ids are accepted and kept as strings.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    execution_id: str = Field(..., min_length=1)
    app_name: Optional[str] = None


class StatusEnvelope(BaseModel):
    """
    Point-in-time snapshot of a running execution.
    """

    model_config = ConfigDict(extra="ignore")

    status: str
    exit_code: Optional[int] = None
    output: Optional[str] = None


class CompletePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str
    exit_code: Optional[int] = None


class DeployResult(BaseModel):
    """
    Terminal outcome handed back to the orchestrator.

    exit_code is None when the remote never reported one
    (e.g. status "pending" when not waiting).
    """

    status: str
    exit_code: Optional[int] = None
    output: str = ""

    @classmethod
    def from_envelope(cls, envelope: StatusEnvelope) -> "DeployResult":
        return cls(
            status=envelope.status,
            exit_code=envelope.exit_code,
            output=envelope.output or "",
        )
