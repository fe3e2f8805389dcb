"""
remote_deploy/orchestrator/errors.py

Error taxonomy for the trigger-and-observe cycle.

- InputError:    required configuration missing/invalid (before any network call)
- TriggerError:  trigger rejected by the remote service (fatal)
- ProtocolError: payload violates the wire contract
- StreamError:   event-stream session failed (caller falls back to polling)
- StatusError:   status snapshot failed (retried while polling)

Timeout is NOT an exception; it is a terminal status value.
"""

from __future__ import annotations

from typing import Optional


class DeployActionError(Exception):
    """Base class for every error raised by this package."""


class InputError(DeployActionError):
    pass


class ProtocolError(DeployActionError):
    pass


class StreamError(DeployActionError):
    pass


class _HttpFailure(DeployActionError):
    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TriggerError(_HttpFailure):
    pass


class StatusError(_HttpFailure):
    pass
