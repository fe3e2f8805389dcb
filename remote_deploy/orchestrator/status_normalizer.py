"""
remote_deploy/orchestrator/status_normalizer.py

WHAT THIS FILE IS FOR
---------------------
This module defines the *single canonical rule* for interpreting
execution statuses reported by the remote deployment service.

It is responsible for:
- Naming the status values this client understands
- Deciding which statuses end observation (terminal)
- Translating a final result into success/failure of the run,
  with a user-facing message

PUBLIC CONTRACT RULE
--------------------
- "success"  -> run succeeds
- "timeout"  -> run fails, message names the configured timeout
- anything else (including "failed", or a non-terminal status returned
  by end-of-stream reconciliation) -> run fails, message carries the
  exit code

WHAT THIS FILE IS NOT FOR
-------------------------
This module MUST NOT perform I/O, log, or raise.
It performs **pure, deterministic mapping only**.
"""

from __future__ import annotations

from typing import Optional, Tuple

STATUS_PENDING = "pending"
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_TIMEOUT = "timeout"

# Statuses the remote reports that end a poll loop.
# "timeout" is terminal too, but only ever produced locally.
REMOTE_TERMINAL_STATUSES = frozenset({STATUS_SUCCESS, STATUS_FAILED})

TIMEOUT_EXIT_CODE = -1


def is_terminal_status(status: Optional[str]) -> bool:
    return status in REMOTE_TERMINAL_STATUSES


def format_exit_code(exit_code: Optional[int]) -> str:
    """String form for the `exit-code` output ('' when unknown)."""
    return "" if exit_code is None else str(exit_code)


def resolve_run_outcome(
    *,
    status: str,
    exit_code: Optional[int],
    timeout_seconds: int,
) -> Tuple[bool, str]:
    """
    Returns (succeeded, message).
    """
    if status == STATUS_SUCCESS:
        return True, f"✅ Deployment completed successfully! (exit code: {exit_code})"
    if status == STATUS_TIMEOUT:
        return False, f"❌ Deployment timed out after {timeout_seconds}s"
    return False, f"❌ Deployment failed with exit code: {exit_code}"
