"""
remote_deploy/utils/output_shaping.py

Bounds captured deployment output before it is handed to the result sink.
"""

from __future__ import annotations

MAX_OUTPUT_LENGTH = 50_000
TRUNCATION_MARKER = "\n... (truncated)"


def truncate_output(output: str, max_length: int = MAX_OUTPUT_LENGTH) -> str:
    """
    Keep the first `max_length` characters and append TRUNCATION_MARKER
    when the output is longer. Shorter output is returned unchanged.
    """
    if len(output) <= max_length:
        return output
    return output[:max_length] + TRUNCATION_MARKER
