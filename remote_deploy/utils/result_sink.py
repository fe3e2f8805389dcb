"""
remote_deploy/utils/result_sink.py

WHAT THIS FILE IS FOR
---------------------
This module records the run's named outputs and its failure state for
the surrounding pipeline (GitHub Actions).

- set_output(name, value):
    appends a heredoc-delimited record to the file named by
    $GITHUB_OUTPUT:

        name<<ghadelimiter_<uuid>
        value
        ghadelimiter_<uuid>

    When $GITHUB_OUTPUT is not set (older runners, local runs) the legacy
    `::set-output name=<name>::<value>` workflow command is printed.

- set_failed(message):
    prints `::error::<message>` and sets exit_code to 1.

Command data/properties are escaped the way the Actions runner expects
(%, CR, LF; plus ':' and ',' in properties).

WHAT THIS FILE IS NOT FOR
-------------------------
- Deciding whether the run failed (see orchestrator/status_normalizer.py)
- Truncating output (see utils/output_shaping.py)
"""

from __future__ import annotations

import os
import sys
import uuid
from typing import Dict, Mapping, Optional, Protocol, TextIO

import click
import structlog

logger = structlog.get_logger(__name__)


class ResultSink(Protocol):
    def set_output(self, name: str, value: str) -> None: ...

    def set_failed(self, message: str) -> None: ...


def escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


class GithubActionsSink:
    """
    ResultSink speaking the GitHub Actions file/workflow command protocol.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        stream: Optional[TextIO] = None,
    ):
        self._environ = os.environ if environ is None else environ
        self._stream = stream if stream is not None else sys.stdout
        self.exit_code = 0
        self.outputs: Dict[str, str] = {}

    @property
    def failed(self) -> bool:
        return self.exit_code != 0

    def set_output(self, name: str, value: str) -> None:
        self.outputs[name] = value
        path = self._environ.get("GITHUB_OUTPUT")
        if path:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            with open(path, "a", encoding="utf-8") as f:
                f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            self._issue_command("set-output", value, name=name)
        logger.debug("output_recorded", name=name, length=len(value))

    def set_failed(self, message: str) -> None:
        self.exit_code = 1
        self._issue_command("error", message)

    def _issue_command(self, command: str, message: str, **properties: str) -> None:
        line = f"::{command}"
        if properties:
            line += " " + ",".join(f"{key}={escape_property(val)}" for key, val in properties.items())
        line += f"::{escape_data(message)}"
        click.echo(line, file=self._stream)
