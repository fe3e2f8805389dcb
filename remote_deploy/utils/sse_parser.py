"""
remote_deploy/utils/sse_parser.py

WHAT THIS FILE IS FOR
---------------------
Incremental parser for the deployment event stream
(`text/event-stream`), written as a small producer/consumer state machine
that knows nothing about the transport:

    text chunk --feed()--> buffer --split on blank line--> records
        --parse_record()--> OutputEvent | CompleteEvent | UnrecognizedEvent

FRAMING RULES
-------------
- "\\r\\n" is normalised to "\\n" (also across chunk boundaries)
- a record ends at a blank line ("\\n\\n"); the trailing, possibly
  incomplete, segment stays buffered until more text arrives
- inside a record, each line is `field: value` (one space after the colon
  is optional); `event` names the event, `data` lines are joined with "\\n",
  lines starting with ":" are comments, any other field is ignored
- whitespace-only records are skipped

Only two event names carry meaning: `output` and `complete`.
A `complete` payload that is not a JSON object with a `status` raises
ProtocolError.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import ValidationError

from remote_deploy.orchestrator.errors import ProtocolError
from remote_deploy.schemas.deploy_schemas import CompletePayload

RECORD_DELIMITER = "\n\n"

EVENT_OUTPUT = "output"
EVENT_COMPLETE = "complete"


@dataclass(frozen=True)
class OutputEvent:
    text: str


@dataclass(frozen=True)
class CompleteEvent:
    status: str
    exit_code: Optional[int]


@dataclass(frozen=True)
class UnrecognizedEvent:
    name: Optional[str]
    data: str


StreamEvent = Union[OutputEvent, CompleteEvent, UnrecognizedEvent]


def parse_record(record: str) -> StreamEvent:
    """
    Parse one complete record (no trailing blank line) into a tagged event.
    """
    name: Optional[str] = None
    data_lines: List[str] = []

    for line in record.split("\n"):
        if not line or line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            name = value.strip()
        elif field == "data":
            data_lines.append(value)

    data = "\n".join(data_lines)

    if name == EVENT_OUTPUT:
        return OutputEvent(text=data)
    if name == EVENT_COMPLETE:
        return _parse_complete(data)
    return UnrecognizedEvent(name=name, data=data)


def _parse_complete(data: str) -> CompleteEvent:
    try:
        payload = CompletePayload.model_validate(json.loads(data))
    except (ValueError, ValidationError) as exc:
        raise ProtocolError(f"Invalid complete event: {data}") from exc
    return CompleteEvent(status=payload.status, exit_code=payload.exit_code)


class EventStreamParser:
    """
    Buffering front-end for parse_record().

    Usage:
        parser = EventStreamParser()
        for chunk in chunks:
            for event in parser.feed(chunk):
                ...
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received but not yet terminated by a blank line."""
        return self._buffer

    def feed(self, chunk: str) -> List[StreamEvent]:
        # Re-normalising the whole buffer catches a "\r" / "\n" pair split
        # across two chunks.
        self._buffer = (self._buffer + chunk).replace("\r\n", "\n")

        *records, self._buffer = self._buffer.split(RECORD_DELIMITER)
        return [parse_record(record) for record in records if record.strip()]
