# tests/conftest.py
from __future__ import annotations

from typing import Any, Callable, Dict, List

import pytest
import structlog

from remote_deploy.utils.settings import Settings


@pytest.fixture
def anyio_backend():
    return "asyncio"


class RecordingSink:
    """ResultSink double: keeps outputs and failure messages in memory."""

    def __init__(self) -> None:
        self.outputs: Dict[str, str] = {}
        self.failures: List[str] = []

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    def set_output(self, name: str, value: str) -> None:
        self.outputs[name] = value

    def set_failed(self, message: str) -> None:
        self.failures.append(message)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """
    Settings with fast observation timings; keyword args override.
    """

    def _make(**overrides: Any) -> Settings:
        values: Dict[str, Any] = {
            "remote_url": "http://deploy.test/",
            "app_id": "web",
            "deploy_token": "tok-123",
            "timeout": 5,
            "poll_interval_seconds": 0.01,
            "stream_check_interval_seconds": 0.01,
            "stream_idle_warning_seconds": 30,
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
