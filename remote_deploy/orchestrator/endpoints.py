"""
remote_deploy/orchestrator/endpoints.py

URL construction for the remote deployment service.

    POST {base}{prefix}/deploy/{app_id}
    GET  {base}{prefix}/deploy/{app_id}/status/{execution_id}
    GET  {base}{prefix}/deploy/{app_id}/stream/{execution_id}

Identifiers are URL-encoded before formatting into the path
(ordinary identifiers are left byte-identical).
"""

from __future__ import annotations

from urllib.parse import quote

from remote_deploy.utils.settings import Settings

TOKEN_HEADER = "X-Deploy-Token"

TRIGGER_TEMPLATE = "/deploy/{app_id}"
STATUS_TEMPLATE = "/deploy/{app_id}/status/{execution_id}"
STREAM_TEMPLATE = "/deploy/{app_id}/stream/{execution_id}"


class DeployEndpoints:
    def __init__(self, base_url: str, path_prefix: str) -> None:
        self._root = base_url.rstrip("/") + path_prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> "DeployEndpoints":
        return cls(settings.base_url, settings.path_prefix)

    def trigger(self, app_id: str) -> str:
        return self._root + TRIGGER_TEMPLATE.format(app_id=_segment(app_id))

    def status(self, app_id: str, execution_id: str) -> str:
        return self._root + STATUS_TEMPLATE.format(
            app_id=_segment(app_id),
            execution_id=_segment(execution_id),
        )

    def stream(self, app_id: str, execution_id: str) -> str:
        return self._root + STREAM_TEMPLATE.format(
            app_id=_segment(app_id),
            execution_id=_segment(execution_id),
        )


def _segment(value: str) -> str:
    return quote(value, safe="")
