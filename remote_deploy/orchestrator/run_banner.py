"""
remote_deploy/orchestrator/run_banner.py

Builds the console banner that describes a run before it starts
(printed in verbose mode only). The deploy token is never included.
"""

from __future__ import annotations

from typing import List

import structlog

from remote_deploy.utils.settings import Settings

logger = structlog.get_logger(__name__)

BANNER_TITLE = "HTTP Remote Deploy Action"
RULE = "=" * 50


class RunBannerAssembler:
    @staticmethod
    def build(settings: Settings) -> str:
        lines: List[str] = [
            RULE,
            BANNER_TITLE,
            RULE,
            f"Remote URL: {settings.base_url}",
            f"App ID: {settings.app_id}",
            f"Path Prefix: {settings.path_prefix}",
            f"Command ID: {settings.command_id or '(default)'}",
            f"Wait for completion: {'true' if settings.wait else 'false'}",
            f"Timeout: {settings.timeout}s",
            RULE,
        ]
        banner = "\n".join(lines)
        logger.debug("run_banner_built", line_count=len(lines))
        return banner
