"""
action.py

WHAT THIS FILE IS FOR
---------------------
Command-line entrypoint for the remote deploy action
(`remote-deploy` console script, or `python action.py`).

It is responsible for:
- Loading Settings once (CLI options > INPUT_* > REMOTE_DEPLOY_* > YAML)
- Configuring logging from those settings
- Running one DeployRunner cycle on an asyncio event loop
- Exiting with the result sink's exit code

It must NOT contain trigger/stream/poll logic; that lives in
remote_deploy/orchestrator/*.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import click
import structlog

from remote_deploy.orchestrator.deploy_runner import DeployRunner
from remote_deploy.orchestrator.errors import InputError
from remote_deploy.utils.logging_setup import configure_logging
from remote_deploy.utils.result_sink import GithubActionsSink
from remote_deploy.utils.settings import load_settings

logger = structlog.get_logger(__name__)


@click.command()
@click.option("--remote-url", default=None, help="Base URL of the deployment service.")
@click.option("--app-id", default=None, help="Application to deploy.")
@click.option("--deploy-token", default=None, help="Value for the X-Deploy-Token header.")
@click.option("--command-id", default=None, help="Optional deploy command identifier.")
@click.option("--path-prefix", default=None, help="Path prefix of the deploy API (default /devops).")
@click.option("--wait/--no-wait", default=None, help="Wait for the deployment to finish.")
@click.option("--timeout", type=int, default=None, help="Wait timeout in seconds (default 600).")
@click.option("--verbose/--quiet", default=None, help="Verbose logging.")
@click.version_option(package_name="http-remote-deploy")
def main(
    remote_url: Optional[str],
    app_id: Optional[str],
    deploy_token: Optional[str],
    command_id: Optional[str],
    path_prefix: Optional[str],
    wait: Optional[bool],
    timeout: Optional[int],
    verbose: Optional[bool],
) -> None:
    """Trigger a remote deployment over HTTP and wait for it to finish."""
    sink = GithubActionsSink()

    try:
        settings = load_settings(
            remote_url=remote_url,
            app_id=app_id,
            deploy_token=deploy_token,
            command_id=command_id,
            path_prefix=path_prefix,
            wait=wait,
            timeout=timeout,
            verbose=verbose,
        )
    except InputError as exc:
        sink.set_failed(f"❌ Action failed: {exc}")
        raise SystemExit(sink.exit_code)

    configure_logging(verbose=settings.verbose, log_level=settings.log_level)

    runner = DeployRunner(settings, sink)
    asyncio.run(runner.run())

    logger.debug("action_exit", exit_code=sink.exit_code)
    raise SystemExit(sink.exit_code)


if __name__ == "__main__":
    main()
