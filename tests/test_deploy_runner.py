# tests/test_deploy_runner.py
from __future__ import annotations

import asyncio
import io
from typing import List

import httpx
import pytest

from fake_deploy_service import FakeDeployService, sse
from remote_deploy.orchestrator.deploy_runner import DeployRunner
from remote_deploy.utils.http_client import HttpClient
from remote_deploy.utils.logging_setup import configure_logging
from remote_deploy.utils.output_shaping import TRUNCATION_MARKER


def _runner(settings, sink, transport, printed: List[str]) -> DeployRunner:
    return DeployRunner(settings, sink, http=HttpClient(transport=transport), echo=printed.append)


@pytest.mark.anyio
async def test_streamed_success_reports_outputs_and_does_not_fail(make_settings, sink) -> None:
    service = FakeDeployService(
        execution_id="exec-777",
        app_name="Web Frontend",
        stream_chunks=[
            sse("output", "a"),
            sse("output", "b"),
            sse("complete", '{"status":"success","exit_code":0}'),
        ],
    )
    printed: List[str] = []

    result = await _runner(make_settings(), sink, service.transport(), printed).run()

    assert result is not None
    assert sink.outputs == {
        "execution-id": "exec-777",
        "status": "success",
        "exit-code": "0",
        "output": "a\nb",
    }
    assert not sink.failed
    assert "   App: Web Frontend" in printed
    assert "a" in printed and "b" in printed
    assert any("completed successfully" in line for line in printed)
    # no status snapshot needed
    assert "/devops/deploy/web/status/exec-777" not in service.paths()


@pytest.mark.anyio
async def test_app_id_is_displayed_when_response_has_no_app_name(make_settings, sink) -> None:
    service = FakeDeployService(stream_chunks=[sse("complete", '{"status":"success","exit_code":0}')])
    printed: List[str] = []

    await _runner(make_settings(), sink, service.transport(), printed).run()

    assert "   App: web" in printed


@pytest.mark.anyio
async def test_wait_false_reports_pending_without_status_or_stream_calls(make_settings, sink) -> None:
    service = FakeDeployService(execution_id="exec-1")

    result = await _runner(make_settings(wait=False), sink, service.transport(), []).run()

    assert result is not None and result.status == "pending"
    assert sink.outputs == {"execution-id": "exec-1", "status": "pending"}
    assert not sink.failed
    assert service.paths() == ["/devops/deploy/web"]


@pytest.mark.anyio
async def test_failed_status_fails_run_with_exit_code(make_settings, sink) -> None:
    service = FakeDeployService(
        stream_chunks=[sse("output", "error: migration"), sse("complete", '{"status":"failed","exit_code":3}')]
    )

    await _runner(make_settings(), sink, service.transport(), []).run()

    assert sink.outputs["status"] == "failed"
    assert sink.outputs["exit-code"] == "3"
    assert sink.failures == ["❌ Deployment failed with exit code: 3"]


@pytest.mark.anyio
async def test_non_terminal_reconciled_status_fails_run(make_settings, sink) -> None:
    service = FakeDeployService(
        stream_chunks=[sse("output", "a")],
        status_responses=[(200, {"status": "running"})],
    )

    await _runner(make_settings(), sink, service.transport(), []).run()

    assert sink.outputs["status"] == "running"
    assert sink.outputs["exit-code"] == ""
    assert sink.outputs["output"] == "a"
    assert sink.failures == ["❌ Deployment failed with exit code: None"]


@pytest.mark.anyio
async def test_stream_connection_failure_falls_back_to_polling_same_execution(make_settings, sink) -> None:
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(f"{request.method} {request.url.path}")
        if request.method == "POST":
            return httpx.Response(202, json={"execution_id": "exec-fallback"})
        if "/stream/" in request.url.path:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"status": "success", "exit_code": 0, "output": "polled"})

    printed: List[str] = []
    await _runner(make_settings(), sink, httpx.MockTransport(handler), printed).run()

    assert seen == [
        "POST /devops/deploy/web",
        "GET /devops/deploy/web/stream/exec-fallback",
        "GET /devops/deploy/web/status/exec-fallback",
    ]
    assert sink.outputs["status"] == "success"
    assert sink.outputs["output"] == "polled"
    assert not sink.failed
    assert "\n⏳ Waiting for deployment to complete..." in printed


@pytest.mark.anyio
async def test_stream_non_200_falls_back_to_polling(make_settings, sink) -> None:
    service = FakeDeployService(
        stream_status=404,
        status_responses=[(200, {"status": "running"}), (200, {"status": "failed", "exit_code": 1})],
    )

    await _runner(make_settings(), sink, service.transport(), []).run()

    assert service.paths("GET") == [
        "/devops/deploy/web/stream/exec-123",
        "/devops/deploy/web/status/exec-123",
        "/devops/deploy/web/status/exec-123",
    ]
    assert sink.outputs["status"] == "failed"
    assert sink.failures == ["❌ Deployment failed with exit code: 1"]


@pytest.mark.anyio
async def test_stream_timeout_reports_timeout_and_fails(make_settings, sink) -> None:
    async def body():
        yield sse("output", "still going").encode()
        await asyncio.sleep(60)
        yield b""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"execution_id": "exec-slow"})
        if "/stream/" in request.url.path:
            return httpx.Response(200, content=body())
        raise AssertionError(f"unexpected call: {request.url}")

    await _runner(make_settings(timeout=0), sink, httpx.MockTransport(handler), []).run()

    assert sink.outputs["status"] == "timeout"
    assert sink.outputs["exit-code"] == "-1"
    assert sink.failures == ["❌ Deployment timed out after 0s"]


@pytest.mark.anyio
async def test_output_is_truncated_before_reporting(make_settings, sink) -> None:
    service = FakeDeployService(
        stream_chunks=[sse("output", "x" * 80), sse("complete", '{"status":"success","exit_code":0}')]
    )

    result = await _runner(make_settings(max_output_length=50), sink, service.transport(), []).run()

    assert sink.outputs["output"] == "x" * 50 + TRUNCATION_MARKER
    assert result is not None and result.output == sink.outputs["output"]


@pytest.mark.anyio
async def test_trigger_failure_aborts_run_with_http_status_and_body(make_settings, sink) -> None:
    service = FakeDeployService(trigger_status=500, trigger_body="database unavailable")

    result = await _runner(make_settings(), sink, service.transport(), []).run()

    assert result is None
    assert sink.outputs == {}
    assert len(sink.failures) == 1
    assert "HTTP 500" in sink.failures[0]
    assert "database unavailable" in sink.failures[0]
    assert service.paths() == ["/devops/deploy/web"]


@pytest.mark.anyio
async def test_missing_execution_id_aborts_run(make_settings, sink) -> None:
    service = FakeDeployService(trigger_status=200, trigger_body={"ok": True})

    result = await _runner(make_settings(), sink, service.transport(), []).run()

    assert result is None
    assert sink.failures == ["❌ Action failed: Invalid response: missing execution_id"]


@pytest.mark.anyio
async def test_missing_required_inputs_fail_before_any_network_call(make_settings, sink) -> None:
    service = FakeDeployService()

    result = await _runner(
        make_settings(remote_url=None, deploy_token=None),
        sink,
        service.transport(),
        [],
    ).run()

    assert result is None
    assert service.calls == []
    assert len(sink.failures) == 1
    assert "remote-url" in sink.failures[0]
    assert "deploy-token" in sink.failures[0]
    assert "app-id" not in sink.failures[0]


@pytest.mark.anyio
async def test_banner_printed_only_in_verbose_mode(make_settings, sink) -> None:
    service = FakeDeployService(execution_id="e", stream_chunks=[sse("complete", '{"status":"success","exit_code":0}')])

    quiet: List[str] = []
    await _runner(make_settings(), sink, service.transport(), quiet).run()
    loud: List[str] = []
    await _runner(make_settings(verbose=True), sink, service.transport(), loud).run()

    assert not any("HTTP Remote Deploy Action" in line for line in quiet)
    assert any("HTTP Remote Deploy Action" in line for line in loud)
    assert not any("tok-123" in line for line in loud)


@pytest.mark.anyio
@pytest.mark.parametrize("verbose", [False, True])
async def test_keepalive_and_unknown_events_do_not_interrupt_run(make_settings, sink, verbose: bool) -> None:
    configure_logging(verbose=verbose, stream=io.StringIO())
    service = FakeDeployService(
        stream_chunks=[
            ": keepalive\n\n",
            sse("heartbeat", "ping"),
            sse("output", "a"),
            sse("complete", '{"status":"success","exit_code":0}'),
        ]
    )
    printed: List[str] = []

    result = await _runner(make_settings(verbose=verbose), sink, service.transport(), printed).run()

    assert result is not None and result.status == "success"
    assert sink.outputs["output"] == "a"
    assert sink.outputs["exit-code"] == "0"
    assert not sink.failed
    # the stream was enough: no fallback polling
    assert "\n⏳ Waiting for deployment to complete..." not in printed
    assert service.paths("GET") == ["/devops/deploy/web/stream/exec-123"]
