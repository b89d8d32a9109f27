"""BDD step definitions for the periodic metrics flush feature."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when
from tests.helpers import metric_lines, shipped_bodies, shipped_labels

from lokiflux.adapters.delivery import RecordingSink
from lokiflux.adapters.frameworks.asgi import (
    Message,
    Receive,
    RequestCaptureMiddleware,
    Scope,
    Send,
)
from lokiflux.adapters.host import StaticHostStats
from lokiflux.core.models import MetricWindow
from lokiflux.telemetry import Telemetry


@dataclass
class FlushScenarioContext:
    """Shared state across the steps of one scenario."""

    source: str = ""
    metrics_sink: RecordingSink = field(default_factory=RecordingSink)
    log_sink: RecordingSink = field(default_factory=RecordingSink)
    telemetry: Telemetry | None = None
    payloads: list[str] = field(default_factory=list)

    def build(self) -> Telemetry:
        self.telemetry = Telemetry(
            metrics_sink=self.metrics_sink,
            log_sink=self.log_sink,
            component=self.source,
            source=self.source,
            host_stats=StaticHostStats(cpu_percent=1.0, memory_percent=2.0),
        )
        return self.telemetry

    @property
    def pipeline(self) -> Telemetry:
        assert self.telemetry is not None
        return self.telemetry


async def _ok_app(scope: Scope, receive: Receive, send: Send) -> None:
    await send({"type": "http.response.start", "status": 200, "headers": []})
    await send({"type": "http.response.body", "body": b"{}"})


async def _simulate_requests(
    telemetry: Telemetry, method: str, path: str, n: int
) -> None:
    """Drive requests through the capture middleware and wait for the logs."""
    middleware = RequestCaptureMiddleware(
        _ok_app, telemetry.aggregator, telemetry.shipper
    )

    async def receive() -> Message:
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message: Message) -> None:
        pass

    for _ in range(n):
        scope: dict[str, Any] = {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": b"",
            "headers": [],
        }
        await middleware(scope, receive, send)
    await telemetry.shipper.drain()


@pytest.fixture
def ctx() -> FlushScenarioContext:
    """Fresh scenario context for each test."""
    return FlushScenarioContext()


# === Given ===
@given(parsers.parse('a telemetry pipeline for source "{source}"'))
def step_pipeline(ctx: FlushScenarioContext, source: str) -> None:
    ctx.source = source
    ctx.build()


@given("the metrics sink rejects deliveries")
def step_rejecting_sink(ctx: FlushScenarioContext) -> None:
    ctx.metrics_sink = RecordingSink(accept=False)
    ctx.build()


# === When ===
@when(parsers.parse('{n:d} {method} requests are made to "{path}"'))
def step_requests(ctx: FlushScenarioContext, n: int, method: str, path: str) -> None:
    asyncio.run(_simulate_requests(ctx.pipeline, method, path, n))


@when(
    parsers.parse("an order of {n:d} items at {price:g} each succeeds in {ms:d} ms")
)
def step_order_success(
    ctx: FlushScenarioContext, n: int, price: float, ms: int
) -> None:
    ctx.pipeline.record_order([{"price": price}] * n, success=True, latency_ms=ms)


@when("an order fails")
def step_order_failure(ctx: FlushScenarioContext) -> None:
    ctx.pipeline.record_order(None, success=False)


@when(parsers.parse("{ok:d} successful and {failed:d} failed logins are recorded"))
def step_logins(ctx: FlushScenarioContext, ok: int, failed: int) -> None:
    for _ in range(ok):
        ctx.pipeline.record_auth_attempt(True)
    for _ in range(failed):
        ctx.pipeline.record_auth_attempt(False)


@when("the metrics window is flushed")
def step_flush(ctx: FlushScenarioContext) -> None:
    payload = asyncio.run(ctx.pipeline.flush())
    assert payload is not None
    ctx.payloads.append(payload)


# === Then ===
@then(parsers.parse('the payload contains "{line}"'))
def step_payload_contains(ctx: FlushScenarioContext, line: str) -> None:
    assert line in metric_lines(ctx.payloads[-1])


@then(parsers.parse("{n:d} delivery was attempted"))
def step_delivery_attempts(ctx: FlushScenarioContext, n: int) -> None:
    assert len(ctx.metrics_sink.payloads) == n


@then("the current window is empty")
def step_window_empty(ctx: FlushScenarioContext) -> None:
    assert ctx.pipeline.aggregator.snapshot() == MetricWindow()


@then(parsers.parse("{n:d} http_request log record is shipped"))
def step_log_records(ctx: FlushScenarioContext, n: int) -> None:
    types = [label["type"] for label in shipped_labels(ctx.log_sink)]
    assert types == ["http_request"] * n


@then(parsers.parse("the last log record has statusCode {status:d}"))
def step_last_status(ctx: FlushScenarioContext, status: int) -> None:
    assert shipped_bodies(ctx.log_sink)[-1]["statusCode"] == status
