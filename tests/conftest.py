"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator

import httpx
import pytest

from lokiflux.adapters.delivery import RecordingSink
from lokiflux.adapters.host import StaticHostStats
from lokiflux.adapters.shipper import LogShipper
from lokiflux.core.aggregator import MetricAggregator
from lokiflux.runtime.scheduler import FlushScheduler

# === Core Fixtures ===


@pytest.fixture
def aggregator() -> MetricAggregator:
    """Fresh aggregator with an empty window."""
    return MetricAggregator()


@pytest.fixture
def metrics_sink() -> RecordingSink:
    """Recording sink standing in for the metrics backend."""
    return RecordingSink()


@pytest.fixture
def log_sink() -> RecordingSink:
    """Recording sink standing in for the log backend."""
    return RecordingSink()


@pytest.fixture
def shipper(log_sink: RecordingSink) -> LogShipper:
    """Log shipper delivering to the recording log sink."""
    return LogShipper(log_sink, component="test-service")


@pytest.fixture
def scheduler(
    aggregator: MetricAggregator, metrics_sink: RecordingSink
) -> FlushScheduler:
    """Flush scheduler with fixed host stats."""
    return FlushScheduler(
        aggregator,
        metrics_sink,
        source="test-service",
        host_stats=StaticHostStats(cpu_percent=12.5, memory_percent=40.0),
    )


# === ASGI Test Fixtures ===


@pytest.fixture
def basic_asgi_app():
    """Basic ASGI app fixture that returns 200 OK.

    Used in tests to replace repeated inline ASGI app definitions.
    """
    from lokiflux.adapters.frameworks.asgi import Receive, Scope, Send

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        """Simple ASGI app that returns 200 OK."""
        await send(
            {
                "type": "http.response.start",
                "status": 200,
                "headers": [(b"content-type", b"text/plain")],
            }
        )
        await send({"type": "http.response.body", "body": b"OK"})

    return app


@pytest.fixture
def asgi_scope():
    """Factory fixture for creating ASGI scope dicts.

    Used in tests to create scope dicts with customizable method/path/headers.
    """
    from lokiflux.adapters.frameworks.asgi import Scope

    def _scope(
        method: str = "GET",
        path: str = "/test",
        headers: dict[str, str] | None = None,
        query_string: bytes = b"",
    ) -> Scope:
        return {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": query_string,
            "headers": [
                (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
            ],
        }

    return _scope


@pytest.fixture
def asgi_receive():
    """Factory fixture returning a receive callable that yields one body."""

    def _receive(body: bytes = b""):
        messages = [{"type": "http.request", "body": body, "more_body": False}]

        async def receive() -> dict[str, object]:
            if messages:
                return messages.pop(0)
            return {"type": "http.disconnect"}

        return receive

    return _receive


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture.

    Returns a tuple of (send_func, responses_list) for recording ASGI messages.
    """

    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            async with asgi_test_client(app) as client:
                response = await client.get("/endpoint")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client


@pytest.fixture
async def started_scheduler(
    scheduler: FlushScheduler,
) -> AsyncGenerator[FlushScheduler]:
    """Scheduler whose timer is running for the duration of the test."""
    scheduler.start()
    yield scheduler
    await scheduler.stop()
