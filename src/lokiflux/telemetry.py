"""Composition root wiring the aggregator, sinks, shipper and scheduler.

The application constructs one ``Telemetry`` at startup and passes it to the
HTTP layer and business logic. There is no module-level instance.
"""

import asyncio
from collections.abc import Iterable
from typing import Any

from lokiflux.adapters.delivery import HttpSink
from lokiflux.adapters.host import PsutilHostStats
from lokiflux.adapters.shipper import LogShipper
from lokiflux.config import SinkSettings, TelemetrySettings
from lokiflux.core.aggregator import MetricAggregator
from lokiflux.core.ports import HostStatsPort, SinkPort
from lokiflux.runtime.scheduler import FlushScheduler


class Telemetry:
    """Owns every telemetry component for one process.

    Business call sites use the ``record_*`` shortcuts; the HTTP layer uses
    ``aggregator`` and ``shipper`` through the request capture middleware.

    Example:
        ```python
        telemetry = Telemetry.from_settings(get_settings())
        telemetry.record_auth_attempt(True)
        await telemetry.start()
        ```
    """

    def __init__(
        self,
        metrics_sink: SinkPort,
        log_sink: SinkPort,
        component: str,
        source: str,
        host_stats: HostStatsPort | None = None,
        flush_interval: float = 60.0,
        max_body_length: int = 200,
        exclude_paths: list[str] | None = None,
    ) -> None:
        self.aggregator = MetricAggregator()
        self.metrics_sink = metrics_sink
        self.log_sink = log_sink
        self.shipper = LogShipper(log_sink, component, max_length=max_body_length)
        self.scheduler = FlushScheduler(
            self.aggregator,
            metrics_sink,
            source,
            host_stats or PsutilHostStats(),
            interval=flush_interval,
        )
        self.exclude_paths = exclude_paths or []

    @classmethod
    def from_settings(cls, settings: TelemetrySettings) -> "Telemetry":
        """Build HTTP sinks and components from settings."""

        def sink(target: SinkSettings, content_type: str) -> HttpSink:
            return HttpSink(
                target.url,
                target.user_id,
                target.api_key,
                content_type=content_type,
                max_attempts=settings.max_attempts,
                base_delay=settings.retry_base_delay,
                timeout=settings.request_timeout,
            )

        return cls(
            metrics_sink=sink(settings.metrics, "text/plain"),
            log_sink=sink(settings.logging, "application/json"),
            component=settings.component,
            source=settings.source,
            flush_interval=settings.flush_interval,
            max_body_length=settings.max_body_length,
            exclude_paths=list(settings.exclude_paths),
        )

    def record_auth_attempt(self, success: bool) -> None:
        self.aggregator.record_auth_attempt(success)

    def record_order(
        self,
        items: Iterable[Any] | None,
        success: bool,
        latency_ms: float | None = None,
    ) -> None:
        self.aggregator.record_order(items, success, latency_ms)

    def log_exception(self, exc: BaseException) -> None:
        self.shipper.log_exception(exc)

    async def flush(self) -> str | None:
        """Flush the current window immediately."""
        return await self.scheduler.flush()

    async def start(self) -> None:
        """Start the flush timer and bind log delivery to the running loop."""
        self.shipper.bind(asyncio.get_running_loop())
        self.scheduler.start()

    async def stop(self) -> None:
        """Stop the timer, wait for pending logs and close both sinks."""
        await self.scheduler.stop()
        await self.shipper.drain()
        await self.metrics_sink.aclose()
        await self.log_sink.aclose()
