"""lokiflux: request telemetry aggregation and delivery."""

from lokiflux.adapters.delivery import HttpSink, RecordingSink
from lokiflux.adapters.frameworks.asgi import RequestCaptureMiddleware
from lokiflux.adapters.host import PsutilHostStats, StaticHostStats
from lokiflux.adapters.logging import LokiHandler
from lokiflux.adapters.shipper import LogShipper
from lokiflux.config import SinkSettings, TelemetrySettings, get_settings
from lokiflux.core.aggregator import MetricAggregator
from lokiflux.core.errors import (
    CaptureError,
    DeliveryError,
    EncodingError,
    TelemetryError,
)
from lokiflux.core.logs import truncate
from lokiflux.core.models import LogRecord, MetricLine, MetricWindow
from lokiflux.runtime.scheduler import FlushScheduler
from lokiflux.telemetry import Telemetry

__all__ = [
    "CaptureError",
    "DeliveryError",
    "EncodingError",
    "FlushScheduler",
    "HttpSink",
    "LogRecord",
    "LogShipper",
    "LokiHandler",
    "MetricAggregator",
    "MetricLine",
    "MetricWindow",
    "PsutilHostStats",
    "RecordingSink",
    "RequestCaptureMiddleware",
    "SinkSettings",
    "StaticHostStats",
    "Telemetry",
    "TelemetryError",
    "TelemetrySettings",
    "get_settings",
    "truncate",
]
