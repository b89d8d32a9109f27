"""Core domain models for telemetry data."""

from dataclasses import dataclass, field
from typing import Any

TRACKED_METHODS = ("GET", "POST", "PUT", "DELETE")


def _empty_request_counts() -> dict[str, int]:
    return dict.fromkeys(TRACKED_METHODS, 0)


@dataclass
class MetricWindow:
    """Accumulated metrics between two consecutive flushes.

    The aggregator owns the live window. A window returned from
    ``snapshot_and_reset`` is no longer mutated by anyone.

    Attributes:
        request_counts: HTTP method -> number of requests.
        active_users: Distinct user identifiers seen in the window.
        auth_success: Successful authentication attempts.
        auth_failure: Failed authentication attempts.
        pizzas_sold: Total order line-items sold.
        revenue: Sum of the prices of sold items.
        creation_failures: Failed order-creation attempts.
        latencies_ms: Order-creation latencies in milliseconds, in arrival order.
    """

    request_counts: dict[str, int] = field(default_factory=_empty_request_counts)
    active_users: set[Any] = field(default_factory=set)
    auth_success: int = 0
    auth_failure: int = 0
    pizzas_sold: int = 0
    revenue: float = 0.0
    creation_failures: int = 0
    latencies_ms: list[float] = field(default_factory=list)


@dataclass(frozen=True)
class LogRecord:
    """A structured log event bound for the log sink.

    Attributes:
        level: One of info, warn, error.
        type: Event type (http_request, db_query, exception, ...).
        body: Free-form structured payload.
        timestamp_ns: Unix timestamp in nanoseconds.
    """

    level: str
    type: str
    body: dict[str, Any]
    timestamp_ns: int

    def labels(self, component: str) -> dict[str, str]:
        """Return the static stream labels for this record."""
        return {"component": component, "level": self.level, "type": self.type}


@dataclass(frozen=True)
class MetricLine:
    """One measurement line: a name, its tags and its fields.

    Attributes:
        measurement: Measurement name (e.g., http_requests).
        tags: Indexed dimensions, rendered in insertion order.
        fields: Measured values, rendered in insertion order.
    """

    measurement: str
    tags: dict[str, str] = field(default_factory=dict)
    fields: dict[str, int | float] = field(default_factory=dict)


@dataclass(frozen=True)
class DeliveryAttempt:
    """Transient record of one delivery attempt.

    Attributes:
        number: 1-based attempt number.
        delay: Seconds waited after this attempt before the next one.
        error: Failure description, or None when the attempt succeeded.
    """

    number: int
    delay: float = 0.0
    error: str | None = None


@dataclass(frozen=True)
class HostStats:
    """Host resource usage sampled at flush time.

    Attributes:
        cpu_percent: Load average per core, as a percentage.
        memory_percent: Used memory as a percentage of total memory.
    """

    cpu_percent: float
    memory_percent: float
