"""Line protocol encoder for aggregated metric windows.

Each measurement renders as ``name,tag=value,... field=value,...``. Lines
are newline-delimited in the payload sent to the metrics sink.
"""

import math
from collections.abc import Iterable

from lokiflux.core.aggregator import average_latency
from lokiflux.core.errors import EncodingError
from lokiflux.core.models import HostStats, MetricLine, MetricWindow

_MEASUREMENT_ESCAPES = str.maketrans({",": r"\,", " ": r"\ "})
_KEY_ESCAPES = str.maketrans({",": r"\,", "=": r"\=", " ": r"\ "})


def _check_newline(text: str) -> str:
    if "\n" in text or "\r" in text:
        raise EncodingError(f"Newline not allowed in line protocol: {text!r}")
    return text


def _escape_measurement(name: str) -> str:
    return _check_newline(name).translate(_MEASUREMENT_ESCAPES)


def _escape_key(key: str) -> str:
    return _check_newline(str(key)).translate(_KEY_ESCAPES)


def _format_field_value(key: str, value: object) -> str:
    """Render a numeric field value.

    Integers render bare; floats render in shortest form, dropping a
    trailing ".0" so whole numbers look like integers.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EncodingError(f"Field {key!r} has non-numeric value {value!r}")
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        raise EncodingError(f"Field {key!r} has non-finite value {value!r}")
    if value.is_integer():
        return str(int(value))
    return repr(value)


def render_line(line: MetricLine) -> str:
    """Render a single MetricLine as text.

    Tags with empty values are omitted. A line without fields is invalid.

    Raises:
        EncodingError: If the line has no fields or contains unencodable data.
    """
    if not line.fields:
        raise EncodingError(f"Measurement {line.measurement!r} has no fields")
    head = _escape_measurement(line.measurement)
    tags = ",".join(
        f"{_escape_key(k)}={_escape_key(v)}" for k, v in line.tags.items() if v != ""
    )
    if tags:
        head = f"{head},{tags}"
    fields = ",".join(
        f"{_escape_key(k)}={_format_field_value(k, v)}" for k, v in line.fields.items()
    )
    return f"{head} {fields}"


def render(lines: Iterable[MetricLine], separator: str = "\n") -> str:
    """Render measurement lines into a single payload string."""
    return separator.join(render_line(line) for line in lines)


def encode(window: MetricWindow, source: str, host: HostStats) -> list[MetricLine]:
    """Encode a metric window into measurement lines.

    Args:
        window: A detached snapshot from the aggregator.
        source: Identifier of this process/instance, added as a tag to every line.
        host: Host resource usage sampled at flush time.

    Returns:
        One line per tracked HTTP method, followed by active_users,
        auth_attempts, system_metrics, pizza_metrics and pizza_latency.
    """
    base = {"source": source}
    lines = [
        MetricLine("http_requests", {**base, "method": method}, {"total": count})
        for method, count in window.request_counts.items()
    ]
    lines.append(
        MetricLine("active_users", dict(base), {"count": len(window.active_users)})
    )
    lines.append(
        MetricLine(
            "auth_attempts",
            dict(base),
            {"success": window.auth_success, "failure": window.auth_failure},
        )
    )
    lines.append(
        MetricLine(
            "system_metrics",
            dict(base),
            {
                "cpu_usage": round(host.cpu_percent, 2),
                "memory_usage": round(host.memory_percent, 2),
            },
        )
    )
    lines.append(
        MetricLine(
            "pizza_metrics",
            dict(base),
            {
                "sold": window.pizzas_sold,
                "failures": window.creation_failures,
                "revenue": window.revenue,
            },
        )
    )
    lines.append(
        MetricLine(
            "pizza_latency", dict(base), {"average_ms": average_latency(window)}
        )
    )
    return lines
