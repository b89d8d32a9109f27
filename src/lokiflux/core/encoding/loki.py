"""Loki push encoder for log records."""

import json
from collections.abc import Iterable

from lokiflux.core.models import LogRecord


def encode_streams(records: Iterable[LogRecord], component: str) -> str:
    """Encode log records as a Loki push request body.

    Args:
        records: LogRecord objects to push.
        component: Component label attached to every stream.

    Returns:
        JSON string shaped as ``{"streams": [{"stream": labels,
        "values": [[ns_timestamp, json_body]]}]}``, one stream per record.
    """
    streams = []
    for record in records:
        message = json.dumps(record.body, default=str)
        streams.append(
            {
                "stream": record.labels(component),
                "values": [[str(record.timestamp_ns), message]],
            }
        )
    return json.dumps({"streams": streams})
