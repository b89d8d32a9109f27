"""Helpers for decoding payloads captured by recording sinks."""

import json
from typing import Any

from lokiflux.adapters.delivery import RecordingSink


def shipped_bodies(sink: RecordingSink) -> list[dict[str, Any]]:
    """Decode the log bodies pushed to a recording sink."""
    bodies = []
    for payload in sink.payloads:
        for stream in json.loads(payload)["streams"]:
            for _, message in stream["values"]:
                bodies.append(json.loads(message))
    return bodies


def shipped_labels(sink: RecordingSink) -> list[dict[str, str]]:
    """Return the stream labels pushed to a recording sink."""
    return [
        stream["stream"]
        for payload in sink.payloads
        for stream in json.loads(payload)["streams"]
    ]


def metric_lines(payload: str) -> list[str]:
    """Split a line protocol payload into lines."""
    return [line for line in payload.split("\n") if line]
