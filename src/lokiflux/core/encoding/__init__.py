"""Encoders for the metrics and log sinks."""

from lokiflux.core.encoding.line_protocol import encode, render
from lokiflux.core.encoding.loki import encode_streams

__all__ = ["encode", "encode_streams", "render"]
