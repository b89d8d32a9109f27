"""Log helper functions for creating LogRecord objects.

Every payload that ends up in a log record passes through ``truncate`` so
that request/response bodies, queries and stack traces are bounded.
"""

import json
import time
from collections.abc import Sized
from typing import Any

from lokiflux.core.models import LogRecord

DEFAULT_MAX_LENGTH = 200
PLACEHOLDER = "N/A"
ELLIPSIS = "..."


def truncate(data: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Serialize and bound arbitrary data for inclusion in a log record.

    Args:
        data: Any value. Strings are used as-is, everything else is
            JSON-encoded (non-serializable values fall back to ``str``).
        max_length: Maximum number of characters kept before the ellipsis.

    Returns:
        "N/A" for None or empty input, otherwise the serialized string,
        cut to ``max_length`` characters and suffixed with "..." when longer.
    """
    if data is None or (isinstance(data, Sized) and len(data) == 0):
        return PLACEHOLDER
    text = data if isinstance(data, str) else _to_json(data)
    if len(text) > max_length:
        return f"{text[:max_length]}{ELLIPSIS}"
    return text


def _to_json(data: Any) -> str:
    return json.dumps(data, default=str, separators=(",", ":"))


def log(level: str, log_type: str, body: dict[str, Any] | None = None) -> LogRecord:
    """Create a log record with automatic nanosecond timestamp.

    Args:
        level: Log level (info, warn or error)
        log_type: Event type (e.g., "http_request", "exception")
        body: Structured payload

    Returns:
        LogRecord with current timestamp
    """
    return LogRecord(
        level=level,
        type=log_type,
        body=dict(body or {}),
        timestamp_ns=time.time_ns(),
    )


def info(log_type: str, body: dict[str, Any] | None = None) -> LogRecord:
    """Create an info-level log record."""
    return log("info", log_type, body)


def warn(log_type: str, body: dict[str, Any] | None = None) -> LogRecord:
    """Create a warn-level log record."""
    return log("warn", log_type, body)


def error(log_type: str, body: dict[str, Any] | None = None) -> LogRecord:
    """Create an error-level log record."""
    return log("error", log_type, body)


def http_request(
    method: str,
    path: str,
    status_code: int,
    has_auth: bool,
    request_body: Any,
    response_body: Any,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> LogRecord:
    """Create an http_request record with both bodies redacted.

    Args:
        method: HTTP method
        path: Request path including the query string
        status_code: Final response status
        has_auth: Whether an Authorization header was present
        request_body: Parsed request body
        response_body: Response body as sent (text or decoded JSON)
        max_length: Redaction limit for each body

    Returns:
        Info-level LogRecord of type http_request
    """
    return info(
        "http_request",
        {
            "method": method,
            "path": path,
            "statusCode": status_code,
            "hasAuth": has_auth,
            "requestBody": truncate(request_body, max_length),
            "responseBody": truncate(response_body, max_length),
        },
    )


def db_query(
    query: str,
    params: Any = None,
    duration_ms: float | None = None,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> LogRecord:
    """Create a db_query record with query text and parameters redacted."""
    return info(
        "db_query",
        {
            "query": truncate(query, max_length),
            "params": truncate(params, max_length),
            "durationMs": duration_ms,
        },
    )


def exception(
    message: str | None,
    stack: str | None,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> LogRecord:
    """Create an error-level exception record.

    Args:
        message: Exception message
        stack: Formatted traceback
        max_length: Redaction limit for message and stack

    Returns:
        Error-level LogRecord of type exception
    """
    return error(
        "exception",
        {
            "message": truncate(message, max_length),
            "stack": truncate(stack, max_length),
        },
    )
