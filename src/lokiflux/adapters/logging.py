"""Python logging handler adapter for lokiflux.

This adapter bridges Python's standard library logging module to the
LogShipper, allowing application logs to be pushed to the log sink
alongside the request logs captured by the middleware.
"""

import logging
import traceback
from typing import Any

from lokiflux.adapters.shipper import LogShipper
from lokiflux.core import logs

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Loggers whose records are never forwarded, so delivery failures cannot
# feed back into the sink.
_OWN_LOGGER_PREFIX = "lokiflux"


def _level_for(levelno: int) -> str:
    """Map a stdlib level number to a sink level (info, warn or error)."""
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    return "info"


class LokiHandler(logging.Handler):
    """Logging handler that forwards log records to a LogShipper.

    Example:
        ```python
        handler = LokiHandler(telemetry.shipper, log_type="app")
        logging.getLogger().addHandler(handler)
        ```
    """

    def __init__(
        self,
        shipper: LogShipper,
        log_type: str = "app",
        level: int = logging.NOTSET,
    ) -> None:
        """Initialize the handler with a log shipper.

        Args:
            shipper: Shipper that delivers the records.
            log_type: Value of the ``type`` stream label for forwarded records.
            level: Minimum level handled.
        """
        super().__init__(level)
        self._shipper = shipper
        self._log_type = log_type

    def build_body(self, record: logging.LogRecord) -> dict[str, Any]:
        """Build the structured body for a stdlib log record."""
        max_length = self._shipper.max_length
        body: dict[str, Any] = {
            "logger": record.name,
            "message": logs.truncate(record.getMessage(), max_length),
            "funcName": record.funcName or "",
            "lineno": record.lineno,
        }

        # Add any extra attributes passed via logging call
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and isinstance(
                value, (str, int, float, bool)
            ):
                body[key] = value

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                body["exc_type"] = exc_type.__name__
            if exc_value is not None:
                body["exc_message"] = logs.truncate(str(exc_value), max_length)
            if exc_tb is not None:
                body["stack"] = logs.truncate(
                    "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
                    max_length,
                )
        return body

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a log record to the shipper.

        Args:
            record: The log record to emit.
        """
        if record.name.split(".")[0] == _OWN_LOGGER_PREFIX:
            return
        try:
            level = _level_for(record.levelno)
            entry = logs.log(level, self._log_type, self.build_body(record))
            self._shipper.dispatch(entry)
        except Exception:
            self.handleError(record)
