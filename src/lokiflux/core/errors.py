"""Error taxonomy for the telemetry pipeline.

None of these errors are meant to reach request handlers or the scheduler
loop. They are raised internally and terminate in a local log message.
"""


class TelemetryError(Exception):
    """Base class for all telemetry pipeline errors."""


class DeliveryError(TelemetryError):
    """A single delivery attempt failed (network error or non-2xx status).

    Attributes:
        attempt: 1-based attempt number that failed.
        status_code: HTTP status code, or None for network failures.
    """

    def __init__(
        self, message: str, attempt: int = 0, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.attempt = attempt
        self.status_code = status_code


class EncodingError(TelemetryError):
    """Tag or field data could not be encoded into a measurement line."""


class CaptureError(TelemetryError):
    """Building or dispatching a request log record failed."""
