"""Port interfaces for delivery and host sampling adapters.

These protocols define the contracts that adapters must implement.
The core domain and the runtime depend only on these interfaces.
"""

from typing import Protocol, runtime_checkable

from lokiflux.core.models import HostStats


@runtime_checkable
class SinkPort(Protocol):
    """Port for delivering an encoded payload to a telemetry backend.

    Examples: HttpSink, RecordingSink.
    """

    async def send(self, payload: str) -> bool:
        """Deliver a payload.

        Returns:
            True if the backend accepted the payload, False if delivery was
            given up. Implementations must not raise on delivery failure.
        """
        ...

    async def aclose(self) -> None:
        """Release any resources held by the sink."""
        ...


@runtime_checkable
class HostStatsPort(Protocol):
    """Port for sampling host resource usage at flush time."""

    def sample(self) -> HostStats:
        """Return the current CPU and memory usage."""
        ...
