"""Periodic flush of the metric window to the metrics sink."""

import asyncio
import contextlib
import logging

from lokiflux.core.aggregator import MetricAggregator
from lokiflux.core.encoding.line_protocol import encode, render
from lokiflux.core.errors import EncodingError
from lokiflux.core.ports import HostStatsPort, SinkPort

logger = logging.getLogger(__name__)

DEFAULT_FLUSH_INTERVAL = 60.0


class FlushScheduler:
    """Drains the aggregator into the metrics sink on a fixed interval.

    Each tick snapshots and resets the window, samples host stats, encodes
    the snapshot as line protocol and sends it. The window is reset whether
    or not delivery succeeds. Ticks are serialized by a lock, so a manual
    ``flush`` never overlaps a timer tick.

    The timer runs as an asyncio task: it never keeps the process alive on
    its own and ends with the event loop.
    """

    def __init__(
        self,
        aggregator: MetricAggregator,
        sink: SinkPort,
        source: str,
        host_stats: HostStatsPort,
        interval: float = DEFAULT_FLUSH_INTERVAL,
    ) -> None:
        self.aggregator = aggregator
        self.sink = sink
        self.source = source
        self.host_stats = host_stats
        self.interval = interval
        self.ticks = 0
        self._task: asyncio.Task[None] | None = None
        self._lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the tick lock (lazy to avoid event loop issues)."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def flush(self) -> str | None:
        """Run one tick.

        Returns:
            The payload handed to the sink, or None if host sampling or
            encoding failed.
        """
        async with self._get_lock():
            self.ticks += 1
            window = self.aggregator.snapshot_and_reset()
            try:
                host = self.host_stats.sample()
            except Exception:
                logger.exception(
                    "Host stats sampling failed, dropping metrics window %d",
                    self.ticks,
                )
                return None
            try:
                payload = render(encode(window, self.source, host))
            except EncodingError:
                logger.exception("Dropping metrics window %d", self.ticks)
                return None
            logger.debug("Flushing metrics window %d:\n%s", self.ticks, payload)
            await self.sink.send(payload)
            return payload

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.flush()
            except Exception:
                logger.exception("Metrics flush failed")

    def start(self) -> None:
        """Start the recurring timer on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the timer and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
