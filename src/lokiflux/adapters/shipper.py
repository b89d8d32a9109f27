"""Fire-and-forget log shipping to the log sink.

Log records are pushed from request handlers, middleware and logging
handlers that must never wait on the telemetry backend. ``dispatch``
schedules delivery in the background and returns immediately.

All deliveries run on a single event loop so the sink's HTTP client is
never shared across loops: the first loop that dispatches (or a private
daemon loop, when dispatching from code without a running loop) owns it.
"""

import asyncio
import concurrent.futures
import logging
import threading
import traceback
from typing import Any

from lokiflux.core import logs
from lokiflux.core.encoding.loki import encode_streams
from lokiflux.core.models import LogRecord
from lokiflux.core.ports import SinkPort

logger = logging.getLogger(__name__)


class LogShipper:
    """Encodes log records in Loki push format and hands them to a sink.

    Example:
        ```python
        shipper = LogShipper(HttpSink(url, user_id, api_key), "pizza-service")
        shipper.dispatch(logs.warn("auth", {"reason": "bad password"}))
        await shipper.drain()
        ```
    """

    def __init__(
        self,
        sink: SinkPort,
        component: str,
        max_length: int = logs.DEFAULT_MAX_LENGTH,
    ) -> None:
        """Initialize the shipper.

        Args:
            sink: Delivery adapter for the log backend.
            component: Value of the ``component`` stream label.
            max_length: Redaction limit applied by the record helpers.
        """
        self.sink = sink
        self.component = component
        self.max_length = max_length
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_lock = threading.Lock()
        self._tasks: set[asyncio.Task[bool]] = set()
        self._futures: set[concurrent.futures.Future[bool]] = set()
        self._futures_lock = threading.Lock()

    async def ship(self, record: LogRecord) -> bool:
        """Encode and deliver a record, waiting for the sink.

        Returns:
            True if the sink accepted the record.
        """
        payload = encode_streams([record], self.component)
        return await self.sink.send(payload)

    async def _ship_safely(self, record: LogRecord) -> bool:
        try:
            return await self.ship(record)
        except Exception:
            logger.exception("Failed to ship %s log record", record.type)
            return False

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Use ``loop`` for all deliveries from now on."""
        with self._loop_lock:
            self._loop = loop

    def _owning_loop(self) -> asyncio.AbstractEventLoop:
        with self._loop_lock:
            if self._loop is not None and not self._loop.is_closed():
                return self._loop
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                self._loop = _start_background_loop()
            return self._loop

    def dispatch(self, record: LogRecord) -> None:
        """Schedule delivery of a record without waiting for it."""
        loop = self._owning_loop()
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            task = loop.create_task(self._ship_safely(record))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return
        future = asyncio.run_coroutine_threadsafe(self._ship_safely(record), loop)
        with self._futures_lock:
            self._futures.add(future)
        future.add_done_callback(self._forget_future)

    def _forget_future(self, future: concurrent.futures.Future[bool]) -> None:
        # Runs on the delivery loop thread.
        with self._futures_lock:
            self._futures.discard(future)

    def _pending_futures(self) -> list[concurrent.futures.Future[bool]]:
        with self._futures_lock:
            return list(self._futures)

    async def drain(self) -> None:
        """Wait for every record dispatched so far to finish delivery."""
        pending: list[Any] = list(self._tasks)
        pending.extend(asyncio.wrap_future(f) for f in self._pending_futures())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def wait(self, timeout: float | None = None) -> None:
        """Block until background deliveries finish (for synchronous callers)."""
        concurrent.futures.wait(self._pending_futures(), timeout=timeout)

    def info(self, log_type: str, body: dict[str, Any] | None = None) -> None:
        """Dispatch an info-level record."""
        self.dispatch(logs.info(log_type, body))

    def warn(self, log_type: str, body: dict[str, Any] | None = None) -> None:
        """Dispatch a warn-level record."""
        self.dispatch(logs.warn(log_type, body))

    def error(self, log_type: str, body: dict[str, Any] | None = None) -> None:
        """Dispatch an error-level record."""
        self.dispatch(logs.error(log_type, body))

    def log_db_query(
        self, query: str, params: Any = None, duration_ms: float | None = None
    ) -> None:
        """Dispatch a db_query record."""
        self.dispatch(logs.db_query(query, params, duration_ms, self.max_length))

    def log_exception(self, exc: BaseException) -> None:
        """Dispatch an exception record built from ``exc`` and its traceback."""
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self.dispatch(logs.exception(str(exc), stack, self.max_length))


def _start_background_loop() -> asyncio.AbstractEventLoop:
    """Start an event loop on a daemon thread and return it."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(
        target=loop.run_forever, name="lokiflux-log-shipper", daemon=True
    )
    thread.start()
    return loop
