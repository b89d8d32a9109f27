"""In-process metric aggregation for the current flush window."""

import logging
import threading
from collections.abc import Iterable, Mapping
from typing import Any

from lokiflux.core.models import TRACKED_METHODS, MetricWindow

logger = logging.getLogger(__name__)


def _item_price(item: Any) -> float:
    if isinstance(item, Mapping):
        return float(item.get("price", 0) or 0)
    return float(getattr(item, "price", 0) or 0)


class MetricAggregator:
    """Thread-safe accumulator for request and business-event metrics.

    All record methods are synchronous and may be called concurrently from
    request handlers. A single lock guards the live window; swapping the
    window in ``snapshot_and_reset`` happens under the same lock, so each
    record call lands in exactly one window.

    Example:
        ```python
        aggregator = MetricAggregator()
        aggregator.record_request("GET")
        window = aggregator.snapshot_and_reset()
        assert window.request_counts["GET"] == 1
        ```
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._window = MetricWindow()

    def record_request(self, method: str) -> None:
        """Count a request; methods outside GET/POST/PUT/DELETE are ignored."""
        method = method.upper()
        if method not in TRACKED_METHODS:
            return
        with self._lock:
            self._window.request_counts[method] += 1
            count = self._window.request_counts[method]
        logger.debug("HTTP request method=%s count=%d", method, count)

    def record_active_user(self, user_id: Any) -> None:
        """Add a user to the active set for this window."""
        if user_id is None:
            return
        with self._lock:
            self._window.active_users.add(user_id)
            active = len(self._window.active_users)
        logger.debug("Active users=%d", active)

    def record_auth_attempt(self, success: bool) -> None:
        """Count an authentication attempt."""
        with self._lock:
            if success:
                self._window.auth_success += 1
            else:
                self._window.auth_failure += 1

    def record_order(
        self,
        items: Iterable[Any] | None,
        success: bool,
        latency_ms: float | None = None,
    ) -> None:
        """Record an order-creation outcome.

        Args:
            items: Ordered items, each a mapping with a ``price`` key or an
                object with a ``price`` attribute. None counts as no items.
            success: Whether the order was created.
            latency_ms: Order-creation latency, recorded only on success.
        """
        if not success:
            with self._lock:
                self._window.creation_failures += 1
            logger.debug("Order creation failure recorded")
            return

        items = list(items or [])
        revenue = sum(_item_price(item) for item in items)
        with self._lock:
            self._window.pizzas_sold += len(items)
            self._window.revenue += revenue
            if latency_ms is not None:
                self._window.latencies_ms.append(float(latency_ms))
        logger.debug(
            "Order recorded items=%d revenue=%.2f latency_ms=%s",
            len(items),
            revenue,
            latency_ms,
        )

    def snapshot(self) -> MetricWindow:
        """Return a copy of the current window without resetting it."""
        with self._lock:
            window = self._window
            return MetricWindow(
                request_counts=dict(window.request_counts),
                active_users=set(window.active_users),
                auth_success=window.auth_success,
                auth_failure=window.auth_failure,
                pizzas_sold=window.pizzas_sold,
                revenue=window.revenue,
                creation_failures=window.creation_failures,
                latencies_ms=list(window.latencies_ms),
            )

    def snapshot_and_reset(self) -> MetricWindow:
        """Atomically detach the current window and start an empty one."""
        fresh = MetricWindow()
        with self._lock:
            window, self._window = self._window, fresh
        return window


def average_latency(window: MetricWindow) -> float:
    """Mean order-creation latency in milliseconds, 0 when no samples."""
    if not window.latencies_ms:
        return 0.0
    return sum(window.latencies_ms) / len(window.latencies_ms)
