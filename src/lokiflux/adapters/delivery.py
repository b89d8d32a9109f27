"""HTTP delivery adapters for the metrics and log sinks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from lokiflux.core.errors import DeliveryError
from lokiflux.core.models import DeliveryAttempt

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_TIMEOUT = 10.0


class HttpSink:
    """SinkPort implementation that POSTs payloads with bounded retry.

    A failed attempt (network error, timeout or non-2xx status) is retried
    after ``attempt * base_delay`` seconds, up to ``max_attempts`` attempts.
    When every attempt fails the payload is dropped and an error is logged;
    ``send`` never raises for delivery failures.

    Example:
        ```python
        sink = HttpSink(url, user_id="1234", api_key="secret")
        delivered = await sink.send("http_requests,source=svc total=3")
        await sink.aclose()
        ```
    """

    def __init__(
        self,
        url: str,
        user_id: str,
        api_key: str,
        content_type: str = "text/plain",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the sink.

        Args:
            url: Destination URL.
            user_id: User identifier half of the bearer credential.
            api_key: API key half of the bearer credential.
            content_type: Content-Type header sent with every payload.
            max_attempts: Attempt ceiling per payload (minimum 1).
            base_delay: Backoff unit in seconds; attempt N waits N * base_delay.
            timeout: Per-attempt network timeout in seconds.
            client: Shared httpx client. When omitted the sink creates and
                owns one, closed by ``aclose``.
            sleep: Coroutine used to wait between attempts.
        """
        self.url = url
        self.content_type = content_type
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.timeout = timeout
        self._credential = f"{user_id}:{api_key}"
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self.last_attempts: list[DeliveryAttempt] = []

    @property
    def headers(self) -> dict[str, str]:
        """Headers sent with every attempt."""
        return {
            "Authorization": f"Bearer {self._credential}",
            "Content-Type": self.content_type,
        }

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def _attempt(self, payload: str, number: int) -> None:
        """Perform one POST, raising DeliveryError on any failure."""
        client = self._ensure_client()
        try:
            response = await client.post(
                self.url,
                content=payload.encode(),
                headers=self.headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise DeliveryError(
                f"Attempt {number}: {type(e).__name__}: {e}", attempt=number
            ) from e
        if not response.is_success:
            raise DeliveryError(
                f"Attempt {number}: HTTP {response.status_code} "
                f"{response.reason_phrase}",
                attempt=number,
                status_code=response.status_code,
            )

    async def send(self, payload: str) -> bool:
        """Deliver a payload, retrying with linear backoff.

        Args:
            payload: Encoded body to POST.

        Returns:
            True if an attempt succeeded, False once all attempts failed.
        """
        attempts: list[DeliveryAttempt] = []
        self.last_attempts = attempts
        for number in range(1, self.max_attempts + 1):
            try:
                await self._attempt(payload, number)
            except DeliveryError as e:
                last = number == self.max_attempts
                delay = 0.0 if last else number * self.base_delay
                attempts.append(
                    DeliveryAttempt(number=number, delay=delay, error=str(e))
                )
                logger.warning("Delivery to %s failed: %s", self.url, e)
                if not last:
                    await self._sleep(delay)
                continue
            except Exception:
                logger.exception("Unexpected error delivering to %s", self.url)
                attempts.append(DeliveryAttempt(number=number, error="unexpected"))
                return False
            attempts.append(DeliveryAttempt(number=number))
            logger.debug("Delivered %d bytes to %s", len(payload), self.url)
            return True

        logger.error(
            "All %d delivery attempts to %s failed, payload dropped",
            self.max_attempts,
            self.url,
        )
        return False

    async def aclose(self) -> None:
        """Close the httpx client if this sink created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


class RecordingSink:
    """In-memory implementation of SinkPort.

    Stores every payload in a list. Suitable for testing and local
    development where no telemetry backend is available.

    Args:
        accept: Value returned from ``send``; False simulates a sink that
            gave up after its retries.
    """

    def __init__(self, accept: bool = True) -> None:
        self.payloads: list[str] = []
        self.accept = accept
        self.closed = False

    async def send(self, payload: str) -> bool:
        """Record the payload."""
        self.payloads.append(payload)
        return self.accept

    async def aclose(self) -> None:
        """Mark the sink as closed."""
        self.closed = True
