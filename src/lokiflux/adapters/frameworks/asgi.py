"""ASGI request capture middleware.

This adapter is framework-agnostic: it works with any ASGI application
(FastAPI, Starlette, plain ASGI callables) and any ASGI server.
"""

import fnmatch
import json
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

from lokiflux.adapters.shipper import LogShipper
from lokiflux.core import logs
from lokiflux.core.aggregator import MetricAggregator
from lokiflux.core.errors import CaptureError

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Message = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, Message]]
Send = Callable[[Message], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

# Captured bodies stop growing at this size. Truncated request bodies are not
# parsed and truncated response bodies are logged as text.
MAX_CAPTURED_BODY = 64 * 1024


def _get_header(scope: Scope, name: str) -> str | None:
    """Return the first header value matching ``name`` (case-insensitive)."""
    header_bytes = name.lower().encode()
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for key, value in headers:
        if key.lower() == header_bytes:
            return value.decode("latin-1")
    return None


def _original_url(scope: Scope) -> str:
    """Path plus query string, as the client requested it."""
    path: str = scope.get("path", "")
    query = scope.get("query_string", b"").decode(errors="replace")
    return f"{path}?{query}" if query else path


def _user_id(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, dict):
        return value.get("id")
    return getattr(value, "id", None)


def _extract_user_id(scope: Scope) -> Any:
    """Find the authenticated user's id attached by the application.

    Looks at ``scope["user"]`` (authentication middleware) and then at
    ``scope["state"]`` (``request.state.user`` or ``request.state.user_id``).
    """
    user_id = _user_id(scope.get("user"))
    if user_id is not None:
        return user_id
    state = scope.get("state") or {}
    user_id = _user_id(state.get("user"))
    if user_id is not None:
        return user_id
    return state.get("user_id")


def _parse_request_body(raw: bytes) -> Any:
    """Shallow copy of a JSON request body; anything else becomes ``{}``."""
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except (ValueError, UnicodeDecodeError, RecursionError):
        return {}
    if isinstance(body, dict):
        return dict(body)
    if isinstance(body, list):
        return list(body)
    return {}


@dataclass
class BodyCapture:
    """Copy of a message body, capped at ``MAX_CAPTURED_BODY`` bytes."""

    body: bytearray = field(default_factory=bytearray)
    overflow: bool = False

    def add_chunk(self, chunk: bytes) -> None:
        if self.overflow:
            return
        if len(self.body) + len(chunk) > MAX_CAPTURED_BODY:
            self.body.extend(chunk[: MAX_CAPTURED_BODY - len(self.body)])
            self.overflow = True
            return
        self.body.extend(chunk)

    def request_body(self) -> Any:
        """Parsed request body; bodies over the cap are not parsed."""
        if self.overflow:
            return {}
        return _parse_request_body(bytes(self.body))


@dataclass
class ResponseCapture(BodyCapture):
    """Per-request response capture state.

    Lifecycle: pending -> response-sent -> log-dispatched. ``dispatched``
    guarantees at most one log record per request/response cycle.
    """

    status_code: int = 0
    content_type: str = ""
    finished: bool = False
    dispatched: bool = False

    def decoded_body(self) -> Any:
        """Return the response body as sent.

        JSON responses (structured send path) decode to the original object,
        everything else (raw send path) decodes to text.
        """
        if not self.body:
            return None
        if "json" in self.content_type and not self.overflow:
            try:
                return json.loads(self.body)
            except (ValueError, RecursionError):
                pass
        return self.body.decode("utf-8", errors="replace")


class RequestCaptureMiddleware:
    """ASGI middleware that feeds the aggregator and ships request logs.

    For every HTTP request it counts the method and tracks the active user.
    Request body chunks are copied as the wrapped app receives them, and the
    response status and body as they are sent. Both copies are capped at
    ``MAX_CAPTURED_BODY``. Once the final body chunk has been sent, an
    ``http_request`` log record is dispatched in the background.
    Failures while capturing are logged locally and never reach the client.
    """

    def __init__(
        self,
        app: ASGIApp,
        aggregator: MetricAggregator,
        shipper: LogShipper | None,
        exclude_paths: list[str] | None = None,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            aggregator: Receives request and active-user counts.
            shipper: Delivers request and exception logs (optional).
            exclude_paths: Paths skipped entirely. Supports exact matches and
                wildcard patterns (e.g., "/docs*").
        """
        self.app = app
        self.aggregator = aggregator
        self.shipper = shipper
        self.exclude_paths = exclude_paths or []

    def _path_excluded(self, path: str) -> bool:
        """Check if path matches any pattern in exclude_paths."""
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that processes requests through the wrapped app."""
        if scope["type"] != "http" or self._path_excluded(scope.get("path", "")):
            await self.app(scope, receive, send)
            return

        method: str = scope["method"]
        self.aggregator.record_request(method)
        has_auth = bool(_get_header(scope, "authorization"))
        request = BodyCapture()
        capture = ResponseCapture()

        async def capturing_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request.add_chunk(message.get("body", b""))
            return message

        def finalize() -> None:
            if capture.dispatched:
                return
            capture.dispatched = True
            self._safe_dispatch(scope, has_auth, request, capture)

        async def wrapped_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                capture.status_code = message["status"]
                capture.content_type = _get_header(message, "content-type") or ""
            elif message["type"] == "http.response.body":
                capture.add_chunk(message.get("body", b""))
                capture.finished = not message.get("more_body", False)
            await send(message)
            if capture.finished:
                finalize()

        try:
            await self.app(scope, capturing_receive, wrapped_send)
        except Exception as e:
            if not capture.status_code:
                capture.status_code = 500
            finalize()
            if self.shipper is not None:
                self.shipper.log_exception(e)
            raise
        finally:
            self.aggregator.record_active_user(_extract_user_id(scope))
        finalize()

    def _dispatch(
        self,
        scope: Scope,
        has_auth: bool,
        request: BodyCapture,
        capture: ResponseCapture,
    ) -> None:
        """Build the http_request record and hand it to the shipper."""
        if self.shipper is None:
            return
        try:
            record = logs.http_request(
                method=scope["method"],
                path=_original_url(scope),
                status_code=capture.status_code,
                has_auth=has_auth,
                request_body=request.request_body(),
                response_body=capture.decoded_body(),
                max_length=self.shipper.max_length,
            )
            self.shipper.dispatch(record)
        except Exception as e:
            raise CaptureError(f"Failed to log HTTP request: {e}") from e

    def _safe_dispatch(
        self,
        scope: Scope,
        has_auth: bool,
        request: BodyCapture,
        capture: ResponseCapture,
    ) -> None:
        try:
            self._dispatch(scope, has_auth, request, capture)
        except CaptureError:
            logger.exception("Request log capture failed for %s", scope.get("path"))
