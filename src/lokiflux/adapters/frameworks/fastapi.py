"""FastAPI adapter for request capture and the flush lifecycle."""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import FastAPI, Request

from lokiflux.adapters.frameworks.asgi import RequestCaptureMiddleware
from lokiflux.telemetry import Telemetry


def instrument_app(app: FastAPI, telemetry: Telemetry) -> FastAPI:
    """Add request capture to a FastAPI app and expose the telemetry instance.

    Args:
        app: The FastAPI application.
        telemetry: Instance shared with route handlers via ``get_telemetry``.

    Returns:
        The same app, for chaining.
    """
    app.state.telemetry = telemetry
    app.add_middleware(
        RequestCaptureMiddleware,
        aggregator=telemetry.aggregator,
        shipper=telemetry.shipper,
        exclude_paths=telemetry.exclude_paths,
    )
    return app


def create_telemetry_lifespan(
    telemetry: Telemetry,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Create a lifespan that runs the flush timer for the app's lifetime.

    On shutdown the timer is stopped, pending logs are drained and the
    sinks are closed.
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await telemetry.start()
        try:
            yield
        finally:
            await telemetry.stop()

    return lifespan


def get_telemetry(request: Request) -> Telemetry:
    """FastAPI dependency returning the app's Telemetry instance."""
    telemetry: Telemetry = request.app.state.telemetry
    return telemetry
