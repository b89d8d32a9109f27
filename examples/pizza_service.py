"""Example FastAPI pizza service with request telemetry.

Run with:
    LOKIFLUX_METRICS__URL=... LOKIFLUX_LOGGING__URL=... \
        uvicorn examples.pizza_service:app --reload

Telemetry:
    Every request is counted by method and logged (bodies truncated) to the
    log sink. Authentication and order outcomes are recorded by the route
    handlers through the ``get_telemetry`` dependency. Every 60 seconds the
    aggregated window is pushed to the metrics sink as line protocol.
"""

import logging
import time
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel

from lokiflux import LokiHandler, Telemetry, get_settings
from lokiflux.adapters.frameworks.fastapi import (
    create_telemetry_lifespan,
    get_telemetry,
    instrument_app,
)

telemetry = Telemetry.from_settings(get_settings())

app = FastAPI(title="Pizza Service", lifespan=create_telemetry_lifespan(telemetry))
instrument_app(app, telemetry)

logger = logging.getLogger("pizza_service")
logger.addHandler(LokiHandler(telemetry.shipper, log_type="app"))

TelemetryDep = Annotated[Telemetry, Depends(get_telemetry)]


class Credentials(BaseModel):
    email: str
    password: str


class OrderItem(BaseModel):
    menuId: int
    description: str
    price: float


class Order(BaseModel):
    franchiseId: int
    storeId: int
    items: list[OrderItem]


@app.put("/api/auth")
async def login(
    credentials: Credentials, request: Request, telemetry: TelemetryDep
) -> dict[str, str]:
    """Authenticate a diner (demo: any password except "wrong")."""
    success = credentials.password != "wrong"
    telemetry.record_auth_attempt(success)
    if not success:
        logger.warning("Failed login", extra={"email": credentials.email})
        raise HTTPException(status_code=401, detail="unknown user")
    request.state.user_id = credentials.email
    return {"token": "opaque-token"}


@app.post("/api/order")
async def create_order(
    order: Order, request: Request, telemetry: TelemetryDep
) -> dict[str, object]:
    """Create an order; a total over 100 simulates a factory failure."""
    start = time.perf_counter()
    items = [item.model_dump() for item in order.items]
    if sum(item["price"] for item in items) > 100:
        telemetry.record_order(items, success=False)
        raise HTTPException(status_code=500, detail="Failed to fulfill order")
    latency_ms = (time.perf_counter() - start) * 1000
    telemetry.record_order(items, success=True, latency_ms=latency_ms)
    return {"order": order.model_dump(), "jwt": "factory-token"}


@app.get("/api/order/menu")
async def menu() -> list[dict[str, object]]:
    """Return the static menu."""
    return [{"id": 1, "title": "Veggie", "price": 0.0038}]
