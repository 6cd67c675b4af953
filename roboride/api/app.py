"""
FastAPI application factory.

* Registers routes for telemetry, rides, vehicles, RFID logs and admin.
* Verifies the database and Redis once at startup (lifespan), and opens
  the shared vehicle-command HTTP client.
* Maps the ``RoboRideError`` taxonomy to HTTP status codes.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from roboride.api.middleware import limiter
from roboride.api.routes import admin, rfid, rides, vehicles
from roboride.domain.errors import PartialConsistencyError, RoboRideError
from roboride.infrastructure.database import close_storage, init_storage
from roboride.infrastructure.gateway import VehicleGateway
from roboride.infrastructure.redis_client import close_redis, get_redis

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect storage before serving; release everything on shutdown."""
    await init_storage()
    redis = await get_redis()
    await redis.ping()
    app.state.gateway = VehicleGateway()
    yield
    await app.state.gateway.aclose()
    await close_redis()
    await close_storage()


async def _domain_error_handler(request: Request, exc: RoboRideError) -> JSONResponse:
    if isinstance(exc, PartialConsistencyError):
        logger.error(
            "%s %s left partial state: vehicle=%s ride=%s failed_write=%s",
            request.method,
            request.url.path,
            exc.vehicle_id,
            exc.ride_id,
            exc.failed_write,
        )
    return JSONResponse(status_code=exc.http_status, content={"error": exc.message})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Robo Ride API",
        description=(
            "Coordinates a small fleet of autonomous ride vehicles: "
            "telemetry ingest, ride booking and dispatch, emergency stop "
            "and RFID access logs."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(RoboRideError, _domain_error_handler)

    # Routers
    app.include_router(vehicles.router, prefix="/api/v1")
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(rfid.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
