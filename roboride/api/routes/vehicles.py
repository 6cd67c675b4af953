"""
Vehicle endpoints
=================

POST /api/v1/sensor                         -- telemetry report from a vehicle
GET  /api/v1/vehicle/{vehicle_id}           -- last-known vehicle state
POST /api/v1/vehicle/{vehicle_id}/emergency-stop
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roboride.api.dependencies import (
    get_db,
    get_emergency_coordinator,
    get_session_factory,
)
from roboride.api.middleware import RATE_LIMIT, limiter
from roboride.api.schemas import (
    EmergencyStopResponse,
    SuccessResponse,
    TelemetryReport,
    VehicleResponse,
)
from roboride.domain.errors import RoboRideError, VehicleNotFoundError
from roboride.infrastructure.repositories import VehicleRepository
from roboride.services.emergency import EmergencyStopCoordinator
from roboride.services.telemetry import report_telemetry

router = APIRouter(tags=["vehicles"])


@router.post(
    "/sensor",
    response_model=SuccessResponse,
    summary="Ingest vehicle telemetry",
)
@limiter.limit(RATE_LIMIT)
async def ingest_telemetry(
    request: Request,
    body: TelemetryReport,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    await report_telemetry(
        session_factory,
        body.vehicle_id,
        location=body.location.model_dump() if body.location else None,
        heading=body.heading,
        speed=body.speed,
        battery=body.battery,
        ir_reading=body.ir_reading,
        rfid_taps=[tap.model_dump() for tap in body.rfid_taps or []],
    )
    return SuccessResponse()


@router.get(
    "/vehicle/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Get vehicle status",
)
@limiter.limit(RATE_LIMIT)
async def get_vehicle(
    request: Request,
    vehicle_id: str,
    db: AsyncSession = Depends(get_db),
):
    vehicle = await VehicleRepository(db).get_by_id(vehicle_id)
    if not vehicle:
        raise VehicleNotFoundError(f"Vehicle {vehicle_id} not found.")
    return vehicle


@router.post(
    "/vehicle/{vehicle_id}/emergency-stop",
    response_model=EmergencyStopResponse,
    response_model_exclude_none=True,
    summary="Trigger an emergency stop",
    description=(
        "Commands the vehicle to stop, records speed 0 and moves its "
        "confirmed / in-progress rides to emergency_stopped.  Vehicles not yet "
        "in the registry are still commanded.  Always answers with an "
        "explicit success flag."
    ),
)
@limiter.limit(RATE_LIMIT)
async def emergency_stop(
    request: Request,
    vehicle_id: str,
    coordinator: EmergencyStopCoordinator = Depends(get_emergency_coordinator),
):
    try:
        result = await coordinator.emergency_stop(vehicle_id)
    except RoboRideError as exc:
        body = EmergencyStopResponse(
            success=False,
            message=f"Failed to trigger emergency stop: {exc.message}",
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=body.model_dump(by_alias=True, exclude_none=True),
        )
    return EmergencyStopResponse(
        success=True,
        message="Emergency stop triggered. Vehicle stopped.",
        rides_stopped=result.rides_stopped,
    )
