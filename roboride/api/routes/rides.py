"""
Ride endpoints
==============

POST /api/v1/rides                    -- book a ride (dispatches a vehicle)
GET  /api/v1/rides                    -- all rides, newest first
POST /api/v1/rides/{ride_id}/complete -- close a ride and free its vehicle
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roboride.api.dependencies import (
    get_db,
    get_dispatch_coordinator,
    get_session_factory,
)
from roboride.api.middleware import RATE_LIMIT, limiter
from roboride.api.schemas import ErrorResponse, RideBookingRequest, RideResponse
from roboride.domain.entities import BookingRequest
from roboride.infrastructure.repositories import RideRepository
from roboride.services.completion import complete_ride as _complete_ride
from roboride.services.dispatch import DispatchCoordinator

router = APIRouter(prefix="/rides", tags=["rides"])


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Book a ride",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid booking"},
        503: {"model": ErrorResponse, "description": "No vehicle available"},
        500: {"model": ErrorResponse, "description": "Dispatch or storage failure"},
    },
)
@limiter.limit(RATE_LIMIT)
async def book_ride(
    request: Request,
    body: RideBookingRequest,
    coordinator: DispatchCoordinator = Depends(get_dispatch_coordinator),
):
    return await coordinator.book_ride(
        BookingRequest(
            pickup_location=body.pickup_location,
            destination_location=body.destination_location,
            passenger_count=body.passenger_count,
            rfid_verified=body.rfid_verified,
            estimated_time=body.estimated_time,
            fare=body.fare,
        )
    )


@router.get(
    "",
    response_model=list[RideResponse],
    summary="List all rides, newest first",
)
@limiter.limit(RATE_LIMIT)
async def list_rides(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    return await RideRepository(db).list_all()


@router.post(
    "/{ride_id}/complete",
    response_model=RideResponse,
    summary="Complete a ride",
    description=(
        "Transitions a confirmed or in-progress ride to completed and "
        "returns its vehicle to the available pool."
    ),
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def complete_ride(
    request: Request,
    ride_id: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    return await _complete_ride(session_factory, ride_id)
