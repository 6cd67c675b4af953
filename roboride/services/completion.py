"""Ride completion: closes a ride and hands its vehicle back to the pool."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roboride.domain.entities import check_transition
from roboride.domain.enums import RideStatus
from roboride.domain.errors import RideNotFoundError, StorageError
from roboride.infrastructure.models import RideModel
from roboride.infrastructure.repositories import RideRepository, VehicleRepository

logger = logging.getLogger(__name__)


async def complete_ride(
    session_factory: async_sessionmaker[AsyncSession], ride_id: str
) -> RideModel:
    """
    Mark *ride_id* completed and free its vehicle in one unit of work.

    The vehicle is only released if it still points at this ride, so a
    late completion never frees a vehicle that has moved on.
    """
    try:
        async with session_factory() as session:
            ride = await RideRepository(session).get_by_id(ride_id)
            if ride is None:
                raise RideNotFoundError(f"Ride {ride_id} not found.")
            check_transition(ride.status, RideStatus.COMPLETED)

            ride.status = RideStatus.COMPLETED.value
            released = await VehicleRepository(session).release(ride.vehicle_id, ride.id)
            await session.commit()
    except SQLAlchemyError as exc:
        raise StorageError("Could not complete the ride.") from exc

    if not released:
        logger.warning(
            "Ride %s completed but vehicle %s was not serving it", ride_id, ride.vehicle_id
        )
    logger.info("Ride %s completed", ride_id)
    return ride
