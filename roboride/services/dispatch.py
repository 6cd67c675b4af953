"""
Dispatch Coordinator
====================

Books a ride by walking one request through::

    REQUESTED -> VALIDATED -> VEHICLE_SELECTED -> COMMAND_SENT -> CONFIRMED | FAILED

Ordering
--------
1. Validate the booking.  Nothing has been read yet.
2. Rank available vehicles (nearest to pickup first) and take a Redis
   lease on the first one nobody else holds, re-checking it is still
   available once leased.
3. Command the vehicle to the pickup point.  A failed command leaves the
   registry untouched: the vehicle stays available.
4. Claim the vehicle (compare-and-swap on ``is_available``) in its own
   unit of work.
5. Write the ride in a second unit of work.  If that write fails the claim
   is compensated by releasing the vehicle; if the compensation fails too,
   ``PartialConsistencyError`` reports the drift.

The lease is released on every path.  Nothing is retried here.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roboride.config import settings
from roboride.domain.entities import BookingAttempt, BookingRequest, Location
from roboride.domain.enums import DispatchState, RideStatus
from roboride.domain.errors import (
    NoVehicleAvailableError,
    PartialConsistencyError,
    RoboRideError,
    StorageError,
)
from roboride.infrastructure.gateway import VehicleGateway
from roboride.infrastructure.locks import DistributedLock, vehicle_lease
from roboride.infrastructure.models import RideModel, VehicleModel
from roboride.infrastructure.repositories import RideRepository, VehicleRepository

logger = logging.getLogger(__name__)


class DispatchCoordinator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: VehicleGateway,
        redis: aioredis.Redis,
        *,
        max_passengers: int = settings.max_passengers,
        lease_seconds: int = settings.vehicle_lease_seconds,
    ):
        self.session_factory = session_factory
        self.gateway = gateway
        self.redis = redis
        self.max_passengers = max_passengers
        self.lease_seconds = lease_seconds

    async def book_ride(self, request: BookingRequest) -> RideModel:
        attempt = BookingAttempt()
        try:
            ride = await self._run(attempt, request)
        except RoboRideError as exc:
            logger.info(
                "Booking %s failed after %s (vehicle=%s): %s",
                attempt.ride_id,
                attempt.state.value,
                attempt.vehicle_id,
                exc.message,
            )
            attempt.advance(DispatchState.FAILED)
            raise
        attempt.advance(DispatchState.CONFIRMED)
        logger.info("Booking %s confirmed on vehicle %s", ride.id, ride.vehicle_id)
        return ride

    # ── Steps ─────────────────────────────────────────────────────────

    async def _run(self, attempt: BookingAttempt, request: BookingRequest) -> RideModel:
        pickup, destination = request.validate(self.max_passengers)
        attempt.advance(DispatchState.VALIDATED)

        vehicle, lease = await self._select_vehicle(pickup)
        attempt.vehicle_id = vehicle.id
        attempt.advance(DispatchState.VEHICLE_SELECTED)
        try:
            await self.gateway.send_move_to_pickup(vehicle.id, pickup, vehicle.address)
            attempt.advance(DispatchState.COMMAND_SENT)

            await self._claim(attempt)
            return await self._record_ride(attempt, request, pickup, destination)
        finally:
            await self._release_lease(lease)

    async def _select_vehicle(
        self, pickup: Location
    ) -> tuple[VehicleModel, DistributedLock]:
        try:
            async with self.session_factory() as session:
                candidates = await VehicleRepository(session).find_available(near=pickup)
        except SQLAlchemyError as exc:
            raise StorageError("Could not read the vehicle registry.") from exc

        for candidate in candidates:
            lease = vehicle_lease(self.redis, candidate.id, self.lease_seconds)
            try:
                acquired = await lease.acquire()
            except RedisError as exc:
                raise StorageError("Vehicle lease store is unavailable.") from exc
            if not acquired:
                logger.debug("Vehicle %s is leased by another booking", candidate.id)
                continue

            # another booking may have claimed it between our read and the lease
            try:
                current = await self._reload(candidate.id)
            except StorageError:
                await self._release_lease(lease)
                raise
            if current is not None and current.is_available:
                return current, lease
            await self._release_lease(lease)

        raise NoVehicleAvailableError("No vehicles available.")

    async def _reload(self, vehicle_id: str) -> Optional[VehicleModel]:
        try:
            async with self.session_factory() as session:
                return await VehicleRepository(session).get_by_id(vehicle_id)
        except SQLAlchemyError as exc:
            raise StorageError("Could not read the vehicle registry.") from exc

    async def _claim(self, attempt: BookingAttempt) -> None:
        vehicle_id = attempt.vehicle_id
        try:
            async with self.session_factory() as session:
                claimed = await VehicleRepository(session).claim(
                    vehicle_id, attempt.ride_id
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "Vehicle %s was commanded for %s but could not be marked dispatched",
                vehicle_id,
                attempt.ride_id,
            )
            raise StorageError("Could not mark the vehicle as dispatched.") from exc

        if not claimed:
            logger.error(
                "Vehicle %s was commanded for %s but was no longer available",
                vehicle_id,
                attempt.ride_id,
            )
            raise StorageError(
                f"Vehicle {vehicle_id} was claimed by another booking."
            )

    async def _record_ride(
        self,
        attempt: BookingAttempt,
        request: BookingRequest,
        pickup: Location,
        destination: Location,
    ) -> RideModel:
        try:
            async with self.session_factory() as session:
                ride = await RideRepository(session).create(
                    ride_id=attempt.ride_id,
                    pickup_location=pickup.as_dict(),
                    destination_location=destination.as_dict(),
                    passenger_count=request.passenger_count,
                    rfid_verified=bool(request.rfid_verified),
                    vehicle_id=attempt.vehicle_id,
                    status=RideStatus.CONFIRMED,
                    estimated_time=request.estimated_time,
                    fare=request.fare,
                )
                await session.commit()
                return ride
        except SQLAlchemyError as exc:
            await self._compensate(attempt, exc)
            raise StorageError(
                "Could not record the ride; the vehicle was released."
            ) from exc

    async def _compensate(self, attempt: BookingAttempt, cause: Exception) -> None:
        logger.warning(
            "Ride %s could not be written (%s); releasing vehicle %s",
            attempt.ride_id,
            cause,
            attempt.vehicle_id,
        )
        try:
            async with self.session_factory() as session:
                await VehicleRepository(session).release(
                    attempt.vehicle_id, attempt.ride_id
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception(
                "Partial booking: vehicle=%s ride=%s failed_write=ride_create; "
                "vehicle left unavailable",
                attempt.vehicle_id,
                attempt.ride_id,
            )
            raise PartialConsistencyError(
                "Vehicle was dispatched but the ride could not be recorded.",
                vehicle_id=attempt.vehicle_id,
                ride_id=attempt.ride_id,
                failed_write="ride_create",
            ) from exc

    async def _release_lease(self, lease: DistributedLock) -> None:
        try:
            await lease.release()
        except RedisError:
            # the TTL frees it eventually
            logger.warning("Could not release %s", lease.key, exc_info=True)
