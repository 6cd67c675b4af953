"""
Repository Pattern -- abstracts DB access so coordinators stay DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``SQLAlchemyError`` is allowed to
propagate; the services layer decides what it means.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RfidTapModel, RideModel, VehicleModel
from roboride.domain.distance import distance_to
from roboride.domain.entities import Location
from roboride.domain.enums import RideStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VehicleRepository:
    """The vehicle registry."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, vehicle_id: str) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    def _insert(self, table):
        if self.session.bind.dialect.name == "sqlite":
            return sqlite_insert(table)
        return pg_insert(table)

    async def upsert_telemetry(
        self,
        vehicle_id: str,
        *,
        location: Optional[Mapping[str, Any]] = None,
        heading: Optional[float] = None,
        speed: Optional[float] = None,
        battery: Optional[float] = None,
        ir_reading: Optional[float] = None,
    ) -> VehicleModel:
        """Create the vehicle on first sight, then overwrite its telemetry."""
        vehicle = await self.get_by_id(vehicle_id)
        if vehicle is None:
            # a concurrent first report may insert the same id first
            await self.session.execute(
                self._insert(VehicleModel)
                .values(id=vehicle_id, is_available=True, capacity=10)
                .on_conflict_do_nothing(index_elements=[VehicleModel.id])
            )
            vehicle = await self.get_by_id(vehicle_id)

        vehicle.location = dict(location) if location is not None else None
        vehicle.heading = heading
        vehicle.speed = speed
        vehicle.battery = battery
        vehicle.ir_reading = ir_reading
        vehicle.last_update = _utcnow()
        await self.session.flush()
        return vehicle

    async def find_available(
        self,
        near: Optional[Location] = None,
    ) -> list[VehicleModel]:
        """
        Available vehicles, best candidate first.

        Without *near* the order is by id.  With *near* it is by straight-line
        distance from the last reported location (unknown locations last),
        ties broken by id.
        """
        query = (
            select(VehicleModel)
            .where(VehicleModel.is_available.is_(True))
            .order_by(VehicleModel.id)
        )
        result = await self.session.execute(query)
        vehicles = list(result.scalars().all())
        if near is not None:
            vehicles.sort(
                key=lambda v: (
                    distance_to(near, Location.from_mapping(v.location)),
                    v.id,
                )
            )
        return vehicles

    async def claim(self, vehicle_id: str, ride_ref: str) -> bool:
        """Compare-and-swap: mark dispatched only if still available."""
        result = await self.session.execute(
            update(VehicleModel)
            .where(
                VehicleModel.id == vehicle_id,
                VehicleModel.is_available.is_(True),
            )
            .values(is_available=False, current_ride=ride_ref)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release(self, vehicle_id: str, ride_ref: str) -> bool:
        """Make the vehicle available again if it is still serving *ride_ref*."""
        result = await self.session.execute(
            update(VehicleModel)
            .where(
                VehicleModel.id == vehicle_id,
                VehicleModel.current_ride == ride_ref,
            )
            .values(is_available=True, current_ride=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_stopped(self, vehicle_id: str) -> bool:
        result = await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .values(speed=0)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class RideRepository:
    """The ride ledger."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        ride_id: str,
        pickup_location: Mapping[str, Any],
        destination_location: Mapping[str, Any],
        passenger_count: int,
        rfid_verified: bool,
        vehicle_id: str,
        status: RideStatus = RideStatus.CONFIRMED,
        estimated_time: Optional[float] = None,
        fare: Optional[float] = None,
        created_at: Optional[datetime] = None,
    ) -> RideModel:
        ride = RideModel(
            id=ride_id,
            pickup_location=dict(pickup_location),
            destination_location=dict(destination_location),
            passenger_count=passenger_count,
            rfid_verified=rfid_verified,
            status=status.value,
            estimated_time=estimated_time,
            fare=fare,
            vehicle_id=vehicle_id,
            created_at=created_at or _utcnow(),
        )
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: str) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def list_all(self) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel).order_by(
                RideModel.created_at.desc(), RideModel.id.desc()
            )
        )
        return list(result.scalars().all())

    async def set_status_for_vehicle_in_states(
        self,
        vehicle_id: str,
        from_statuses: Iterable[RideStatus],
        to_status: RideStatus,
    ) -> int:
        """Bulk status move scoped to one vehicle.  Returns rows changed."""
        result = await self.session.execute(
            update(RideModel)
            .where(
                RideModel.vehicle_id == vehicle_id,
                RideModel.status.in_([s.value for s in from_statuses]),
            )
            .values(status=to_status.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class RfidTapRepository:
    """Append-only RFID access log."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append_many(self, taps: Iterable[Mapping[str, Any]]) -> int:
        now = _utcnow()
        count = 0
        for tap in taps:
            self.session.add(
                RfidTapModel(
                    card_id=tap.get("card_id"),
                    user_id=tap.get("user_id"),
                    name=tap.get("name"),
                    is_verified=bool(tap.get("is_verified", False)),
                    timestamp=now,
                )
            )
            count += 1
        await self.session.flush()
        return count

    async def recent(self, limit: int = 100) -> list[RfidTapModel]:
        result = await self.session.execute(
            select(RfidTapModel)
            .order_by(RfidTapModel.timestamp.desc(), RfidTapModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
