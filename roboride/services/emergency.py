"""
Emergency Stop Coordinator
==========================

1. Send the stop command.  The vehicle's stored ``address`` is used when the
   registry can be read; otherwise the address is derived from its id, so a
   registry outage or an unregistered vehicle never blocks the command.  If
   the vehicle does not acknowledge it, nothing is written and the caller is
   told the stop was not confirmed.
2. Record ``speed = 0`` on the vehicle.  An unregistered vehicle has no row
   to update; that is logged and the stop still succeeds.
3. Move every ``confirmed`` / ``in-progress`` ride of that vehicle to
   ``emergency_stopped``.

Steps 2 and 3 are separate units of work.  If step 3 fails the speed
write stands and ``PartialConsistencyError`` is raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roboride.domain.enums import ACTIVE_RIDE_STATUSES, RideStatus
from roboride.domain.errors import PartialConsistencyError, StorageError
from roboride.infrastructure.gateway import VehicleGateway
from roboride.infrastructure.repositories import RideRepository, VehicleRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmergencyStopResult:
    vehicle_id: str
    rides_stopped: int
    registered: bool = True


class EmergencyStopCoordinator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: VehicleGateway,
    ):
        self.session_factory = session_factory
        self.gateway = gateway

    async def emergency_stop(self, vehicle_id: str) -> EmergencyStopResult:
        address = await self._stored_address(vehicle_id)
        await self.gateway.send_emergency_stop(vehicle_id, address)
        logger.info("Vehicle %s acknowledged emergency stop", vehicle_id)

        try:
            async with self.session_factory() as session:
                registered = await VehicleRepository(session).mark_stopped(vehicle_id)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Vehicle %s stopped but speed=0 was not recorded", vehicle_id)
            raise StorageError(
                "Vehicle stopped but its state could not be recorded."
            ) from exc
        if not registered:
            logger.warning("Vehicle %s stopped but is not in the registry", vehicle_id)

        try:
            async with self.session_factory() as session:
                stopped = await RideRepository(session).set_status_for_vehicle_in_states(
                    vehicle_id, ACTIVE_RIDE_STATUSES, RideStatus.EMERGENCY_STOPPED
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception(
                "Partial emergency stop: vehicle=%s failed_write=ride_status; "
                "speed=0 kept",
                vehicle_id,
            )
            raise PartialConsistencyError(
                "Vehicle stopped but its rides could not be updated.",
                vehicle_id=vehicle_id,
                failed_write="ride_status",
            ) from exc

        logger.info("Emergency stop on %s halted %d ride(s)", vehicle_id, stopped)
        return EmergencyStopResult(
            vehicle_id=vehicle_id, rides_stopped=stopped, registered=registered
        )

    async def _stored_address(self, vehicle_id: str) -> Optional[str]:
        """The registry's address for *vehicle_id*, or None to derive one."""
        try:
            async with self.session_factory() as session:
                vehicle = await VehicleRepository(session).get_by_id(vehicle_id)
        except SQLAlchemyError:
            logger.warning(
                "Registry unreadable; stopping %s at its derived address",
                vehicle_id,
                exc_info=True,
            )
            return None
        return vehicle.address if vehicle is not None else None
