"""Telemetry ingest: vehicle upsert plus optional RFID taps."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roboride.domain.errors import StorageError
from roboride.infrastructure.models import VehicleModel
from roboride.infrastructure.repositories import RfidTapRepository, VehicleRepository


async def report_telemetry(
    session_factory: async_sessionmaker[AsyncSession],
    vehicle_id: str,
    *,
    location: Optional[Mapping[str, Any]] = None,
    heading: Optional[float] = None,
    speed: Optional[float] = None,
    battery: Optional[float] = None,
    ir_reading: Optional[float] = None,
    rfid_taps: Optional[Iterable[Mapping[str, Any]]] = None,
) -> VehicleModel:
    try:
        async with session_factory() as session:
            vehicle = await VehicleRepository(session).upsert_telemetry(
                vehicle_id,
                location=location,
                heading=heading,
                speed=speed,
                battery=battery,
                ir_reading=ir_reading,
            )
            if rfid_taps:
                await RfidTapRepository(session).append_many(rfid_taps)
            await session.commit()
            return vehicle
    except SQLAlchemyError as exc:
        raise StorageError(f"Could not store telemetry for {vehicle_id}.") from exc
