"""FastAPI dependency injection helpers."""

import redis.asyncio as aioredis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roboride.infrastructure.database import async_session_factory
from roboride.infrastructure.gateway import VehicleGateway
from roboride.infrastructure.redis_client import get_redis
from roboride.services.dispatch import DispatchCoordinator
from roboride.services.emergency import EmergencyStopCoordinator


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Coordinators open one unit of work per step, so they get the factory."""
    return async_session_factory


def get_gateway(request: Request) -> VehicleGateway:
    return request.app.state.gateway


def get_dispatch_coordinator(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    gateway: VehicleGateway = Depends(get_gateway),
    redis: aioredis.Redis = Depends(get_redis),
) -> DispatchCoordinator:
    return DispatchCoordinator(session_factory, gateway, redis)


def get_emergency_coordinator(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    gateway: VehicleGateway = Depends(get_gateway),
) -> EmergencyStopCoordinator:
    return EmergencyStopCoordinator(session_factory, gateway)
