"""
Shared test fixtures.

Each test gets its own SQLite file (via aiosqlite) so the production
models run unchanged without PostgreSQL.  Vehicles are played by an
``httpx.MockTransport`` handler and Redis by a small in-memory double,
so no network or Docker is needed.
"""

from __future__ import annotations

import json
from typing import AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from roboride.domain.entities import BookingRequest
from roboride.infrastructure import models  # noqa: F401  (registers tables)
from roboride.infrastructure.database import Base
from roboride.infrastructure.gateway import VehicleGateway
from roboride.infrastructure.models import RideModel, VehicleModel
from roboride.services.dispatch import DispatchCoordinator
from roboride.services.emergency import EmergencyStopCoordinator


# ── Doubles ───────────────────────────────────────────────────────────


class InMemoryRedis:
    """Just enough of ``redis.asyncio.Redis`` for ``DistributedLock``."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0

    async def ping(self):
        return True


class VehicleStub:
    """Plays the vehicles' control endpoints and records every command."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.failing_hosts: set[str] = set()
        self.timeout_hosts: set[str] = set()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in self.timeout_hosts:
            raise httpx.ReadTimeout("timed out", request=request)
        if host in self.failing_hosts:
            return httpx.Response(500, json={"ok": False})
        return httpx.Response(200, json={"ok": True})

    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a fresh SQLite file, yield a factory, dispose."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'roboride.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def vehicle_stub() -> VehicleStub:
    return VehicleStub()


@pytest_asyncio.fixture
async def gateway(vehicle_stub) -> AsyncGenerator[VehicleGateway, None]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(vehicle_stub))
    gw = VehicleGateway(client, timeout_seconds=1.0, address_suffix=".local")
    yield gw
    await gw.aclose()


@pytest.fixture
def dispatcher(session_factory, gateway, redis) -> DispatchCoordinator:
    return DispatchCoordinator(
        session_factory, gateway, redis, max_passengers=10, lease_seconds=30
    )


@pytest.fixture
def stopper(session_factory, gateway) -> EmergencyStopCoordinator:
    return EmergencyStopCoordinator(session_factory, gateway)


@pytest.fixture
def add_vehicle(session_factory):
    """Insert a vehicle row directly, bypassing telemetry."""

    async def _add(
        vehicle_id: str,
        *,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        available: bool = True,
        current_ride: Optional[str] = None,
        address: Optional[str] = None,
        speed: float = 1.5,
    ) -> VehicleModel:
        async with session_factory() as session:
            vehicle = VehicleModel(
                id=vehicle_id,
                address=address,
                location={"lat": lat, "lng": lng} if lat is not None else None,
                speed=speed,
                is_available=available,
                current_ride=current_ride,
                capacity=10,
            )
            session.add(vehicle)
            await session.commit()
            return vehicle

    return _add


@pytest.fixture
def fetch(session_factory):
    """Read helpers that always go through a fresh session."""

    class _Fetch:
        async def vehicle(self, vehicle_id: str) -> Optional[VehicleModel]:
            async with session_factory() as session:
                return await session.get(VehicleModel, vehicle_id)

        async def ride(self, ride_id: str) -> Optional[RideModel]:
            async with session_factory() as session:
                return await session.get(RideModel, ride_id)

        async def rides(self) -> list[RideModel]:
            async with session_factory() as session:
                result = await session.execute(select(RideModel))
                return list(result.scalars().all())

    return _Fetch()


@pytest.fixture
def make_booking():
    def _make(**overrides) -> BookingRequest:
        fields = {
            "pickup_location": {"lat": 12.9716, "lng": 77.5946},
            "destination_location": {"lat": 12.9352, "lng": 77.6245},
            "passenger_count": 2,
            "rfid_verified": True,
        }
        fields.update(overrides)
        return BookingRequest(**fields)

    return _make
