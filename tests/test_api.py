"""
Integration tests for the REST API endpoints.

The app runs against a per-test SQLite file; the gateway talks to the
``VehicleStub`` transport and Redis is the in-memory double.  Startup
(lifespan) is not exercised: ``ASGITransport`` does not send lifespan
events, so every dependency it would set up is overridden here.
"""

from __future__ import annotations

from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from unittest.mock import AsyncMock

from roboride.api.app import create_app
from roboride.api.dependencies import get_db, get_gateway, get_session_factory
from roboride.api.middleware import limiter
from roboride.infrastructure.redis_client import get_redis

BOOKING = {
    "pickupLocation": {"lat": 12.9716, "lng": 77.5946},
    "destinationLocation": {"lat": 12.9352, "lng": 77.6245},
    "passengerCount": 3,
    "rfidVerified": True,
}


# ── Fixture ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory, gateway, redis):
    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_redis] = lambda: redis
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _report(client, vehicle_id, **extra):
    body = {
        "vehicleId": vehicle_id,
        "location": {"lat": 12.9716, "lng": 77.5946},
        "heading": 90,
        "speed": 1.2,
        "battery": 88,
        "irReading": 412,
    }
    body.update(extra)
    return await client.post("/api/v1/sensor", json=body)


# ── Telemetry / vehicles ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_ready(client: AsyncClient):
    resp = await client.get("/api/v1/admin/ready")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "ok", "redis": "ok"}


@pytest.mark.asyncio
async def test_not_ready_when_redis_down(client: AsyncClient, redis):
    redis.ping = AsyncMock(side_effect=ConnectionError("refused"))
    resp = await client.get("/api/v1/admin/ready")
    assert resp.status_code == 503
    assert resp.json()["redis"] == "unavailable"


@pytest.mark.asyncio
async def test_telemetry_creates_vehicle(client: AsyncClient):
    resp = await _report(client, "robo-1")
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    vehicle = (await client.get("/api/v1/vehicle/robo-1")).json()
    assert vehicle["id"] == "robo-1"
    assert vehicle["isAvailable"] is True
    assert vehicle["currentRide"] is None
    assert vehicle["irReading"] == 412
    assert vehicle["location"] == {"lat": 12.9716, "lng": 77.5946}
    assert vehicle["lastUpdate"] is not None


@pytest.mark.asyncio
async def test_telemetry_requires_vehicle_id(client: AsyncClient):
    resp = await client.post("/api/v1/sensor", json={"speed": 1})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_unknown_vehicle_is_404(client: AsyncClient):
    resp = await client.get("/api/v1/vehicle/nope")
    assert resp.status_code == 404
    assert "not found" in resp.json()["error"]


@pytest.mark.asyncio
async def test_rfid_taps_are_logged_newest_first(client: AsyncClient):
    await _report(client, "robo-1", rfidTaps=[{"cardId": "AA01", "isVerified": True}])
    await _report(client, "robo-1", rfidTaps=[{"cardId": "BB02", "name": "Ravi"}])

    resp = await client.get("/api/v1/rfid")
    assert resp.status_code == 200
    taps = resp.json()
    assert [t["cardId"] for t in taps] == ["BB02", "AA01"]
    assert taps[1]["isVerified"] is True
    assert taps[0]["name"] == "Ravi"


# ── Booking ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_book_ride(client: AsyncClient, vehicle_stub):
    await _report(client, "V1")

    resp = await client.post("/api/v1/rides", json=BOOKING)

    assert resp.status_code == 201
    ride = resp.json()
    assert ride["vehicleId"] == "V1"
    assert ride["status"] == "confirmed"
    assert ride["passengerCount"] == 3
    assert ride["rfidVerified"] is True
    assert ride["pickupLocation"] == BOOKING["pickupLocation"]

    vehicle = (await client.get("/api/v1/vehicle/V1")).json()
    assert vehicle["isAvailable"] is False
    assert vehicle["currentRide"] == ride["id"]
    assert len(vehicle_stub.requests) == 1


@pytest.mark.asyncio
async def test_too_many_passengers_is_400(client: AsyncClient):
    await _report(client, "V1")

    resp = await client.post("/api/v1/rides", json={**BOOKING, "passengerCount": 11})

    assert resp.status_code == 400
    assert "Maximum 10" in resp.json()["error"]
    assert (await client.get("/api/v1/rides")).json() == []


@pytest.mark.asyncio
async def test_missing_destination_is_400(client: AsyncClient):
    body = {k: v for k, v in BOOKING.items() if k != "destinationLocation"}
    resp = await client.post("/api/v1/rides", json=body)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_no_vehicle_is_503(client: AsyncClient):
    resp = await client.post("/api/v1/rides", json=BOOKING)
    assert resp.status_code == 503
    assert resp.json()["error"] == "No vehicles available."


@pytest.mark.asyncio
async def test_dispatch_failure_is_500(client: AsyncClient, vehicle_stub):
    await _report(client, "robo-1")
    vehicle_stub.failing_hosts.add("robo-1.local")

    resp = await client.post("/api/v1/rides", json=BOOKING)

    assert resp.status_code == 500
    vehicle = (await client.get("/api/v1/vehicle/robo-1")).json()
    assert vehicle["isAvailable"] is True


@pytest.mark.asyncio
async def test_rides_listed_newest_first(client: AsyncClient):
    await _report(client, "robo-1")
    await _report(client, "robo-2")

    first = (await client.post("/api/v1/rides", json=BOOKING)).json()
    second = (await client.post("/api/v1/rides", json=BOOKING)).json()

    rides = (await client.get("/api/v1/rides")).json()
    assert [r["id"] for r in rides] == [second["id"], first["id"]]
    assert datetime.fromisoformat(rides[0]["createdAt"]) >= datetime.fromisoformat(
        rides[1]["createdAt"]
    )


@pytest.mark.asyncio
async def test_complete_ride_frees_vehicle(client: AsyncClient):
    await _report(client, "robo-1")
    ride = (await client.post("/api/v1/rides", json=BOOKING)).json()

    resp = await client.post(f"/api/v1/rides/{ride['id']}/complete")
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"

    vehicle = (await client.get("/api/v1/vehicle/robo-1")).json()
    assert vehicle["isAvailable"] is True

    again = await client.post(f"/api/v1/rides/{ride['id']}/complete")
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_complete_unknown_ride_is_404(client: AsyncClient):
    resp = await client.post("/api/v1/rides/ride_missing/complete")
    assert resp.status_code == 404


# ── Emergency stop ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_emergency_stop(client: AsyncClient, vehicle_stub):
    await _report(client, "robo-1")
    ride = (await client.post("/api/v1/rides", json=BOOKING)).json()

    resp = await client.post("/api/v1/vehicle/robo-1/emergency-stop")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["ridesStopped"] == 1
    assert "Vehicle stopped" in body["message"]
    assert vehicle_stub.payloads()[-1] == {"command": "emergency_stop"}

    rides = (await client.get("/api/v1/rides")).json()
    assert rides[0]["id"] == ride["id"]
    assert rides[0]["status"] == "emergency_stopped"
    assert (await client.get("/api/v1/vehicle/robo-1")).json()["speed"] == 0


@pytest.mark.asyncio
async def test_emergency_stop_command_failure(client: AsyncClient, vehicle_stub):
    await _report(client, "robo-1")
    vehicle_stub.failing_hosts.add("robo-1.local")

    resp = await client.post("/api/v1/vehicle/robo-1/emergency-stop")

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert (await client.get("/api/v1/vehicle/robo-1")).json()["speed"] == 1.2


@pytest.mark.asyncio
async def test_emergency_stop_unregistered_vehicle(client: AsyncClient, vehicle_stub):
    resp = await client.post("/api/v1/vehicle/ghost/emergency-stop")

    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.json()["ridesStopped"] == 0
    assert vehicle_stub.urls() == ["http://ghost.local/emergency-stop"]
