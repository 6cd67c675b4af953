"""
Seed script -- registers a demo fleet so bookings work without hardware.

Run after migrations:
    python seed.py

Creates:
  - 5 vehicles around a campus loop (one with an explicit host:port address
    pointing at a local simulator)
  - 1 completed ride and 1 confirmed ride on robo-3, which is therefore busy
  - 2 RFID taps
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from roboride.infrastructure.database import async_session_factory, engine
from roboride.infrastructure.models import RfidTapModel, RideModel, VehicleModel
from roboride.domain.enums import RideStatus

NOW = datetime.now(timezone.utc)

VEHICLES = [
    {"id": "robo-1", "lat": 12.9716, "lng": 77.5946, "battery": 92.0},
    {"id": "robo-2", "lat": 12.9721, "lng": 77.5952, "battery": 81.0},
    {"id": "robo-3", "lat": 12.9708, "lng": 77.5939, "battery": 64.0},
    {"id": "robo-4", "lat": 12.9730, "lng": 77.5960, "battery": 45.0},
    {"id": "sim-1", "lat": 12.9712, "lng": 77.5949, "battery": 100.0,
     "address": "127.0.0.1:8081"},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(select(func.count()).select_from(VehicleModel))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Vehicles ──────────────────────────────────────────────────
        for v in VEHICLES:
            session.add(
                VehicleModel(
                    id=v["id"],
                    address=v.get("address"),
                    location={"lat": v["lat"], "lng": v["lng"]},
                    heading=0.0,
                    speed=0.0,
                    battery=v["battery"],
                    ir_reading=0.0,
                    last_update=NOW,
                    is_available=True,
                    capacity=10,
                )
            )
        await session.flush()
        print(f"  Created {len(VEHICLES)} vehicles")

        # ── Rides ─────────────────────────────────────────────────────
        session.add_all(
            [
                RideModel(
                    id="ride_seed_completed",
                    pickup_location={"lat": 12.9716, "lng": 77.5946},
                    destination_location={"lat": 12.9352, "lng": 77.6245},
                    passenger_count=2,
                    rfid_verified=True,
                    status=RideStatus.COMPLETED.value,
                    estimated_time=12.0,
                    fare=80.0,
                    vehicle_id="robo-3",
                    created_at=NOW - timedelta(hours=2),
                ),
                RideModel(
                    id="ride_seed_active",
                    pickup_location={"lat": 12.9708, "lng": 77.5939},
                    destination_location={"lat": 12.9784, "lng": 77.6408},
                    passenger_count=1,
                    rfid_verified=False,
                    status=RideStatus.CONFIRMED.value,
                    vehicle_id="robo-3",
                    created_at=NOW - timedelta(minutes=5),
                ),
            ]
        )
        busy = await session.get(VehicleModel, "robo-3")
        busy.is_available = False
        busy.current_ride = "ride_seed_active"
        print("  Created 2 rides (robo-3 busy)")

        # ── RFID taps ─────────────────────────────────────────────────
        session.add_all(
            [
                RfidTapModel(card_id="A1B2C3D4", user_id="u-001", name="Asha",
                             is_verified=True, timestamp=NOW - timedelta(minutes=6)),
                RfidTapModel(card_id="FFEE0011", user_id=None, name=None,
                             is_verified=False, timestamp=NOW - timedelta(minutes=1)),
            ]
        )
        print("  Created 2 RFID taps")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
