"""
SQLAlchemy ORM models.

The vehicles report free-form documents, so coordinates are kept as JSON
``{"lat", "lng"}`` columns rather than PostGIS geometry.

Tables
------
* ``vehicles``   -- last-known telemetry and dispatch state, keyed by vehicle id
* ``rides``      -- one row per confirmed booking
* ``rfid_taps``  -- append-only RFID access log

Indexes
-------
* **B-Tree** on ``is_available`` (vehicle selection), on
  ``(vehicle_id, status)`` (emergency stop bulk update), on
  ``created_at`` (ride listing) and on ``timestamp`` (RFID log).
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
)

from .database import Base
from roboride.domain.enums import RideStatus


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(String(128), primary_key=True)
    address = Column(String(255), nullable=True)  # host[:port]; overrides id derivation

    location = Column(JSON, nullable=True)
    heading = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    battery = Column(Float, nullable=True)
    ir_reading = Column(Float, nullable=True)
    last_update = Column(DateTime(timezone=True), nullable=True)

    is_available = Column(Boolean, default=True, nullable=False)
    current_ride = Column(String(64), nullable=True)
    capacity = Column(Integer, default=10, nullable=False)

    __table_args__ = (Index("idx_vehicles_available", "is_available"),)


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(String(64), primary_key=True)
    pickup_location = Column(JSON, nullable=False)
    destination_location = Column(JSON, nullable=False)
    passenger_count = Column(Integer, nullable=False)
    rfid_verified = Column(Boolean, default=False, nullable=False)
    status = Column(String(32), default=RideStatus.CONFIRMED.value, nullable=False)
    estimated_time = Column(Float, nullable=True)
    fare = Column(Float, nullable=True)
    vehicle_id = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_rides_vehicle_status", "vehicle_id", "status"),
        Index("idx_rides_created", "created_at"),
    )


class RfidTapModel(Base):
    __tablename__ = "rfid_taps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_id = Column(String(64), nullable=True)
    user_id = Column(String(64), nullable=True)
    name = Column(String(120), nullable=True)
    is_verified = Column(Boolean, default=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_rfid_taps_timestamp", "timestamp"),)
