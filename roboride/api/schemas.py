"""
Pydantic request / response schemas for the REST API.

Vehicles and dashboards speak camelCase JSON; fields are snake_case here
and aliased on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class LocationSchema(BaseModel):
    lat: float
    lng: float


# ── Requests ──────────────────────────────────────────────────────────


class RfidTapIn(BaseModel):
    card_id: Optional[str] = None
    user_id: Optional[str] = None
    name: Optional[str] = None
    is_verified: bool = False

    model_config = _CAMEL


class TelemetryReport(BaseModel):
    vehicle_id: str
    location: Optional[LocationSchema] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
    battery: Optional[float] = None
    ir_reading: Optional[float] = None
    rfid_taps: Optional[list[RfidTapIn]] = None

    model_config = _CAMEL


class RideBookingRequest(BaseModel):
    # Ranges and presence are checked by the dispatch coordinator so that
    # they surface as 400 rather than 422.
    pickup_location: Optional[dict[str, Any]] = None
    destination_location: Optional[dict[str, Any]] = None
    passenger_count: Optional[int] = None
    rfid_verified: Optional[bool] = False
    estimated_time: Optional[float] = None
    fare: Optional[float] = None

    model_config = _CAMEL


# ── Responses ─────────────────────────────────────────────────────────


class RideResponse(BaseModel):
    id: str
    pickup_location: dict[str, Any]
    destination_location: dict[str, Any]
    passenger_count: int
    rfid_verified: bool
    status: str
    estimated_time: Optional[float] = None
    fare: Optional[float] = None
    vehicle_id: str
    created_at: datetime

    model_config = {"from_attributes": True, **_CAMEL}


class VehicleResponse(BaseModel):
    id: str
    address: Optional[str] = None
    location: Optional[dict[str, Any]] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
    battery: Optional[float] = None
    ir_reading: Optional[float] = None
    last_update: Optional[datetime] = None
    is_available: bool
    current_ride: Optional[str] = None
    capacity: int

    model_config = {"from_attributes": True, **_CAMEL}


class RfidTapResponse(BaseModel):
    id: int
    card_id: Optional[str] = None
    user_id: Optional[str] = None
    name: Optional[str] = None
    is_verified: bool
    timestamp: datetime

    model_config = {"from_attributes": True, **_CAMEL}


class SuccessResponse(BaseModel):
    success: bool = True


class EmergencyStopResponse(BaseModel):
    success: bool
    message: str
    rides_stopped: Optional[int] = None

    model_config = _CAMEL


class HealthResponse(BaseModel):
    status: str = "ok"


class ReadinessResponse(BaseModel):
    status: str
    database: str
    redis: str


class ErrorResponse(BaseModel):
    error: str
