"""
Domain value objects and rules that do not touch storage.

Patterns used
-------------
- **State Pattern** on rides: ``check_transition`` enforces
  confirmed -> in-progress -> completed, with emergency_stopped reachable
  from any active status.
- ``BookingRequest.validate`` is the only gate in front of the dispatch
  coordinator; it raises before anything is read or written.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .enums import RIDE_TRANSITIONS, DispatchState, RideStatus
from .errors import InvalidStateTransition, ValidationError


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> Optional["Location"]:
        """Build from a ``{"lat", "lng"}`` document; ``None`` if unusable."""
        if not data:
            return None
        try:
            return cls(float(data["lat"]), float(data["lng"]))
        except (KeyError, TypeError, ValueError):
            return None

    def as_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


# ── Booking ───────────────────────────────────────────────────────────


@dataclass
class BookingRequest:
    pickup_location: Optional[Mapping[str, Any]]
    destination_location: Optional[Mapping[str, Any]]
    passenger_count: Any
    rfid_verified: Any = False
    estimated_time: Optional[float] = None
    fare: Optional[float] = None

    def validate(self, max_passengers: int = 10) -> tuple[Location, Location]:
        """Return parsed (pickup, destination) or raise ``ValidationError``."""
        count = self.passenger_count
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValidationError("passengerCount must be an integer.")
        if count > max_passengers:
            raise ValidationError(
                f"Maximum {max_passengers} passengers allowed per ride."
            )
        if count < 1:
            raise ValidationError("At least 1 passenger is required.")

        if not self.pickup_location or not self.destination_location:
            raise ValidationError("Pickup and destination locations are required.")
        pickup = Location.from_mapping(self.pickup_location)
        destination = Location.from_mapping(self.destination_location)
        if pickup is None or destination is None:
            raise ValidationError(
                "Pickup and destination must both have numeric lat and lng."
            )
        return pickup, destination


def new_ride_id() -> str:
    return f"ride_{uuid.uuid4().hex}"


@dataclass
class BookingAttempt:
    """Tracks one booking through ``DispatchState``; failures log the last step reached."""

    ride_id: str = field(default_factory=new_ride_id)
    state: DispatchState = DispatchState.REQUESTED
    vehicle_id: Optional[str] = None

    def advance(self, state: DispatchState) -> None:
        self.state = state


# ── Ride lifecycle ────────────────────────────────────────────────────


def check_transition(current: str, new_status: RideStatus) -> None:
    """Raise ``InvalidStateTransition`` unless *current* -> *new_status* is legal."""
    try:
        allowed = RIDE_TRANSITIONS.get(RideStatus(current), set())
    except ValueError:
        # statuses written by other flows are not ours to move
        allowed = set()
    if new_status not in allowed:
        raise InvalidStateTransition(
            f"Cannot transition ride from {current} to {new_status.value}"
        )
