"""
Error taxonomy shared by the coordinators and the HTTP layer.

Every error carries an ``http_status`` so the API can map it with a single
exception handler.  Nothing here is retried automatically; retry policy is
the caller's concern.
"""

from __future__ import annotations

from typing import Optional


class RoboRideError(Exception):
    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RoboRideError):
    """Bad booking input.  Raised before any side effect."""

    http_status = 400


class NoVehicleAvailableError(RoboRideError):
    http_status = 503


class VehicleNotFoundError(RoboRideError):
    http_status = 404


class RideNotFoundError(RoboRideError):
    http_status = 404


class InvalidStateTransition(RoboRideError):
    """Raised when a ride status change violates the state machine."""

    http_status = 409


class GatewayError(RoboRideError):
    """A vehicle command failed: transport error, timeout or non-2xx reply."""

    def __init__(
        self,
        message: str,
        *,
        vehicle_id: str,
        command: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.vehicle_id = vehicle_id
        self.command = command
        self.status_code = status_code


class DispatchCommandError(GatewayError):
    pass


class EmergencyStopCommandError(GatewayError):
    pass


class StorageError(RoboRideError):
    """A registry / ledger / RFID log read or write failed."""


class PartialConsistencyError(StorageError):
    """
    One write succeeded but a dependent write did not, leaving the vehicle
    and ride records out of step.  Operators reconcile using the context
    carried here.
    """

    def __init__(
        self,
        message: str,
        *,
        vehicle_id: str,
        ride_id: Optional[str] = None,
        failed_write: str,
    ):
        super().__init__(message)
        self.vehicle_id = vehicle_id
        self.ride_id = ride_id
        self.failed_write = failed_write
