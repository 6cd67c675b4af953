"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    EMERGENCY_STOPPED = "emergency_stopped"


# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.CONFIRMED: {
        RideStatus.IN_PROGRESS,
        RideStatus.COMPLETED,
        RideStatus.EMERGENCY_STOPPED,
    },
    RideStatus.IN_PROGRESS: {RideStatus.COMPLETED, RideStatus.EMERGENCY_STOPPED},
    RideStatus.COMPLETED: set(),
    RideStatus.EMERGENCY_STOPPED: set(),
}

# Rides that an emergency stop halts
ACTIVE_RIDE_STATUSES: frozenset[RideStatus] = frozenset(
    {RideStatus.CONFIRMED, RideStatus.IN_PROGRESS}
)


class DispatchState(str, enum.Enum):
    """Progress of a single booking through the dispatch coordinator."""

    REQUESTED = "REQUESTED"
    VALIDATED = "VALIDATED"
    VEHICLE_SELECTED = "VEHICLE_SELECTED"
    COMMAND_SENT = "COMMAND_SENT"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


class VehicleCommand(str, enum.Enum):
    MOVE_TO_PICKUP = "move_to_pickup"
    EMERGENCY_STOP = "emergency_stop"
