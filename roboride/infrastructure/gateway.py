"""
Vehicle Command Gateway
=======================

Sends commands to a vehicle's embedded HTTP control endpoint and reduces
the outcome to success or ``GatewayError``.

Address policy (``resolve_vehicle_address``)
--------------------------------------------
1. An explicit address stored on the vehicle wins.
2. An id containing ``.`` or ``:`` is already a hostname or ``host:port``.
3. Any other id is a bare mDNS name and gets ``settings.vehicle_address_suffix``.

Outbound calls
--------------
* ``POST /move``            ``{"lat", "lng", "command": "move_to_pickup"}``
* ``POST /emergency-stop``  ``{"command": "emergency_stop"}``

Only a 2xx reply counts as success.  Transport errors and timeouts are
failures exactly like a non-2xx reply.  The gateway never touches the
registry or the ledger.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from roboride.config import settings
from roboride.domain.entities import Location
from roboride.domain.enums import VehicleCommand
from roboride.domain.errors import (
    DispatchCommandError,
    EmergencyStopCommandError,
    GatewayError,
)

logger = logging.getLogger(__name__)


def resolve_vehicle_address(
    vehicle_id: str,
    explicit: Optional[str] = None,
    suffix: str = ".local",
) -> str:
    if explicit:
        return explicit.strip()
    vehicle_id = (vehicle_id or "").strip()
    if not vehicle_id:
        raise ValueError("vehicle id is empty; cannot derive an address")
    if "." in vehicle_id or ":" in vehicle_id:
        return vehicle_id
    return f"{vehicle_id}{suffix}"


class VehicleGateway:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        timeout_seconds: float = settings.vehicle_command_timeout_seconds,
        address_suffix: str = settings.vehicle_address_suffix,
    ):
        self._client = client or httpx.AsyncClient()
        self.timeout = httpx.Timeout(timeout_seconds)
        self.address_suffix = address_suffix

    async def aclose(self) -> None:
        await self._client.aclose()

    def url_for(self, vehicle_id: str, path: str, address: Optional[str] = None) -> str:
        host = resolve_vehicle_address(vehicle_id, address, self.address_suffix)
        return f"http://{host}{path}"

    async def send_move_to_pickup(
        self,
        vehicle_id: str,
        pickup: Location,
        address: Optional[str] = None,
    ) -> None:
        await self._send(
            vehicle_id,
            "/move",
            {
                "lat": pickup.lat,
                "lng": pickup.lng,
                "command": VehicleCommand.MOVE_TO_PICKUP.value,
            },
            address=address,
            error_cls=DispatchCommandError,
        )

    async def send_emergency_stop(
        self, vehicle_id: str, address: Optional[str] = None
    ) -> None:
        await self._send(
            vehicle_id,
            "/emergency-stop",
            {"command": VehicleCommand.EMERGENCY_STOP.value},
            address=address,
            error_cls=EmergencyStopCommandError,
        )

    async def _send(
        self,
        vehicle_id: str,
        path: str,
        payload: dict[str, Any],
        *,
        address: Optional[str],
        error_cls: type[GatewayError],
    ) -> None:
        command = payload["command"]
        try:
            url = self.url_for(vehicle_id, path, address)
        except ValueError as exc:
            raise error_cls(str(exc), vehicle_id=vehicle_id, command=command) from exc

        try:
            response = await self._client.post(url, json=payload, timeout=self.timeout)
        except httpx.TimeoutException as exc:
            logger.warning("Vehicle %s timed out on %s", vehicle_id, command)
            raise error_cls(
                f"Vehicle {vehicle_id} did not answer {command} in time",
                vehicle_id=vehicle_id,
                command=command,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Vehicle %s unreachable for %s: %s", vehicle_id, command, exc)
            raise error_cls(
                f"Failed to send {command} to vehicle {vehicle_id}",
                vehicle_id=vehicle_id,
                command=command,
            ) from exc

        if not response.is_success:
            logger.warning(
                "Vehicle %s rejected %s with HTTP %d",
                vehicle_id,
                command,
                response.status_code,
            )
            raise error_cls(
                f"Vehicle {vehicle_id} rejected {command} (HTTP {response.status_code})",
                vehicle_id=vehicle_id,
                command=command,
                status_code=response.status_code,
            )
        logger.debug("Vehicle %s acknowledged %s", vehicle_id, command)
