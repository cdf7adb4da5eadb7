"""Driver capability contract implemented by vendor plugins."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable
from uuid import UUID

from berryhub.core.errors import DeviceDriverError

__all__ = [
    "AuthenticationMethod",
    "DeviceCommand",
    "DeviceDriver",
    "DeviceDriverError",
    "DeviceInfo",
    "DriverDescriptor",
    "StartPairingResult",
]


class AuthenticationMethod(str, Enum):
    NONE = "NONE"
    PIN_FROM_DEVICE = "PIN_FROM_DEVICE"
    PIN_FROM_USER = "PIN_FROM_USER"
    OTHER = "OTHER"


@dataclass(frozen=True)
class DeviceInfo:
    device_id: str
    name: str


@dataclass(frozen=True)
class StartPairingResult:
    pairing_request_id: str
    device_provides_pin: bool


@dataclass(frozen=True)
class DeviceCommand:
    id: int
    title: str
    icon: str | None = None


@runtime_checkable
class DeviceDriver(Protocol):
    """A live driver instance bound to one device."""

    remote_layout_width: int
    remote_layout_height: int

    @property
    def remote_layout(self) -> Sequence[Sequence[int]]:
        """Grid of command ids, `remote_layout_height` rows of `remote_layout_width` cells."""

    def get_commands(self) -> Sequence[DeviceCommand]:
        """Return the commands this device exposes, in display order."""

    def get_command(self, command_id: int) -> DeviceCommand | None:
        """Return the command with `command_id`, or None."""

    def execute(self, command: DeviceCommand) -> None:
        """Send `command` to the device."""


@runtime_checkable
class DriverDescriptor(Protocol):
    """Entry point of a driver plugin, instantiated once per hub process.

    Any method may raise `DeviceDriverError` to signal a driver-specific failure.
    """

    driver_id: UUID | str
    display_name: str
    description: str
    authentication_method: AuthenticationMethod | str

    def get_devices(self) -> Sequence[DeviceInfo]:
        """Enumerate the devices this driver can pair with."""

    def start_pairing(self, device_info: DeviceInfo, remote_name: str) -> StartPairingResult:
        """Begin the vendor handshake; `remote_name` is the hub's display name."""

    def finalize_pairing(
        self,
        pairing_request_id: str,
        pin: str | None,
        device_provides_pin: bool,
    ) -> bool:
        """Complete the handshake and report whether the device is paired."""

    def create_driver_instance(self, device_id: str) -> DeviceDriver:
        """Return a live instance bound to `device_id`."""
