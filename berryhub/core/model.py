"""Core data models used across loader, registry, pairing, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from berryhub.driver.base import DriverDescriptor


@dataclass(frozen=True)
class DriverManifest:
    driver_class: str | None
    driver_id: str | None
    provider: str | None
    version: str | None


@dataclass(frozen=True)
class LoadedDriver:
    descriptor: DriverDescriptor
    driver_id: UUID
    manifest: DriverManifest
    source: Path


@dataclass(frozen=True)
class DriverSummary:
    driver_id: UUID
    display_name: str
    description: str
    authentication_method: str
    provider: str | None = None
    version: str | None = None


@dataclass(frozen=True)
class PairingSession:
    pairing_request_id: UUID
    driver_id: UUID
    device_id: str
    device_provides_pin: bool


@dataclass(frozen=True)
class PairedDevice:
    id: UUID
    driver_id: str
    device_id: str
    device_name: str


@dataclass(frozen=True)
class DeviceCommandView:
    pairing_id: UUID
    driver_id: UUID
    device_id: str
    command_id: int
    name: str
    icon: str | None


@dataclass(frozen=True)
class RemoteLayout:
    width: int
    height: int
    buttons: tuple[tuple[int, ...], ...]
