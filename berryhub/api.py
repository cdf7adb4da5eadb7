"""Stable public API for building frontends on top of berryhub.

This module is the supported integration surface for transport layers and
third-party callers. Avoid importing from private/internal modules unless
intentionally depending on non-stable internals.
"""

from __future__ import annotations

from uuid import UUID

from berryhub.core.config import HubConfig, load_config
from berryhub.core.errors import (
    BerryhubError,
    ConfigError,
    DeviceDriverError,
    DriverFailureError,
    DriverTimeoutError,
    InvalidRequestError,
    NotFoundError,
    PairingExpiredError,
    PluginLoadError,
    PluginValidationError,
    StorageError,
    UnacceptableError,
)
from berryhub.core.model import (
    DeviceCommandView,
    DriverSummary,
    PairedDevice,
    PairingSession,
    RemoteLayout,
)
from berryhub.core.negotiation import JSON_MEDIA_TYPE, require_json
from berryhub.core.service import HubService
from berryhub.driver.base import (
    AuthenticationMethod,
    DeviceCommand,
    DeviceDriver,
    DeviceInfo,
    DriverDescriptor,
    StartPairingResult,
)

__all__ = [
    "BerryhubError",
    "ConfigError",
    "DeviceDriverError",
    "DriverFailureError",
    "DriverTimeoutError",
    "InvalidRequestError",
    "NotFoundError",
    "PairingExpiredError",
    "PluginLoadError",
    "PluginValidationError",
    "StorageError",
    "UnacceptableError",
    "DeviceCommandView",
    "DriverSummary",
    "PairedDevice",
    "PairingSession",
    "RemoteLayout",
    "AuthenticationMethod",
    "DeviceCommand",
    "DeviceDriver",
    "DeviceInfo",
    "DriverDescriptor",
    "StartPairingResult",
    "HubConfig",
    "load_config",
    "Client",
]


class Client:
    """Public client for the hub's boundary operations.

    A transport builds one `Client` per inbound request around a shared
    `HubService`, passing the request's Accept header. Every call first
    checks that the caller accepts JSON: a missing header raises
    `InvalidRequestError` and an incompatible one raises `UnacceptableError`.
    """

    def __init__(
        self,
        service: HubService | None = None,
        *,
        accept: str | None = JSON_MEDIA_TYPE,
    ) -> None:
        self._service = service or HubService(load_config())
        self._accept = accept

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_drivers(self) -> list[DriverSummary]:
        require_json(self._accept)
        return self._service.list_drivers()

    def list_devices(self, driver_id: UUID | str) -> list[DeviceInfo]:
        require_json(self._accept)
        return self._service.list_devices(driver_id)

    def start_pairing(self, driver_id: UUID | str, device_id: str, *, remote_name: str) -> PairingSession:
        require_json(self._accept)
        return self._service.start_pairing(driver_id, device_id, remote_name)

    def finalize_pairing(
        self,
        driver_id: UUID | str,
        device_id: str,
        pairing_request_id: UUID | str,
        *,
        pin: str | None,
        device_provides_pin: bool,
    ) -> bool:
        require_json(self._accept)
        return self._service.finalize_pairing(
            driver_id,
            device_id,
            pairing_request_id,
            pin,
            device_provides_pin,
        )

    def list_paired_devices(self) -> list[PairedDevice]:
        require_json(self._accept)
        return self._service.list_paired_devices()

    def unpair(self, pairing_id: UUID | str) -> None:
        self._service.unpair(pairing_id)

    def list_commands(self, pairing_id: UUID | str) -> list[DeviceCommandView]:
        require_json(self._accept)
        return self._service.list_commands(pairing_id)

    def get_remote_layout(self, pairing_id: UUID | str) -> RemoteLayout:
        require_json(self._accept)
        return self._service.remote_layout(pairing_id)

    def execute_command(self, pairing_id: UUID | str, command_id: int) -> None:
        require_json(self._accept)
        self._service.execute_command(pairing_id, command_id)
