"""Service layer used by the CLI, the public API, and transport frontends."""

from __future__ import annotations

import logging
from uuid import UUID

from berryhub.core.commands import CommandDispatcher
from berryhub.core.config import HubConfig
from berryhub.core.errors import InvalidRequestError, NotFoundError
from berryhub.core.instances import DeviceInstanceManager
from berryhub.core.model import DeviceCommandView, DriverSummary, PairedDevice, PairingSession, RemoteLayout
from berryhub.core.pairing import PairingCoordinator
from berryhub.core.registry import DriverRegistry, coerce_uuid
from berryhub.core.storage import PairedDeviceRepository, YamlPairedDeviceRepository
from berryhub.driver.base import AuthenticationMethod, DeviceDriver, DeviceInfo, DriverDescriptor

LOGGER = logging.getLogger(__name__)


def _parse_id(value: UUID | str, kind: str) -> UUID:
    parsed = coerce_uuid(value)
    if parsed is None:
        raise InvalidRequestError(f"Invalid {kind} id '{value}'")
    return parsed


def _authentication_name(method: AuthenticationMethod | str) -> str:
    if isinstance(method, AuthenticationMethod):
        return method.value
    return str(method)


class HubService:
    def __init__(
        self,
        config: HubConfig | None = None,
        *,
        registry: DriverRegistry | None = None,
        repository: PairedDeviceRepository | None = None,
    ) -> None:
        self.config = config or HubConfig()
        self.registry = registry or DriverRegistry(self.config.driver_dirs)
        self.repository = repository or YamlPairedDeviceRepository(self.config.storage_path)
        self.pairing = PairingCoordinator(
            self.registry,
            self.repository,
            timeout_s=self.config.pairing_timeout_s,
            session_ttl_s=self.config.session_ttl_s,
            max_pending_sessions=self.config.max_pending_sessions,
        )
        self.instances = DeviceInstanceManager(self.registry, timeout_s=self.config.instance_timeout_s)
        self.commands = CommandDispatcher(timeout_s=self.config.command_timeout_s)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self.registry.load_warnings

    def list_drivers(self) -> list[DriverSummary]:
        return [self._summary(driver) for driver in self.registry.list_drivers()]

    def _summary(self, driver: DriverDescriptor) -> DriverSummary:
        driver_id = _parse_id(driver.driver_id, "driver")
        manifest = self.registry.manifest_for(driver_id)
        return DriverSummary(
            driver_id=driver_id,
            display_name=driver.display_name,
            description=driver.description,
            authentication_method=_authentication_name(driver.authentication_method),
            provider=manifest.provider if manifest else None,
            version=manifest.version if manifest else None,
        )

    def _require_driver(self, driver_id: UUID | str) -> DriverDescriptor:
        driver = self.registry.get_driver(_parse_id(driver_id, "driver"))
        if driver is None:
            raise NotFoundError(f"Driver '{driver_id}' not found")
        return driver

    def list_devices(self, driver_id: UUID | str) -> list[DeviceInfo]:
        return self.registry.list_devices(self._require_driver(driver_id))

    def start_pairing(self, driver_id: UUID | str, device_id: str, remote_name: str) -> PairingSession:
        return self.pairing.start_pairing(_parse_id(driver_id, "driver"), device_id, remote_name)

    def finalize_pairing(
        self,
        driver_id: UUID | str,
        device_id: str,
        pairing_request_id: UUID | str,
        pin: str | None,
        device_provides_pin: bool,
    ) -> bool:
        return self.pairing.finalize_pairing(
            _parse_id(driver_id, "driver"),
            device_id,
            _parse_id(pairing_request_id, "pairing request"),
            pin,
            device_provides_pin,
        )

    def list_paired_devices(self) -> list[PairedDevice]:
        return self.repository.find_all()

    def get_paired_device(self, pairing_id: UUID | str) -> PairedDevice:
        paired = self.repository.find_by_id(_parse_id(pairing_id, "pairing"))
        if paired is None:
            raise NotFoundError(f"Pairing '{pairing_id}' not found")
        return paired

    def unpair(self, pairing_id: UUID | str) -> None:
        paired = self.get_paired_device(pairing_id)
        self.repository.delete(paired)
        LOGGER.info("Unpaired %s (%s)", paired.id, paired.device_name)

    def _instance_for(self, pairing_id: UUID | str) -> tuple[PairedDevice, DeviceDriver]:
        paired = self.get_paired_device(pairing_id)
        return paired, self.instances.resolve_instance(paired.driver_id, paired.device_id)

    def list_commands(self, pairing_id: UUID | str) -> list[DeviceCommandView]:
        paired, instance = self._instance_for(pairing_id)
        return self.commands.list_commands(paired, instance)

    def remote_layout(self, pairing_id: UUID | str) -> RemoteLayout:
        paired, instance = self._instance_for(pairing_id)
        return self.commands.remote_layout(paired, instance)

    def execute_command(self, pairing_id: UUID | str, command_id: int) -> None:
        paired, instance = self._instance_for(pairing_id)
        self.commands.execute(paired, instance, command_id)
