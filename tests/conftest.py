"""Shared fakes and fixtures for berryhub tests."""

from __future__ import annotations

import time
import uuid
from pathlib import Path
from uuid import UUID

import pytest

from berryhub.core.config import HubConfig
from berryhub.core.errors import DeviceDriverError
from berryhub.core.model import DriverManifest, LoadedDriver
from berryhub.core.plugin_loader import LoadedDrivers
from berryhub.core.registry import DriverRegistry
from berryhub.core.service import HubService
from berryhub.core.storage import InMemoryPairedDeviceRepository
from berryhub.driver.base import AuthenticationMethod, DeviceCommand, DeviceInfo, StartPairingResult

FAKE_DRIVER_ID = UUID("6c1b9f0e-4b7e-4a53-9f2c-0d5c1e3a7b21")


class FakeInstance:
    remote_layout_width = 2
    remote_layout_height = 2

    def __init__(
        self,
        device_id: str,
        executed: list[tuple[str, int]],
        *,
        layout: list[list[int]] | None = None,
        fail_execute: bool = False,
        execute_delay_s: float = 0.0,
    ) -> None:
        self.device_id = device_id
        self._executed = executed
        self._layout = layout if layout is not None else [[1, 0], [2, 3]]
        self._fail_execute = fail_execute
        self._execute_delay_s = execute_delay_s
        self._commands = [
            DeviceCommand(id=1, title="Power", icon="power"),
            DeviceCommand(id=2, title="Volume Up"),
            DeviceCommand(id=3, title="Volume Down"),
        ]

    @property
    def remote_layout(self) -> list[list[int]]:
        return self._layout

    def get_commands(self) -> list[DeviceCommand]:
        return list(self._commands)

    def get_command(self, command_id: int) -> DeviceCommand | None:
        return next((c for c in self._commands if c.id == command_id), None)

    def execute(self, command: DeviceCommand) -> None:
        if self._execute_delay_s:
            time.sleep(self._execute_delay_s)
        if self._fail_execute:
            raise DeviceDriverError("infrared blaster unplugged")
        self._executed.append((self.device_id, command.id))


class FakeDescriptor:
    driver_id = FAKE_DRIVER_ID
    display_name = "Fake TV"
    description = "Televisions that only exist in tests"
    authentication_method = AuthenticationMethod.PIN_FROM_DEVICE

    def __init__(self) -> None:
        self.devices = [
            DeviceInfo(device_id="tv-1", name="Living Room TV"),
            DeviceInfo(device_id="tv-2", name="Bedroom TV"),
        ]
        self.pin = "1234"
        self.sessions: dict[str, str] = {}
        self.executed: list[tuple[str, int]] = []
        self.instances_created = 0
        self.fail_devices = False
        self.fail_start = False
        self.fail_finalize = False
        self.fail_instance = False
        self.start_delay_s = 0.0
        self.instance_delay_s = 0.0
        self.fail_execute = False
        self.execute_delay_s = 0.0
        self.layout: list[list[int]] | None = None

    def get_devices(self) -> list[DeviceInfo]:
        if self.fail_devices:
            raise DeviceDriverError("bus error")
        return list(self.devices)

    def start_pairing(self, device_info: DeviceInfo, remote_name: str) -> StartPairingResult:
        if self.start_delay_s:
            time.sleep(self.start_delay_s)
        if self.fail_start:
            raise DeviceDriverError("device refused the handshake")
        request_id = str(uuid.uuid4())
        self.sessions[request_id] = device_info.device_id
        return StartPairingResult(pairing_request_id=request_id, device_provides_pin=True)

    def finalize_pairing(self, pairing_request_id: str, pin: str | None, device_provides_pin: bool) -> bool:
        if self.fail_finalize:
            raise DeviceDriverError("device went away")
        return pairing_request_id in self.sessions and pin == self.pin

    def create_driver_instance(self, device_id: str) -> FakeInstance:
        if self.instance_delay_s:
            time.sleep(self.instance_delay_s)
        if self.fail_instance:
            raise DeviceDriverError("could not open connection")
        self.instances_created += 1
        return FakeInstance(
            device_id,
            self.executed,
            layout=self.layout,
            fail_execute=self.fail_execute,
            execute_delay_s=self.execute_delay_s,
        )


def loaded_drivers(*descriptors: FakeDescriptor) -> LoadedDrivers:
    return LoadedDrivers(
        drivers=tuple(
            LoadedDriver(
                descriptor=d,
                driver_id=UUID(str(d.driver_id)),
                manifest=DriverManifest(
                    driver_class="fake:FakeDescriptor",
                    driver_id=str(d.driver_id),
                    provider="Fake Corp",
                    version="1.0",
                ),
                source=Path("fake.zip"),
            )
            for d in descriptors
        ),
        warnings=(),
    )


@pytest.fixture
def descriptor() -> FakeDescriptor:
    return FakeDescriptor()


@pytest.fixture
def registry(descriptor: FakeDescriptor) -> DriverRegistry:
    return DriverRegistry(loader=lambda: loaded_drivers(descriptor))


@pytest.fixture
def repository() -> InMemoryPairedDeviceRepository:
    return InMemoryPairedDeviceRepository()


@pytest.fixture
def service(registry: DriverRegistry, repository: InMemoryPairedDeviceRepository, tmp_path: Path) -> HubService:
    config = HubConfig(driver_dirs=(), storage_path=tmp_path / "paired_devices.yaml")
    return HubService(config, registry=registry, repository=repository)


@pytest.fixture
def make_descriptor():
    return FakeDescriptor


@pytest.fixture
def make_loaded():
    return loaded_drivers
