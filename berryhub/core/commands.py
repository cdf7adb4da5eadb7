"""Listing and execution of device commands on live driver instances."""

from __future__ import annotations

import logging
from uuid import UUID

from berryhub.core.driver_calls import call_driver
from berryhub.core.errors import NotFoundError
from berryhub.core.model import DeviceCommandView, PairedDevice, RemoteLayout
from berryhub.driver.base import DeviceCommand, DeviceDriver

LOGGER = logging.getLogger(__name__)


class CommandDispatcher:
    def __init__(self, *, timeout_s: float | None = None) -> None:
        self._timeout_s = timeout_s

    def list_commands(self, paired_device: PairedDevice, instance: DeviceDriver) -> list[DeviceCommandView]:
        commands = call_driver(
            "get_commands",
            lambda: list(instance.get_commands()),
            driver_id=paired_device.driver_id,
            device_id=paired_device.device_id,
            timeout_s=self._timeout_s,
        )
        driver_id = UUID(paired_device.driver_id)
        return [
            DeviceCommandView(
                pairing_id=paired_device.id,
                driver_id=driver_id,
                device_id=paired_device.device_id,
                command_id=command.id,
                name=command.title,
                icon=command.icon,
            )
            for command in commands
        ]

    def get_command(self, paired_device: PairedDevice, instance: DeviceDriver, command_id: int) -> DeviceCommand:
        command = call_driver(
            "get_command",
            lambda: instance.get_command(command_id),
            driver_id=paired_device.driver_id,
            device_id=paired_device.device_id,
            timeout_s=self._timeout_s,
        )
        if command is None:
            raise NotFoundError(f"Command {command_id} not found for pairing '{paired_device.id}'")
        return command

    def execute(self, paired_device: PairedDevice, instance: DeviceDriver, command_id: int) -> None:
        """Run `command_id` on `instance`; unknown ids raise `NotFoundError` without touching the device."""
        command = self.get_command(paired_device, instance, command_id)
        call_driver(
            "execute",
            lambda: instance.execute(command),
            driver_id=paired_device.driver_id,
            device_id=paired_device.device_id,
            timeout_s=self._timeout_s,
        )
        LOGGER.info("Executed command %s (%s) on device %s", command.id, command.title, paired_device.device_id)

    def remote_layout(self, paired_device: PairedDevice, instance: DeviceDriver) -> RemoteLayout:
        width, height, buttons = call_driver(
            "remote_layout",
            lambda: _read_layout(instance),
            driver_id=paired_device.driver_id,
            device_id=paired_device.device_id,
            timeout_s=self._timeout_s,
        )
        if len(buttons) != height or any(len(row) != width for row in buttons):
            LOGGER.warning(
                "Driver %s declares a %dx%d remote layout for device %s but the grid does not match",
                paired_device.driver_id,
                width,
                height,
                paired_device.device_id,
            )
        return RemoteLayout(width=width, height=height, buttons=buttons)


def _read_layout(instance: DeviceDriver) -> tuple[int, int, tuple[tuple[int, ...], ...]]:
    buttons = tuple(tuple(int(cell) for cell in row) for row in instance.remote_layout)
    return int(instance.remote_layout_width), int(instance.remote_layout_height), buttons
