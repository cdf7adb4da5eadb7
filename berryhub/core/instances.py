"""Resolution of paired devices into live driver instances."""

from __future__ import annotations

import logging
from uuid import UUID

from berryhub.core.driver_calls import call_driver
from berryhub.core.errors import DriverFailureError, NotFoundError
from berryhub.core.registry import DriverRegistry, coerce_uuid
from berryhub.driver.base import DeviceDriver

LOGGER = logging.getLogger(__name__)


class DeviceInstanceManager:
    """Creates a fresh driver instance per request; instances are never cached."""

    def __init__(self, registry: DriverRegistry, *, timeout_s: float | None = None) -> None:
        self._registry = registry
        self._timeout_s = timeout_s

    def resolve_instance(
        self,
        driver_id: UUID | str,
        device_id: str,
        *,
        timeout_s: float | None = None,
    ) -> DeviceDriver:
        key = coerce_uuid(driver_id)
        driver = self._registry.get_driver(key) if key is not None else None
        if key is None or driver is None:
            raise NotFoundError(f"Driver '{driver_id}' not found")

        instance = call_driver(
            "create_driver_instance",
            lambda: driver.create_driver_instance(device_id),
            driver_id=key,
            device_id=device_id,
            timeout_s=timeout_s if timeout_s is not None else self._timeout_s,
        )
        if instance is None:
            LOGGER.error("Driver %s returned no instance for device %s", key, device_id)
            raise DriverFailureError("Driver did not create a device instance")
        LOGGER.debug("Created instance of driver %s for device %s", driver.display_name, device_id)
        return instance
