"""Memoized registry of loaded driver descriptors."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from uuid import UUID

from berryhub.core.model import DriverManifest, LoadedDriver
from berryhub.core.plugin_loader import LoadedDrivers, load_drivers
from berryhub.driver.base import DeviceInfo, DriverDescriptor

LOGGER = logging.getLogger(__name__)

DriverLoader = Callable[[], LoadedDrivers]


def coerce_uuid(value: UUID | str) -> UUID | None:
    """Return `value` as a UUID, or None when it is not one."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class DriverRegistry:
    """Loads driver packages once and answers lookups against them.

    The first caller of any lookup runs the scan; concurrent callers block
    until it completes. The result is never refreshed, so new packages need
    a restart.
    """

    def __init__(
        self,
        driver_dirs: Iterable[Path] = (),
        *,
        loader: DriverLoader | None = None,
    ) -> None:
        dirs = tuple(driver_dirs)
        self._loader: DriverLoader = loader or (lambda: load_drivers(dirs))
        self._lock = threading.Lock()
        self._loaded: dict[UUID, LoadedDriver] | None = None
        self._warnings: tuple[str, ...] = ()

    def _ensure_loaded(self) -> dict[UUID, LoadedDriver]:
        loaded = self._loaded
        if loaded is not None:
            return loaded
        with self._lock:
            if self._loaded is None:
                result = self._loader()
                self._warnings = result.warnings
                self._loaded = {
                    entry.driver_id: entry for entry in sorted(result.drivers, key=lambda d: d.driver_id)
                }
                LOGGER.info("Loaded %d drivers", len(self._loaded))
            return self._loaded

    @property
    def load_warnings(self) -> tuple[str, ...]:
        self._ensure_loaded()
        return self._warnings

    def list_drivers(self) -> list[DriverDescriptor]:
        return [entry.descriptor for entry in self._ensure_loaded().values()]

    def get_driver(self, driver_id: UUID | str) -> DriverDescriptor | None:
        entry = self._entry(driver_id)
        return entry.descriptor if entry else None

    def manifest_for(self, driver_id: UUID | str) -> DriverManifest | None:
        entry = self._entry(driver_id)
        return entry.manifest if entry else None

    def _entry(self, driver_id: UUID | str) -> LoadedDriver | None:
        key = coerce_uuid(driver_id)
        if key is None:
            return None
        return self._ensure_loaded().get(key)

    def list_devices(self, driver: DriverDescriptor) -> list[DeviceInfo]:
        """Return the driver's devices, or an empty list if enumeration fails."""
        try:
            return list(driver.get_devices())
        except Exception:
            LOGGER.exception(
                "Error while retrieving devices from driver %s (%s)",
                driver.display_name,
                driver.driver_id,
            )
            return []

    def get_device_info(self, driver: DriverDescriptor, device_id: str) -> DeviceInfo | None:
        LOGGER.debug("Loading device info from driver >%s< for device id %s", driver.display_name, device_id)
        for device in self.list_devices(driver):
            if device.device_id == device_id:
                return device
        return None
