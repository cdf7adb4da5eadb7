"""Paired-device persistence."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol
from uuid import UUID

import yaml
from jsonschema import ValidationError

from berryhub.core.errors import StorageError
from berryhub.core.model import PairedDevice
from berryhub.core.yaml_io import load_schema_validator, parse_yaml, schema_error_message

LOGGER = logging.getLogger(__name__)


class PairedDeviceRepository(Protocol):
    def find_all(self) -> list[PairedDevice]:
        """Return all paired devices in insertion order."""

    def find_by_id(self, pairing_id: UUID) -> PairedDevice | None:
        """Return the paired device with `pairing_id`, or None."""

    def save(self, device: PairedDevice) -> None:
        """Insert or replace `device`."""

    def delete(self, device: PairedDevice) -> None:
        """Remove `device`; a no-op if it is already gone."""


class InMemoryPairedDeviceRepository:
    def __init__(self, devices: list[PairedDevice] | None = None) -> None:
        self._lock = threading.Lock()
        self._devices: dict[UUID, PairedDevice] = {d.id: d for d in devices or []}

    def find_all(self) -> list[PairedDevice]:
        with self._lock:
            return list(self._devices.values())

    def find_by_id(self, pairing_id: UUID) -> PairedDevice | None:
        with self._lock:
            return self._devices.get(pairing_id)

    def save(self, device: PairedDevice) -> None:
        with self._lock:
            self._devices[device.id] = device

    def delete(self, device: PairedDevice) -> None:
        with self._lock:
            self._devices.pop(device.id, None)


def _to_row(device: PairedDevice) -> dict[str, str]:
    return {
        "id": str(device.id),
        "driverId": device.driver_id,
        "deviceId": device.device_id,
        "deviceName": device.device_name,
    }


def _from_row(row: dict[str, Any], source: Path) -> PairedDevice:
    try:
        pairing_id = UUID(row["id"])
    except ValueError as exc:
        raise StorageError(f"Invalid pairing id {row['id']!r} in {source}") from exc
    return PairedDevice(
        id=pairing_id,
        driver_id=row["driverId"],
        device_id=row["deviceId"],
        device_name=row["deviceName"],
    )


class YamlPairedDeviceRepository:
    """Stores paired devices as a YAML list of `{id, driverId, deviceId, deviceName}` rows.

    Every mutation rewrites the whole file through a temp file and `os.replace`.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> list[PairedDevice]:
        if not self.path.exists():
            return []
        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not read paired devices from {self.path}: {exc}") from exc
        try:
            rows = parse_yaml(content)
        except yaml.YAMLError as exc:
            raise StorageError(f"Invalid YAML in {self.path}: {exc}") from exc
        if rows is None:
            return []
        try:
            load_schema_validator("paired_devices.schema.json").validate(rows)
        except ValidationError as exc:
            raise StorageError(
                f"Schema validation failed for {self.path}: {schema_error_message(exc)}"
            ) from exc
        return [_from_row(row, self.path) for row in rows]

    def _write(self, devices: list[PairedDevice]) -> None:
        content = yaml.safe_dump([_to_row(d) for d in devices], sort_keys=False, allow_unicode=True)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".paired_devices.", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Could not write paired devices to {self.path}: {exc}") from exc
        LOGGER.debug("Wrote %d paired devices to %s", len(devices), self.path)

    def find_all(self) -> list[PairedDevice]:
        with self._lock:
            return self._read()

    def find_by_id(self, pairing_id: UUID) -> PairedDevice | None:
        with self._lock:
            return next((d for d in self._read() if d.id == pairing_id), None)

    def save(self, device: PairedDevice) -> None:
        with self._lock:
            devices = [d for d in self._read() if d.id != device.id]
            devices.append(device)
            self._write(devices)

    def delete(self, device: PairedDevice) -> None:
        with self._lock:
            devices = self._read()
            remaining = [d for d in devices if d.id != device.id]
            if len(remaining) != len(devices):
                self._write(remaining)
