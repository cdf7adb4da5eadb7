from __future__ import annotations

import uuid
from pathlib import Path

import pytest
import yaml

from berryhub.core.errors import StorageError
from berryhub.core.model import PairedDevice
from berryhub.core.storage import YamlPairedDeviceRepository


def _device(device_id: str) -> PairedDevice:
    return PairedDevice(
        id=uuid.uuid4(),
        driver_id="6c1b9f0e-4b7e-4a53-9f2c-0d5c1e3a7b21",
        device_id=device_id,
        device_name=f"{device_id} (Fake TV)",
    )


def test_missing_file_means_no_rows(tmp_path: Path) -> None:
    repository = YamlPairedDeviceRepository(tmp_path / "paired.yaml")
    assert repository.find_all() == []
    assert repository.find_by_id(uuid.uuid4()) is None


def test_rows_survive_a_new_repository(tmp_path: Path) -> None:
    path = tmp_path / "state" / "paired.yaml"
    first, second = _device("tv-1"), _device("42")
    repository = YamlPairedDeviceRepository(path)
    repository.save(first)
    repository.save(second)

    reopened = YamlPairedDeviceRepository(path)

    assert reopened.find_all() == [first, second]
    assert reopened.find_by_id(second.id) == second
    rows = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert rows[1] == {
        "id": str(second.id),
        "driverId": second.driver_id,
        "deviceId": "42",
        "deviceName": "42 (Fake TV)",
    }


def test_delete(tmp_path: Path) -> None:
    repository = YamlPairedDeviceRepository(tmp_path / "paired.yaml")
    keep, drop = _device("tv-1"), _device("tv-2")
    repository.save(keep)
    repository.save(drop)

    repository.delete(drop)
    repository.delete(drop)

    assert repository.find_all() == [keep]


def test_invalid_file_raises_storage_error(tmp_path: Path) -> None:
    path = tmp_path / "paired.yaml"
    path.write_text("- id: only-an-id\n", encoding="utf-8")

    with pytest.raises(StorageError):
        YamlPairedDeviceRepository(path).find_all()


def test_invalid_pairing_id_raises_storage_error(tmp_path: Path) -> None:
    path = tmp_path / "paired.yaml"
    path.write_text(
        "- id: nope\n  driverId: d\n  deviceId: tv-1\n  deviceName: TV\n",
        encoding="utf-8",
    )

    with pytest.raises(StorageError):
        YamlPairedDeviceRepository(path).find_all()


def test_unwritable_location_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    repository = YamlPairedDeviceRepository(blocker / "sub" / "paired.yaml")

    with pytest.raises(StorageError):
        repository.save(_device("tv-1"))

    assert list(tmp_path.iterdir()) == [blocker]
