"""Discovery, isolation, and instantiation of driver plugin packages.

A driver package is either a ``*.zip`` archive or a ``*.driver`` directory
with a ``driver.yaml`` manifest at its root::

    Driver-Class: remote:TvDriverDescriptor
    Driver-Id: 3f1c6f4e-7d0c-4a8e-9a39-2b1f0f5d8c11
    Driver-Provider: Example Corp
    Driver-Version: "1.2.0"

Each package is mounted as its own synthetic package under
``berryhub_drivers``, so modules inside a package must import each other
relatively (``from . import protocol``).
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
import logging
import sys
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass
from importlib.machinery import ModuleSpec
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml
from jsonschema import ValidationError

from berryhub.core.errors import PluginLoadError, PluginValidationError
from berryhub.core.model import DriverManifest, LoadedDriver
from berryhub.core.yaml_io import load_schema_validator, parse_yaml, schema_error_message
from berryhub.driver.base import DriverDescriptor

MANIFEST_NAME = "driver.yaml"
ARCHIVE_SUFFIX = ".zip"
DIRECTORY_SUFFIX = ".driver"
NAMESPACE_ROOT = "berryhub_drivers"
LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedDrivers:
    drivers: tuple[LoadedDriver, ...]
    warnings: tuple[str, ...]


def _read_manifest_text(path: Path) -> str:
    if path.is_dir():
        manifest_path = path / MANIFEST_NAME
        if not manifest_path.is_file():
            raise PluginValidationError(f"Driver package {path} has no {MANIFEST_NAME}")
        try:
            return manifest_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PluginLoadError(f"Could not read manifest {manifest_path}: {exc}") from exc

    try:
        with zipfile.ZipFile(path) as archive:
            raw = archive.read(MANIFEST_NAME)
    except KeyError as exc:
        raise PluginValidationError(f"Driver package {path} has no {MANIFEST_NAME}") from exc
    except Exception as exc:
        # corrupt members raise zlib.error and other non-zip exceptions
        raise PluginLoadError(f"Could not open driver archive {path}: {exc}") from exc

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PluginValidationError(f"Manifest in {path} is not valid UTF-8") from exc


def _manifest_value(doc: dict[str, Any], key: str) -> str | None:
    value = doc.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def read_manifest(path: Path) -> DriverManifest:
    content = _read_manifest_text(path)
    try:
        doc = parse_yaml(content)
    except yaml.YAMLError as exc:
        raise PluginValidationError(f"Invalid YAML in manifest of {path}: {exc}") from exc

    if doc is None:
        doc = {}
    try:
        load_schema_validator("manifest.schema.json").validate(doc)
    except ValidationError as exc:
        raise PluginValidationError(
            f"Schema validation failed for manifest of {path}: {schema_error_message(exc)}"
        ) from exc

    return DriverManifest(
        driver_class=_manifest_value(doc, "Driver-Class"),
        driver_id=_manifest_value(doc, "Driver-Id"),
        provider=_manifest_value(doc, "Driver-Provider"),
        version=_manifest_value(doc, "Driver-Version"),
    )


def _split_entry_point(driver_class: str) -> tuple[str, str]:
    if ":" in driver_class:
        module_name, _, attr = driver_class.partition(":")
    else:
        module_name, _, attr = driver_class.rpartition(".")
    module_name, attr = module_name.strip(), attr.strip()
    if not module_name or not attr:
        raise PluginValidationError(
            f"Driver-Class '{driver_class}' must have the form 'module:Class' or 'module.Class'"
        )
    return module_name, attr


def _unit_name(path: Path) -> str:
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:16]
    return f"{NAMESPACE_ROOT}.u{digest}"


def _ensure_namespace_root() -> None:
    if NAMESPACE_ROOT in sys.modules:
        return
    root = importlib.util.module_from_spec(ModuleSpec(NAMESPACE_ROOT, None, is_package=True))
    sys.modules[NAMESPACE_ROOT] = root


def _unmount_unit(unit: str) -> None:
    for name in [m for m in list(sys.modules) if m == unit or m.startswith(f"{unit}.")]:
        sys.modules.pop(name, None)


def _mount_unit(path: Path) -> str:
    _ensure_namespace_root()
    unit = _unit_name(path)
    _unmount_unit(unit)
    spec = ModuleSpec(unit, None, is_package=True)
    spec.submodule_search_locations = [str(path)]
    sys.modules[unit] = importlib.util.module_from_spec(spec)
    return unit


def _parse_driver_id(value: Any, source: Path) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise PluginLoadError(f"Driver in {source} reports invalid driver_id {value!r}") from exc


def _instantiate(manifest: DriverManifest, path: Path) -> LoadedDriver:
    module_name, attr = _split_entry_point(manifest.driver_class or "")
    unit = _mount_unit(path)
    try:
        importlib.invalidate_caches()
        module = importlib.import_module(f"{unit}.{module_name}")
        factory = getattr(module, attr, None)
        if factory is None or not callable(factory):
            raise PluginLoadError(f"Entry point '{manifest.driver_class}' not found in {path}")
        descriptor = factory()
        if not isinstance(descriptor, DriverDescriptor):
            raise PluginLoadError(
                f"'{manifest.driver_class}' in {path} does not implement the driver descriptor contract"
            )
        driver_id = _parse_driver_id(descriptor.driver_id, path)
    except (PluginLoadError, PluginValidationError):
        _unmount_unit(unit)
        raise
    except (Exception, SystemExit) as exc:
        _unmount_unit(unit)
        raise PluginLoadError(f"Could not instantiate '{manifest.driver_class}' from {path}: {exc}") from exc

    if manifest.driver_id and _parse_manifest_id(manifest.driver_id) != driver_id:
        LOGGER.warning(
            "Driver in %s reports id %s but manifest declares Driver-Id %s",
            path,
            driver_id,
            manifest.driver_id,
        )

    return LoadedDriver(descriptor=descriptor, driver_id=driver_id, manifest=manifest, source=path)


def _parse_manifest_id(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


def _is_package(path: Path) -> bool:
    if path.suffix == ARCHIVE_SUFFIX:
        return path.is_file()
    if path.suffix == DIRECTORY_SUFFIX:
        return path.is_dir()
    return False


def _iter_package_paths(driver_dirs: Iterable[Path]) -> list[Path]:
    paths: list[Path] = []
    for directory in driver_dirs:
        LOGGER.debug("Searching driver packages in %s", directory)
        if not directory.exists() or not directory.is_dir():
            continue
        try:
            found = sorted(p for p in directory.iterdir() if _is_package(p))
        except OSError as exc:
            LOGGER.error("Could not list driver directory %s: %s", directory, exc)
            continue
        LOGGER.debug("Found %d driver packages in %s", len(found), directory)
        paths.extend(found)
    return paths


def load_drivers(driver_dirs: Iterable[Path]) -> LoadedDrivers:
    """Load every driver package found in `driver_dirs`, in directory order.

    A package that fails is logged, recorded in `warnings`, and skipped.
    When two packages report the same driver id the first one wins.
    """
    drivers: dict[UUID, LoadedDriver] = {}
    warnings: list[str] = []

    for path in _iter_package_paths(driver_dirs):
        try:
            manifest = read_manifest(path)
            LOGGER.info(
                "Loading driver: Driver-Class = %s, Driver-Id = %s, Driver-Provider = %s, Driver-Version = %s",
                manifest.driver_class,
                manifest.driver_id,
                manifest.provider,
                manifest.version,
            )
            if not manifest.driver_class:
                warning = f"Driver package {path} does not specify Driver-Class, not loading it"
                LOGGER.info(warning)
                warnings.append(warning)
                continue
            loaded = _instantiate(manifest, path)
        except (PluginLoadError, PluginValidationError) as exc:
            LOGGER.error("Error while loading driver from %s", path, exc_info=exc)
            warnings.append(f"Skipped driver package {path}: {exc}")
            continue
        except Exception as exc:
            LOGGER.exception("Unexpected error while loading driver from %s", path)
            warnings.append(f"Skipped driver package {path}: {exc}")
            continue

        if loaded.driver_id in drivers:
            warning = (
                f"Driver package {path} reuses driver id {loaded.driver_id} "
                f"already loaded from {drivers[loaded.driver_id].source}, ignoring it"
            )
            LOGGER.warning(warning)
            warnings.append(warning)
            _unmount_unit(_unit_name(path))
            continue
        drivers[loaded.driver_id] = loaded

    return LoadedDrivers(drivers=tuple(drivers.values()), warnings=tuple(warnings))
