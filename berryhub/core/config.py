"""Hub configuration: XDG defaults, optional YAML file, environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from jsonschema import ValidationError

from berryhub.core.errors import ConfigError
from berryhub.core.yaml_io import load_schema_validator, parse_yaml, schema_error_message

DRIVER_PATH_ENV = "BERRYHUB_DRIVER_PATH"
LOGGER = logging.getLogger(__name__)


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))


def default_driver_dirs() -> tuple[Path, ...]:
    return _xdg_config_home() / "berryhub/drivers", _xdg_data_home() / "berryhub/drivers"


def default_storage_path() -> Path:
    return _xdg_data_home() / "berryhub/paired_devices.yaml"


def default_config_path() -> Path:
    return _xdg_config_home() / "berryhub/config.yaml"


@dataclass(frozen=True)
class HubConfig:
    driver_dirs: tuple[Path, ...] = field(default_factory=default_driver_dirs)
    storage_path: Path = field(default_factory=default_storage_path)
    pairing_timeout_s: float | None = None
    instance_timeout_s: float | None = None
    command_timeout_s: float | None = None
    session_ttl_s: float | None = None
    max_pending_sessions: int = 256


def _env_driver_dirs() -> tuple[Path, ...] | None:
    raw = os.environ.get(DRIVER_PATH_ENV)
    if not raw:
        return None
    return tuple(Path(entry).expanduser() for entry in raw.split(os.pathsep) if entry)


def load_config(path: Path | None = None) -> HubConfig:
    """Build a `HubConfig`.

    Values come from `path` (or `$XDG_CONFIG_HOME/berryhub/config.yaml` if it
    exists), falling back to XDG defaults. `BERRYHUB_DRIVER_PATH` overrides
    the driver directories from either source.
    """
    explicit = path is not None
    config_path = path if path is not None else default_config_path()

    doc: dict = {}
    if explicit or config_path.is_file():
        try:
            content = config_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Could not read config file {config_path}: {exc}") from exc
        try:
            loaded = parse_yaml(content)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if loaded is None:
            loaded = {}
        try:
            load_schema_validator("config.schema.json").validate(loaded)
        except ValidationError as exc:
            raise ConfigError(
                f"Schema validation failed for {config_path}: {schema_error_message(exc)}"
            ) from exc
        doc = loaded
        LOGGER.debug("Loaded config from %s", config_path)

    defaults = HubConfig()
    driver_dirs = defaults.driver_dirs
    if "driver_dirs" in doc:
        driver_dirs = tuple(Path(entry).expanduser() for entry in doc["driver_dirs"])
    env_dirs = _env_driver_dirs()
    if env_dirs is not None:
        LOGGER.debug("%s overrides driver directories", DRIVER_PATH_ENV)
        driver_dirs = env_dirs

    return HubConfig(
        driver_dirs=driver_dirs,
        storage_path=Path(doc["storage_path"]).expanduser() if "storage_path" in doc else defaults.storage_path,
        pairing_timeout_s=doc.get("pairing_timeout_s", defaults.pairing_timeout_s),
        instance_timeout_s=doc.get("instance_timeout_s", defaults.instance_timeout_s),
        command_timeout_s=doc.get("command_timeout_s", defaults.command_timeout_s),
        session_ttl_s=doc.get("session_ttl_s", defaults.session_ttl_s),
        max_pending_sessions=doc.get("max_pending_sessions", defaults.max_pending_sessions),
    )
